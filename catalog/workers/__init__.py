"""Celery workers for the destination catalogue."""

from catalog.workers.import_tasks import celery_app, import_destinations_csv

__all__ = ["celery_app", "import_destinations_csv"]
