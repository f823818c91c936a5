"""Celery tasks for destination CSV imports.

Runs ``DestinationImportService.import_csv`` in its own session so callers
with large files do not have to block on the row loop.
"""

import base64
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import Celery, shared_task
from celery.signals import worker_process_init
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.bootstrap import build_services, configure_logging
from catalog.core.config import get_settings
from catalog.core.workflow.errors import ImportRejected
from catalog.db.session import SessionLocal

logger = logging.getLogger(__name__)
settings = get_settings()

celery_app = Celery(
    "catalog",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_routes={
        "catalog.workers.import_tasks.import_destinations_csv": {"queue": "imports"},
    },
    task_default_queue="default",
)


@worker_process_init.connect
def _configure_worker_logging(**kwargs):
    configure_logging(settings)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def import_destinations_csv(
    self,
    uploader_id: str,
    filename: str,
    contents_b64: str,
    dry_run: bool = False,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Import a CSV of destinations and commit the result.

    Args:
        uploader_id: User ID of the uploader
        filename: Original file name, used for the stored object key
        contents_b64: Base64-encoded file contents (JSON-safe)
        dry_run: Validate only; no change requests are created
        notes: Free-text notes kept on the job

    Returns:
        Job summary dictionary
    """
    db = SessionLocal()
    try:
        services = build_services(db, settings)
        outcome = services.imports.import_csv(
            UUID(uploader_id),
            filename,
            base64.b64decode(contents_b64),
            dry_run=dry_run,
            notes=notes,
        )
        db.commit()

        job = outcome.job
        logger.info(f"Import task finished job {job.id}: {job.changes_created} change(s) created")
        return {
            "job_id": str(job.id),
            "status": job.status,
            "total_rows": job.total_rows,
            "processed_rows": job.processed_rows,
            "rows_failed": job.rows_failed,
            "changes_created": job.changes_created,
            "pending_change_ids": [str(change_id) for change_id in outcome.pending_change_ids],
        }

    except ImportRejected as e:
        db.rollback()
        logger.warning(f"Import of {filename} rejected: {e}")
        raise

    except Exception as e:
        logger.exception(f"Import task failed for {filename}")
        _keep_failed_job(db)
        # Retry on transient errors
        if "connection" in str(e).lower() or "timeout" in str(e).lower():
            raise self.retry(exc=e)
        raise

    finally:
        db.close()


def _keep_failed_job(db: Session) -> None:
    """Commit the job's failed status and the rows inserted so far, if the session allows it."""
    try:
        db.commit()
    except SQLAlchemyError:
        logger.warning("Could not persist failed import job; rolling back", exc_info=True)
        db.rollback()
