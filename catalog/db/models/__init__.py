"""Database models for the destination workflow."""

from catalog.db.models.destination import Destination
from catalog.db.models.change_request import ChangeRequest
from catalog.db.models.version import DestinationVersion
from catalog.db.models.import_job import DestinationImportJob, DestinationImportRow

__all__ = [
    "Destination",
    "ChangeRequest",
    "DestinationVersion",
    "DestinationImportJob",
    "DestinationImportRow",
]
