"""CSV bulk import of destination change requests."""

from .parser import REQUIRED_COLUMNS, build_change_fields, parse_csv
from .service import DestinationImportService, ImportOutcome, ImportTally

__all__ = [
    "REQUIRED_COLUMNS",
    "DestinationImportService",
    "ImportOutcome",
    "ImportTally",
    "build_change_fields",
    "parse_csv",
]
