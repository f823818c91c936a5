"""Exception types raised by the destination workflow.

Callers branch on the type: validation problems are fixed by correcting
input, state errors are expected outcomes of concurrent use, policy errors
are audited separately from validation.
"""

from typing import Iterable, List, Optional


class WorkflowError(Exception):
    """Base class for all workflow errors."""


# Validation

class ChangeValidationError(WorkflowError):
    """Raised when a field payload violates one or more rules."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__(
            "destination change validation failed: " + "; ".join(self.problems)
        )


class InvalidChangeAction(WorkflowError):
    """Raised for an action outside create/update/delete."""

    def __init__(self, action: object):
        super().__init__(f"invalid change action: {action!r}")
        self.action = action


# Not found

class NotFoundError(WorkflowError):
    """Raised when a referenced record does not exist."""


class ChangeRequestNotFound(NotFoundError):
    def __init__(self, change_id):
        super().__init__(f"destination change request {change_id} not found")
        self.change_id = change_id


class DestinationNotFound(NotFoundError):
    def __init__(self, destination_id):
        super().__init__(f"destination {destination_id} not found")
        self.destination_id = destination_id


class ImportJobNotFound(NotFoundError):
    def __init__(self, job_id):
        super().__init__(f"import job {job_id} not found")
        self.job_id = job_id


# Access

class Forbidden(WorkflowError):
    """Raised when the caller is not the author of a change request."""

    def __init__(self, message: str = "only the author may modify this change request"):
        super().__init__(message)


# State

class ChangeStateError(WorkflowError):
    """Base class for lifecycle and concurrency conflicts."""


class NotEditable(ChangeStateError):
    def __init__(self, status: str):
        super().__init__(f"change request is not editable in status {status}")
        self.status = status


class InvalidChangeState(ChangeStateError):
    def __init__(self, status: str, operation: str):
        super().__init__(f"cannot {operation} a change request in status {status}")
        self.status = status
        self.operation = operation


class StaleVersion(ChangeStateError):
    def __init__(self, expected: int, current: Optional[int] = None):
        message = f"stale draft version {expected}"
        if current is not None:
            message += f" (current is {current})"
        super().__init__(message)
        self.expected = expected
        self.current = current


class ReviewerConflict(ChangeStateError):
    def __init__(self):
        super().__init__("reviewer cannot review own submission")


# Policy

class HardDeleteNotAllowed(WorkflowError):
    def __init__(self):
        super().__init__("hard delete not allowed")


# Reconciliation

class LedgerWriteError(WorkflowError):
    """
    Raised when the destination was mutated but its version snapshot could
    not be appended. The mutation is not rolled back; operators must
    reconcile the ledger against ``destination``.
    """

    def __init__(self, destination, cause: Exception):
        super().__init__(f"destination mutated but version snapshot not recorded: {cause}")
        self.destination = destination
        self.cause = cause


# Media

class MediaError(WorkflowError):
    """Base class for image attachment errors."""


class ImageRequired(MediaError):
    def __init__(self, message: str = "image upload is empty"):
        super().__init__(message)


class ImageTooLarge(MediaError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"image of {size} bytes exceeds maximum of {limit} bytes")
        self.size = size
        self.limit = limit


class UnsupportedImageType(MediaError):
    def __init__(self, content_type: str):
        super().__init__(f"unsupported image content type: {content_type}")
        self.content_type = content_type


# Import

class ImportRejected(WorkflowError):
    """Base class for import rejections that happen before any row runs."""


class ImportEmptyFile(ImportRejected):
    def __init__(self):
        super().__init__("csv file is empty")


class ImportTooLarge(ImportRejected):
    def __init__(self, size: int, limit: int):
        super().__init__(f"csv file of {size} bytes exceeds maximum of {limit} bytes")
        self.size = size
        self.limit = limit


class ImportInvalidHeaders(ImportRejected):
    def __init__(self, missing: List[str]):
        super().__init__("csv headers missing required columns: " + ", ".join(missing))
        self.missing = missing


class ImportRowLimitExceeded(ImportRejected):
    def __init__(self, count: int, limit: int):
        super().__init__(f"csv has {count} rows, maximum allowed is {limit}")
        self.count = count
        self.limit = limit


class ImportMalformedFile(ImportRejected):
    def __init__(self, reason: str):
        super().__init__(f"csv file could not be read: {reason}")
        self.reason = reason


class ImageProcessingError(MediaError):
    def __init__(self, reason: str):
        super().__init__(f"image could not be processed: {reason}")
        self.reason = reason
