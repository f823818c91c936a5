"""Change-request workflow for the destination catalogue.

``DestinationWorkflowService`` lives in ``catalog.core.workflow.service``.
"""

from .states import (
    ChangeAction,
    ChangeStatus,
    ChangeTransition,
    DestinationStatus,
    ImportJobStatus,
    ImportRowStatus,
    can_transition,
    is_editable,
)
from .errors import (
    ChangeRequestNotFound,
    ChangeStateError,
    ChangeValidationError,
    DestinationNotFound,
    Forbidden,
    HardDeleteNotAllowed,
    InvalidChangeAction,
    InvalidChangeState,
    LedgerWriteError,
    NotEditable,
    ReviewerConflict,
    StaleVersion,
    WorkflowError,
)
from .fields import DestinationChangeFields, GalleryItem
from .machine import ChangeRequestStateMachine
from .validation import validate_fields

__all__ = [
    "ChangeAction",
    "ChangeStatus",
    "ChangeTransition",
    "DestinationStatus",
    "ImportJobStatus",
    "ImportRowStatus",
    "can_transition",
    "is_editable",
    "ChangeRequestNotFound",
    "ChangeStateError",
    "ChangeValidationError",
    "DestinationNotFound",
    "Forbidden",
    "HardDeleteNotAllowed",
    "InvalidChangeAction",
    "InvalidChangeState",
    "LedgerWriteError",
    "NotEditable",
    "ReviewerConflict",
    "StaleVersion",
    "WorkflowError",
    "DestinationChangeFields",
    "GalleryItem",
    "ChangeRequestStateMachine",
    "validate_fields",
]
