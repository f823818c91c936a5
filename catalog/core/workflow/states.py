"""Change-request states, actions and transitions.

State Machine Diagram:

    ┌──────────┐   submit    ┌────────────────┐
    │  DRAFT   │────────────►│ PENDING_REVIEW │
    └──────────┘             └───────┬────────┘
         ▲ edit                      │
         │                   ┌───────┴────────┐
    ┌────┴─────┐   reject    │                │ approve
    │ REJECTED │◄────────────┘         ┌──────▼─────┐
    └────┬─────┘                       │  APPROVED  │
         │ submit (after edits)        └────────────┘
         └──────────► PENDING_REVIEW

DRAFT and REJECTED are author-editable. APPROVED is terminal.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set


class ChangeStatus(str, Enum):
    """Lifecycle states of a change request."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeAction(str, Enum):
    """What an approved change does to the destination aggregate."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ChangeTransition(str, Enum):
    """Operations that move a change request between states."""

    SUBMIT = "submit"      # DRAFT/REJECTED → PENDING_REVIEW
    APPROVE = "approve"    # PENDING_REVIEW → APPROVED
    REJECT = "reject"      # PENDING_REVIEW → REJECTED


class DestinationStatus(str, Enum):
    """Publication states of a destination."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ImportJobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportRowStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    SKIPPED = "skipped"
    FAILED = "failed"


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: ChangeStatus
    to_state: ChangeStatus
    transition: ChangeTransition
    requires_distinct_reviewer: bool = False


TRANSITION_RULES: list[TransitionRule] = [
    # Author
    TransitionRule(ChangeStatus.DRAFT, ChangeStatus.PENDING_REVIEW, ChangeTransition.SUBMIT),
    TransitionRule(ChangeStatus.REJECTED, ChangeStatus.PENDING_REVIEW, ChangeTransition.SUBMIT),

    # Reviewer
    TransitionRule(ChangeStatus.PENDING_REVIEW, ChangeStatus.APPROVED, ChangeTransition.APPROVE,
                   requires_distinct_reviewer=True),
    TransitionRule(ChangeStatus.PENDING_REVIEW, ChangeStatus.REJECTED, ChangeTransition.REJECT,
                   requires_distinct_reviewer=True),
]

VALID_TRANSITIONS: Dict[ChangeStatus, Set[ChangeTransition]] = {}
TRANSITION_TARGETS: Dict[tuple[ChangeStatus, ChangeTransition], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_state, rule.transition)] = rule


# States in which the author may edit fields and attach media
EDITABLE_STATES: Set[ChangeStatus] = {
    ChangeStatus.DRAFT,
    ChangeStatus.REJECTED,
}

TERMINAL_STATES: Set[ChangeStatus] = {
    ChangeStatus.APPROVED,
}

CREATE_STATUSES: Set[DestinationStatus] = {
    DestinationStatus.DRAFT,
    DestinationStatus.PUBLISHED,
}

UPDATE_STATUSES: Set[DestinationStatus] = set(DestinationStatus)


def can_transition(from_state: ChangeStatus, transition: ChangeTransition) -> bool:
    """Check if a transition is valid from the given state."""
    return transition in VALID_TRANSITIONS.get(from_state, set())


def get_transition_rule(from_state: ChangeStatus, transition: ChangeTransition) -> Optional[TransitionRule]:
    """Get the transition rule for a state/transition combination."""
    return TRANSITION_TARGETS.get((from_state, transition))


def get_target_state(from_state: ChangeStatus, transition: ChangeTransition) -> Optional[ChangeStatus]:
    """Get the target state for a transition."""
    rule = get_transition_rule(from_state, transition)
    return rule.to_state if rule else None


def is_editable(status) -> bool:
    return ChangeStatus(status) in EDITABLE_STATES
