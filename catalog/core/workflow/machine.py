"""Change-request state machine.

Validates transitions for a single change request. Persistence is the
service's job; the machine only decides whether a move is legal.
"""

from typing import Optional
from uuid import UUID

from .errors import InvalidChangeState, ReviewerConflict
from .states import (
    ChangeStatus,
    ChangeTransition,
    TERMINAL_STATES,
    can_transition,
    get_transition_rule,
)


class ChangeRequestStateMachine:
    """
    State machine for one change request.

    Enforces:
    - only transitions listed in the transition table
    - distinct reviewer for approve/reject unless self-review is allowed
    """

    def __init__(
        self,
        change_id: UUID,
        current_state: ChangeStatus,
        *,
        submitted_by: Optional[UUID] = None,
        self_review_allowed: bool = False,
    ):
        self.change_id = change_id
        self._state = ChangeStatus(current_state)
        self.submitted_by = submitted_by
        self.self_review_allowed = self_review_allowed

    @property
    def state(self) -> ChangeStatus:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_perform(self, transition: ChangeTransition, actor_id: Optional[UUID] = None) -> bool:
        """Check if ``actor_id`` may perform a transition from the current state."""
        try:
            self._check(transition, actor_id)
        except (InvalidChangeState, ReviewerConflict):
            return False
        return True

    def get_available_transitions(self, actor_id: Optional[UUID] = None) -> list[ChangeTransition]:
        return [t for t in ChangeTransition if self.can_perform(t, actor_id)]

    def transition(self, transition: ChangeTransition, actor_id: Optional[UUID] = None) -> ChangeStatus:
        """
        Perform a transition.

        Raises:
            InvalidChangeState: If the transition is not valid from the current state
            ReviewerConflict: If the reviewer is the submitter and self-review is disallowed
        """
        rule = self._check(transition, actor_id)
        self._state = rule.to_state
        return self._state

    def _check(self, transition: ChangeTransition, actor_id: Optional[UUID]):
        if not can_transition(self._state, transition):
            raise InvalidChangeState(self._state.value, transition.value)
        rule = get_transition_rule(self._state, transition)
        if (
            rule.requires_distinct_reviewer
            and not self.self_review_allowed
            and actor_id is not None
            and actor_id == self.submitted_by
        ):
            raise ReviewerConflict()
        return rule
