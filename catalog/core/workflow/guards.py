"""Ownership and optimistic-concurrency checks shared by draft edits and
media attachments."""

from uuid import UUID

from .errors import ChangeRequestNotFound, Forbidden, NotEditable, StaleVersion
from .states import is_editable


def load_editable_change(changes, change_id: UUID, author_id: UUID):
    """
    Load a change request the author may still edit.

    Raises:
        ChangeRequestNotFound: If no such change request exists
        Forbidden: If ``author_id`` is not the submitter
        NotEditable: Unless the status is draft or rejected
    """
    change = changes.find_by_id(change_id)
    if change is None:
        raise ChangeRequestNotFound(change_id)
    if change.submitted_by != author_id:
        raise Forbidden()
    if not is_editable(change.status):
        raise NotEditable(change.status)
    return change


def raise_for_cas_miss(changes, change_id: UUID, expected_version: int):
    """Explain why a guarded draft update matched no row."""
    current = changes.find_by_id(change_id)
    if current is None:
        raise ChangeRequestNotFound(change_id)
    if not is_editable(current.status):
        raise NotEditable(current.status)
    raise StaleVersion(expected_version, current.draft_version)
