"""Approval applier.

Turns an approved change request into a mutation of the destination aggregate
and appends one ledger snapshot per mutation. Called only from
``DestinationWorkflowService.approve``.

A ledger write that fails after the aggregate was mutated raises
``LedgerWriteError``; the mutation is left in place for reconciliation.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from .errors import DestinationNotFound, HardDeleteNotAllowed, InvalidChangeAction, LedgerWriteError
from .fields import DestinationChangeFields
from .states import ChangeAction, DestinationStatus

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def snapshot_from_destination(destination) -> Dict[str, Any]:
    """JSON-serialisable copy of a destination's current state."""
    return {
        "id": str(destination.id),
        "name": destination.name,
        "slug": destination.slug,
        "status": destination.status,
        "version": destination.version,
        "city": destination.city,
        "country": destination.country,
        "category": destination.category,
        "description": destination.description,
        "latitude": destination.latitude,
        "longitude": destination.longitude,
        "contact": destination.contact,
        "opening_time": destination.opening_time,
        "closing_time": destination.closing_time,
        "gallery": [dict(item) for item in (destination.gallery or [])] or None,
        "hero_image_url": destination.hero_image_url,
        "updated_at": _iso(destination.updated_at),
        "updated_by": str(destination.updated_by) if destination.updated_by else None,
        "deleted_at": _iso(destination.deleted_at),
    }


class ApprovalApplier:
    """Applies approved change requests to destinations and the version ledger."""

    def __init__(
        self,
        destinations,
        versions,
        *,
        hard_delete_allowed: bool = False,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.destinations = destinations
        self.versions = versions
        self.hard_delete_allowed = hard_delete_allowed
        self.now = now

    def apply(self, change, reviewer_id: UUID):
        """
        Dispatch on the change's action.

        Returns:
            The resulting destination, or None after a hard delete
        """
        action = ChangeAction(change.action)
        fields = DestinationChangeFields.from_payload(change.payload)

        if action == ChangeAction.CREATE:
            return self._apply_create(change, fields, reviewer_id)
        elif action == ChangeAction.UPDATE:
            return self._apply_update(change, fields, reviewer_id)
        elif action == ChangeAction.DELETE:
            return self._apply_delete(change, fields, reviewer_id)
        raise InvalidChangeAction(change.action)

    def _apply_create(self, change, fields: DestinationChangeFields, reviewer_id: UUID):
        status = (fields.status or "").strip() or DestinationStatus.PUBLISHED.value
        destination = self.destinations.create(
            fields,
            created_by=reviewer_id,
            status=status,
            hero_image_url=fields.hero_image_url,
        )
        self._record(change, destination, snapshot_from_destination(destination), reviewer_id)
        return destination

    def _apply_update(self, change, fields: DestinationChangeFields, reviewer_id: UUID):
        destination = self._load(change.destination_id)
        destination = self.destinations.update(
            destination,
            fields,
            updated_by=reviewer_id,
            status_override=(fields.status or "").strip() or None,
        )
        self._record(change, destination, snapshot_from_destination(destination), reviewer_id)
        return destination

    def _apply_delete(self, change, fields: DestinationChangeFields, reviewer_id: UUID):
        destination = self._load(change.destination_id)
        if fields.wants_hard_delete and not self.hard_delete_allowed:
            raise HardDeleteNotAllowed()

        if fields.wants_hard_delete:
            snapshot = snapshot_from_destination(destination)
            self.destinations.hard_delete(destination)
            logger.info(f"Hard-deleted destination {snapshot['id']} via change {change.id}")
            self._record(change, None, snapshot, reviewer_id)
            return None

        destination = self.destinations.archive(destination, updated_by=reviewer_id)
        self._record(change, destination, snapshot_from_destination(destination), reviewer_id)
        return destination

    def _load(self, destination_id: Optional[UUID]):
        if destination_id is None:
            raise DestinationNotFound(destination_id)
        destination = self.destinations.find_by_id(destination_id)
        if destination is None:
            raise DestinationNotFound(destination_id)
        return destination

    def _record(self, change, destination, snapshot: Dict[str, Any], reviewer_id: UUID) -> None:
        try:
            self.versions.append(
                destination_id=UUID(snapshot["id"]),
                change_request_id=change.id,
                version=snapshot["version"],
                snapshot=snapshot,
                created_by=reviewer_id,
            )
        except Exception as e:
            logger.warning(
                f"Destination {snapshot['id']} is at version {snapshot['version']} "
                f"but its ledger entry for change {change.id} was not written; reconcile manually"
            )
            raise LedgerWriteError(destination, e) from e
