"""SQLAlchemy-backed store accessors for the destination workflow.

Each repository wraps a session and only flushes; committing is the caller's
decision. Draft edits, submission and review are compare-and-swap updates:
they return ``None`` when the guarded row did not match so the service can
tell a lost race apart from a missing record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from catalog.core.workflow.fields import DESTINATION_FIELDS, DestinationChangeFields
from catalog.core.workflow.states import ChangeStatus, EDITABLE_STATES
from catalog.db.models import (
    ChangeRequest,
    Destination,
    DestinationImportJob,
    DestinationImportRow,
    DestinationVersion,
)


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _gallery_value(fields: DestinationChangeFields) -> Optional[List[Dict[str, Any]]]:
    if not fields.gallery:
        return None
    return [item.model_dump(mode="json") for item in fields.gallery]


@dataclass
class ChangeFilter:
    """Filter for listing change requests."""
    destination_id: Optional[UUID] = None
    submitted_by: Optional[UUID] = None
    statuses: List[ChangeStatus] = field(default_factory=list)
    limit: int = 50
    offset: int = 0


class ChangeRequestRepository:
    """Persistence for change requests."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, change: ChangeRequest) -> ChangeRequest:
        self.db.add(change)
        self.db.flush()
        return change

    def find_by_id(self, change_id: UUID) -> Optional[ChangeRequest]:
        # Always re-read: rows are changed through guarded UPDATEs, not the identity map
        return self.db.get(ChangeRequest, change_id, populate_existing=True)

    def find_for_review(self, change_id: UUID) -> Optional[ChangeRequest]:
        """Load a change request and lock its row for the rest of the transaction."""
        return (
            self.db.query(ChangeRequest)
            .filter(ChangeRequest.id == change_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def update_draft(
        self,
        change_id: UUID,
        expected_version: int,
        *,
        payload: Dict[str, Any],
        hero_image_temp_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ChangeRequest]:
        """
        Replace the payload and bump ``draft_version`` if it still equals
        ``expected_version`` and the request is still editable.

        Returns:
            The refreshed change request, or None when no row matched
        """
        values: Dict[str, Any] = {
            "payload": payload,
            "draft_version": expected_version + 1,
            "updated_at": now or datetime.utcnow(),
        }
        if hero_image_temp_key is not None:
            values["hero_image_temp_key"] = hero_image_temp_key

        return self._guarded_update(
            and_(
                ChangeRequest.id == change_id,
                ChangeRequest.draft_version == expected_version,
                ChangeRequest.status.in_([s.value for s in EDITABLE_STATES]),
            ),
            change_id,
            values,
        )

    def mark_submitted(self, change_id: UUID, submitted_at: datetime) -> Optional[ChangeRequest]:
        return self._guarded_update(
            and_(
                ChangeRequest.id == change_id,
                ChangeRequest.status.in_([s.value for s in EDITABLE_STATES]),
            ),
            change_id,
            {
                "status": ChangeStatus.PENDING_REVIEW.value,
                "submitted_at": submitted_at,
                "updated_at": submitted_at,
            },
        )

    def mark_reviewed(
        self,
        change_id: UUID,
        status: ChangeStatus,
        *,
        reviewed_by: UUID,
        reviewed_at: datetime,
        review_message: Optional[str] = None,
        published_version: Optional[int] = None,
    ) -> Optional[ChangeRequest]:
        """Resolve a change request that is still ``pending_review``."""
        return self._guarded_update(
            and_(
                ChangeRequest.id == change_id,
                ChangeRequest.status == ChangeStatus.PENDING_REVIEW.value,
            ),
            change_id,
            {
                "status": ChangeStatus(status).value,
                "reviewed_by": reviewed_by,
                "reviewed_at": reviewed_at,
                "review_message": review_message,
                "published_version": published_version,
                "updated_at": reviewed_at,
            },
        )

    def list(self, change_filter: ChangeFilter) -> List[ChangeRequest]:
        query = self.db.query(ChangeRequest)
        if change_filter.destination_id:
            query = query.filter(ChangeRequest.destination_id == change_filter.destination_id)
        if change_filter.submitted_by:
            query = query.filter(ChangeRequest.submitted_by == change_filter.submitted_by)
        if change_filter.statuses:
            query = query.filter(
                ChangeRequest.status.in_([ChangeStatus(s).value for s in change_filter.statuses])
            )
        query = query.order_by(ChangeRequest.created_at.desc())
        query = query.offset(change_filter.offset).limit(change_filter.limit)
        return query.all()

    def _guarded_update(self, condition, change_id: UUID, values: Dict[str, Any]) -> Optional[ChangeRequest]:
        self.db.flush()
        result = self.db.execute(
            update(ChangeRequest)
            .where(condition)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.db.get(ChangeRequest, change_id, populate_existing=True)


class DestinationRepository:
    """Persistence and lookups for the destination aggregate."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, destination_id: UUID) -> Optional[Destination]:
        return self.db.get(Destination, destination_id)

    def find_by_slug(self, slug: str) -> Optional[Destination]:
        return self.db.query(Destination).filter(Destination.slug == slug).first()

    def create(
        self,
        fields: DestinationChangeFields,
        *,
        created_by: UUID,
        status: str,
        hero_image_url: Optional[str] = None,
    ) -> Destination:
        destination = Destination(
            name=(fields.name or "").strip(),
            status=status,
            version=1,
            gallery=_gallery_value(fields),
            hero_image_url=_blank_to_none(hero_image_url),
            updated_by=created_by,
        )
        for name in DESTINATION_FIELDS:
            if name != "name":
                setattr(destination, name, _blank_to_none(getattr(fields, name)))
        self.db.add(destination)
        self.db.flush()
        return destination

    def update(
        self,
        destination: Destination,
        fields: DestinationChangeFields,
        *,
        updated_by: UUID,
        status_override: Optional[str] = None,
    ) -> Destination:
        """Apply only the fields present in ``fields`` and bump the version."""
        for name in DESTINATION_FIELDS:
            if fields.is_set(name):
                value = getattr(fields, name)
                setattr(destination, name, value if name == "name" else _blank_to_none(value))
        if fields.is_set("gallery"):
            destination.gallery = _gallery_value(fields)
        if fields.is_set("hero_image_url"):
            destination.hero_image_url = _blank_to_none(fields.hero_image_url)
        if status_override:
            destination.status = status_override

        destination.version = destination.version + 1
        destination.updated_by = updated_by
        destination.updated_at = datetime.utcnow()
        self.db.flush()
        return destination

    def archive(self, destination: Destination, *, updated_by: UUID) -> Destination:
        now = datetime.utcnow()
        destination.status = "archived"
        destination.deleted_at = now
        destination.updated_at = now
        destination.updated_by = updated_by
        destination.version = destination.version + 1
        self.db.flush()
        return destination

    def hard_delete(self, destination: Destination) -> None:
        self.db.delete(destination)
        self.db.flush()


class VersionRepository:
    """Insert-only access to the version ledger."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        *,
        destination_id: UUID,
        change_request_id: Optional[UUID],
        version: int,
        snapshot: Dict[str, Any],
        created_by: UUID,
    ) -> DestinationVersion:
        entry = DestinationVersion(
            destination_id=destination_id,
            change_request_id=change_request_id,
            version=version,
            snapshot=snapshot,
            created_by=created_by,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_by_destination(self, destination_id: UUID, limit: int = 50) -> List[DestinationVersion]:
        return (
            self.db.query(DestinationVersion)
            .filter(DestinationVersion.destination_id == destination_id)
            .order_by(DestinationVersion.version.desc())
            .limit(limit)
            .all()
        )


class ImportRepository:
    """Persistence for import jobs and their row outcomes."""

    def __init__(self, db: Session):
        self.db = db

    def create_job(self, job: DestinationImportJob) -> DestinationImportJob:
        self.db.add(job)
        self.db.flush()
        return job

    def update_job(self, job: DestinationImportJob) -> DestinationImportJob:
        job.updated_at = datetime.utcnow()
        self.db.flush()
        return job

    def find_job(self, job_id: UUID) -> Optional[DestinationImportJob]:
        return self.db.get(DestinationImportJob, job_id)

    def savepoint(self):
        """Nested transaction; a failure inside it leaves the outer transaction usable."""
        return self.db.begin_nested()

    def insert_row(self, row: DestinationImportRow) -> DestinationImportRow:
        self.db.add(row)
        self.db.flush()
        return row

    def list_rows(self, job_id: UUID) -> List[DestinationImportRow]:
        return (
            self.db.query(DestinationImportRow)
            .filter(DestinationImportRow.job_id == job_id)
            .order_by(DestinationImportRow.row_number.asc())
            .all()
        )
