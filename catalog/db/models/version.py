"""Destination version ledger model.

Insert-only history of destination states. Rows are written by the approval
applier and never updated or deleted. There is no foreign key to
``destinations`` so the history of a hard-deleted destination survives.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, Integer, Uuid

from catalog.db.base import Base


class DestinationVersion(Base):
    """Immutable snapshot of a destination at one applied change."""
    __tablename__ = "destination_versions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    destination_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    change_request_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    version = Column(Integer, nullable=False)
    snapshot = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    created_by = Column(Uuid(as_uuid=True), nullable=False)

    def __repr__(self) -> str:
        return f"<DestinationVersion {self.destination_id} v{self.version}>"
