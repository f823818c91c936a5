"""Change request model.

A proposed create/update/delete of a destination, owned by its author while
in draft and by a reviewer once submitted.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, JSON, Integer, Text, Uuid

from catalog.db.base import Base


class ChangeRequest(Base):
    """
    Tracks one proposed destination mutation through review.

    ``draft_version`` is the optimistic-concurrency token for author edits;
    ``published_version`` points into the version ledger once approved.
    """
    __tablename__ = "destination_change_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    destination_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    action = Column(String(20), nullable=False)

    # Sparse field patch; only fields that were explicitly set are stored
    payload = Column(JSON, nullable=False, default=dict)
    hero_image_temp_key = Column(Text, nullable=True)

    # Workflow state
    status = Column(String(20), nullable=False, default="draft", index=True)
    draft_version = Column(Integer, nullable=False, default=1)

    # Author / reviewer tracking
    submitted_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    submitted_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Uuid(as_uuid=True), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_message = Column(Text, nullable=True)
    published_version = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    @property
    def is_pending_review(self) -> bool:
        return self.status == "pending_review"

    def __repr__(self) -> str:
        return f"<ChangeRequest {self.action} {self.destination_id} [{self.status} v{self.draft_version}]>"
