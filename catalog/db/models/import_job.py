"""CSV import job and row models."""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, JSON, Integer, Boolean, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from catalog.db.base import Base


class DestinationImportJob(Base):
    """
    One bulk import of destinations from a CSV file.

    Counters are written once when the job finishes (or fails).
    """
    __tablename__ = "destination_import_jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    uploaded_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="queued", index=True)
    dry_run = Column(Boolean, nullable=False, default=False)

    # File references
    file_key = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    # Counters
    total_rows = Column(Integer, nullable=False, default=0)
    processed_rows = Column(Integer, nullable=False, default=0)
    rows_failed = Column(Integer, nullable=False, default=0)
    changes_created = Column(Integer, nullable=False, default=0)
    pending_change_ids = Column(JSON, nullable=False, default=list)  # capped list of str UUIDs

    # Timestamps
    submitted_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rows = relationship("DestinationImportRow", back_populates="job", order_by="DestinationImportRow.row_number")

    def __repr__(self) -> str:
        return f"<DestinationImportJob {self.id} [{self.status}] {self.processed_rows}/{self.total_rows}>"


class DestinationImportRow(Base):
    """Outcome of a single CSV row. Inserted once, never mutated."""
    __tablename__ = "destination_import_rows"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(Uuid(as_uuid=True), ForeignKey("destination_import_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    action = Column(String(20), nullable=False, default="create")
    change_id = Column(Uuid(as_uuid=True), nullable=True)
    error = Column(Text, nullable=True)
    payload = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("DestinationImportJob", back_populates="rows")

    def __repr__(self) -> str:
        return f"<DestinationImportRow {self.row_number} [{self.status}]>"
