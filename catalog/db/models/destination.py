"""Destination aggregate model.

The current, mutable state of a catalogue entry. Every successful mutation
bumps ``version``; history lives in ``destination_versions``.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, JSON, Float, Integer, Text, Uuid

from catalog.db.base import Base


class Destination(Base):
    """A published, draft or archived catalogue destination."""
    __tablename__ = "destinations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, unique=True, index=True)
    status = Column(String(20), nullable=False, default="published", index=True)
    version = Column(Integer, nullable=False, default=1)

    # Descriptive fields
    city = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    category = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    contact = Column(String(255), nullable=True)
    opening_time = Column(String(5), nullable=True)
    closing_time = Column(String(5), nullable=True)

    # Media
    gallery = Column(JSON, nullable=True)  # [{"url", "caption", "ordering"}]
    hero_image_url = Column(Text, nullable=True)

    # Audit
    updated_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def is_archived(self) -> bool:
        return self.status == "archived"

    def __repr__(self) -> str:
        return f"<Destination {self.name} v{self.version} [{self.status}]>"
