"""Sparse field patch for destination change requests.

Presence is tracked by pydantic's ``model_fields_set``: a field that was
never assigned means "leave unchanged", a field assigned ``None`` or an empty
string means "clear". Serialisation uses ``exclude_unset`` so presence
survives the trip through the JSON payload column.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


# Fields copied onto the destination aggregate when present
DESTINATION_FIELDS = (
    "name",
    "slug",
    "city",
    "country",
    "category",
    "description",
    "latitude",
    "longitude",
    "contact",
    "opening_time",
    "closing_time",
)

STRING_FIELDS = (
    "name",
    "slug",
    "city",
    "country",
    "category",
    "description",
    "contact",
    "opening_time",
    "closing_time",
    "status",
    "hero_image_upload_id",
    "hero_image_url",
)


class GalleryItem(BaseModel):
    """One gallery image."""

    url: str = ""
    caption: Optional[str] = None
    ordering: int = 0


class DestinationChangeFields(BaseModel):
    """Every business field is optional; see module docstring for presence rules."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    slug: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    gallery: Optional[List[GalleryItem]] = None
    status: Optional[str] = None
    hero_image_upload_id: Optional[str] = None
    hero_image_url: Optional[str] = None
    hard_delete: Optional[bool] = None

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set

    def present(self) -> Dict[str, Any]:
        """Fields that were explicitly set, with their values."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "DestinationChangeFields":
        return cls.model_validate(payload or {})

    def with_updates(self, **updates: Any) -> "DestinationChangeFields":
        """Copy with ``updates`` applied and marked as present."""
        data = self.to_payload()
        for key, value in updates.items():
            if isinstance(value, list):
                value = [
                    item.model_dump(mode="json") if isinstance(item, BaseModel) else item
                    for item in value
                ]
            data[key] = value
        return self.from_payload(data)

    def normalized(self) -> "DestinationChangeFields":
        """Copy with string values trimmed. Presence is preserved."""
        data = self.to_payload()
        for name in STRING_FIELDS:
            if isinstance(data.get(name), str):
                data[name] = data[name].strip()
        if data.get("gallery"):
            for item in data["gallery"]:
                if isinstance(item.get("url"), str):
                    item["url"] = item["url"].strip()
                caption = item.get("caption")
                if isinstance(caption, str):
                    item["caption"] = caption.strip() or None
        return self.from_payload(data)

    @property
    def wants_hard_delete(self) -> bool:
        return bool(self.hard_delete)
