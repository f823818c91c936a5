"""CSV parsing and row mapping for destination imports."""

import csv
import io
import os
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from catalog.core.workflow.errors import ImportEmptyFile, ImportMalformedFile
from catalog.core.workflow.fields import DestinationChangeFields, GalleryItem
from catalog.core.workflow.states import DestinationStatus

REQUIRED_COLUMNS = (
    "name",
    "category",
    "city",
    "country",
    "description",
    "latitude",
    "longitude",
    "contact",
    "hero_image_url",
)

TEXT_COLUMNS = ("category", "city", "country", "description", "contact", "opening_time", "closing_time")

GALLERY_SLOTS = 3
DEFAULT_UPLOAD_NAME = "upload.csv"


def normalize_header(header: str) -> str:
    return (header or "").strip().lower()


def parse_csv(contents: bytes) -> Tuple[List[str], List[List[str]]]:
    """
    Decode and split a CSV upload.

    Returns:
        (normalised header, non-blank data records)

    Raises:
        ImportEmptyFile: If there is no header line
        ImportMalformedFile: If the bytes are not UTF-8 or the CSV cannot be split
    """
    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportMalformedFile(f"not valid UTF-8 at byte {e.start}") from e

    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    try:
        header = next(reader, None)
        if header is None:
            raise ImportEmptyFile()
        records = [record for record in reader if any(cell.strip() for cell in record)]
    except csv.Error as e:
        raise ImportMalformedFile(f"line {reader.line_num}: {e}") from e
    return [normalize_header(h) for h in header], records


def missing_columns(header: Sequence[str], required: Sequence[str] = REQUIRED_COLUMNS) -> List[str]:
    present = set(header)
    return [column for column in required if column not in present]


def row_to_map(header: Sequence[str], record: Sequence[str]) -> Dict[str, str]:
    """Pair header names with trimmed cell values; short records pad with ''."""
    return {
        key: record[idx].strip() if idx < len(record) else ""
        for idx, key in enumerate(header)
    }


def build_gallery(values: Dict[str, str]) -> Optional[List[GalleryItem]]:
    items = []
    for idx in range(1, GALLERY_SLOTS + 1):
        url = values.get(f"gallery_{idx}_url", "").strip()
        if not url:
            continue
        caption = values.get(f"gallery_{idx}_caption", "").strip() or None
        items.append(GalleryItem(url=url, caption=caption, ordering=idx - 1))
    return items or None


def build_change_fields(values: Dict[str, str]) -> Tuple[DestinationChangeFields, List[str]]:
    """
    Map one CSV row onto a create patch.

    Blank cells are left unset. Parse problems are returned rather than
    raised so the caller can report them alongside validation errors.
    """
    data: Dict[str, object] = {}
    errors: List[str] = []

    name = values.get("name", "").strip()
    if name:
        data["name"] = name
    slug = values.get("slug", "").strip()
    if slug:
        data["slug"] = slug.lower()
    for column in TEXT_COLUMNS:
        value = values.get(column, "").strip()
        if value:
            data[column] = value

    for column in ("latitude", "longitude"):
        raw = values.get(column, "").strip()
        if not raw:
            continue
        try:
            data[column] = float(raw)
        except ValueError as e:
            errors.append(f"invalid {column}: {e}")

    hero = values.get("hero_image_url", "").strip()
    if hero:
        data["hero_image_url"] = hero

    status = (values.get("status", "").strip() or DestinationStatus.PUBLISHED.value).lower()
    if status in {s.value for s in DestinationStatus}:
        data["status"] = status
    else:
        errors.append("status must be draft, published, or archived")

    gallery = build_gallery(values)
    if gallery:
        data["gallery"] = [item.model_dump() for item in gallery]

    return DestinationChangeFields.model_validate(data), errors


def build_object_name(job_id: UUID, filename: str) -> str:
    name = os.path.basename((filename or "").strip()) or DEFAULT_UPLOAD_NAME
    name = name.replace(" ", "_")
    return f"destinations/imports/{job_id}/{name}"
