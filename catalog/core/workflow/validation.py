"""Field validation for destination change payloads.

Pure functions. All problems are collected and raised together as one
``ChangeValidationError``.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional

from .errors import ChangeValidationError
from .fields import DestinationChangeFields
from .states import ChangeAction, CREATE_STATUSES, UPDATE_STATUSES

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
TIME_FORMAT = "%H:%M"


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim; empty-after-trim counts as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_categories(categories: Optional[Iterable[str]]) -> set[str]:
    return {c.strip().lower() for c in (categories or []) if c and c.strip()}


def _is_valid_time(raw: str) -> bool:
    try:
        datetime.strptime(raw, TIME_FORMAT)
    except ValueError:
        return False
    return True


def collect_problems(
    action: ChangeAction,
    fields: DestinationChangeFields,
    require_all: bool,
    allowed_categories: Optional[Iterable[str]] = None,
) -> List[str]:
    """Return every rule violation in ``fields`` (empty list when valid)."""
    action = ChangeAction(action)
    allowed = normalize_categories(allowed_categories)
    problems: List[str] = []

    if require_all or fields.is_set("name"):
        if _clean(fields.name) is None:
            problems.append("name is required")

    slug = _clean(fields.slug)
    if slug is not None and not SLUG_PATTERN.match(slug):
        problems.append("slug must contain lowercase letters, numbers, and hyphens only")

    category = _clean(fields.category)
    if category is not None and allowed and category.lower() not in allowed:
        problems.append("category not allowed")

    if fields.latitude is not None and not -90 <= fields.latitude <= 90:
        problems.append("latitude must be between -90 and 90")
    if fields.longitude is not None and not -180 <= fields.longitude <= 180:
        problems.append("longitude must be between -180 and 180")

    for label in ("opening_time", "closing_time"):
        raw = _clean(getattr(fields, label))
        if raw is not None and not _is_valid_time(raw):
            problems.append(f"{label} must be in HH:MM (24h) format")

    for idx, item in enumerate(fields.gallery or []):
        if not (item.url or "").strip():
            problems.append(f"gallery[{idx}] url is required")
        if item.ordering < 0:
            problems.append(f"gallery[{idx}] ordering must be non-negative")

    status = _clean(fields.status)
    if status is not None:
        if action == ChangeAction.CREATE and status not in {s.value for s in CREATE_STATUSES}:
            problems.append("create status must be draft or published")
        elif action == ChangeAction.UPDATE and status not in {s.value for s in UPDATE_STATUSES}:
            problems.append("status must be draft, published, or archived")

    return problems


def validate_fields(
    action: ChangeAction,
    fields: DestinationChangeFields,
    require_all: bool,
    allowed_categories: Optional[Iterable[str]] = None,
) -> None:
    """
    Validate a field payload for ``action``.

    Args:
        action: create, update or delete
        fields: The sparse field patch
        require_all: True for creates; makes ``name`` mandatory
        allowed_categories: Optional allow-list, matched case-insensitively

    Raises:
        ChangeValidationError: With every problem found
    """
    problems = collect_problems(action, fields, require_all, allowed_categories)
    if problems:
        raise ChangeValidationError(problems)
