"""Tests for destination field validation."""

import pytest

from catalog.core.workflow.errors import ChangeValidationError
from catalog.core.workflow.fields import DestinationChangeFields, GalleryItem
from catalog.core.workflow.states import ChangeAction
from catalog.core.workflow.validation import collect_problems, validate_fields

from tests.factories import valid_create_fields


class TestValidateFields:

    def test_valid_create(self):
        validate_fields(ChangeAction.CREATE, valid_create_fields(), require_all=True)

    def test_name_required_for_create(self):
        fields = DestinationChangeFields(city="Bangkok")
        assert collect_problems(ChangeAction.CREATE, fields, require_all=True) == ["name is required"]

    def test_blank_name_counts_as_missing(self):
        fields = DestinationChangeFields(name="   ")
        assert "name is required" in collect_problems(ChangeAction.UPDATE, fields, require_all=False)

    def test_update_without_name_is_valid(self):
        fields = DestinationChangeFields(description="new text")
        assert collect_problems(ChangeAction.UPDATE, fields, require_all=False) == []

    @pytest.mark.parametrize("slug", ["Old-Town", "old_town", "-old", "old--town", "old town"])
    def test_bad_slug(self, slug):
        problems = collect_problems(ChangeAction.UPDATE, DestinationChangeFields(slug=slug), False)
        assert problems == ["slug must contain lowercase letters, numbers, and hyphens only"]

    def test_good_slug(self):
        assert collect_problems(ChangeAction.UPDATE, DestinationChangeFields(slug="old-town-2"), False) == []

    def test_category_allow_list_is_case_insensitive(self):
        fields = DestinationChangeFields(category="Park")
        assert collect_problems(ChangeAction.UPDATE, fields, False, ["park", "museum"]) == []
        assert collect_problems(ChangeAction.UPDATE, fields, False, ["museum"]) == ["category not allowed"]

    def test_empty_allow_list_accepts_anything(self):
        fields = DestinationChangeFields(category="anything")
        assert collect_problems(ChangeAction.UPDATE, fields, False, []) == []

    def test_coordinate_ranges(self):
        fields = DestinationChangeFields(latitude=91.0, longitude=-181.0)
        assert collect_problems(ChangeAction.UPDATE, fields, False) == [
            "latitude must be between -90 and 90",
            "longitude must be between -180 and 180",
        ]

    def test_coordinate_bounds_inclusive(self):
        fields = DestinationChangeFields(latitude=-90.0, longitude=180.0)
        assert collect_problems(ChangeAction.UPDATE, fields, False) == []

    def test_opening_time_out_of_range(self):
        fields = valid_create_fields(opening_time="25:00")
        with pytest.raises(ChangeValidationError) as exc_info:
            validate_fields(ChangeAction.CREATE, fields, require_all=True)
        assert exc_info.value.problems == ["opening_time must be in HH:MM (24h) format"]
        assert "opening_time" in str(exc_info.value)

    def test_closing_time_format(self):
        fields = DestinationChangeFields(closing_time="6pm")
        assert collect_problems(ChangeAction.UPDATE, fields, False) == [
            "closing_time must be in HH:MM (24h) format",
        ]

    def test_gallery_items(self):
        fields = DestinationChangeFields(
            gallery=[GalleryItem(url="http://a", ordering=0), GalleryItem(url=" ", ordering=-1)]
        )
        assert collect_problems(ChangeAction.UPDATE, fields, False) == [
            "gallery[1] url is required",
            "gallery[1] ordering must be non-negative",
        ]

    def test_create_status(self):
        fields = valid_create_fields(status="archived")
        assert collect_problems(ChangeAction.CREATE, fields, True) == [
            "create status must be draft or published",
        ]
        assert collect_problems(ChangeAction.CREATE, valid_create_fields(status="draft"), True) == []

    def test_update_status(self):
        assert collect_problems(ChangeAction.UPDATE, DestinationChangeFields(status="archived"), False) == []
        assert collect_problems(ChangeAction.UPDATE, DestinationChangeFields(status="gone"), False) == [
            "status must be draft, published, or archived",
        ]

    def test_all_problems_reported_together(self):
        fields = DestinationChangeFields(slug="Bad Slug", latitude=100.0, opening_time="99:99")
        with pytest.raises(ChangeValidationError) as exc_info:
            validate_fields(ChangeAction.CREATE, fields, require_all=True)
        assert len(exc_info.value.problems) == 4
        assert str(exc_info.value).startswith("destination change validation failed: name is required; ")
