"""Tests for CSV parsing and row mapping."""

import pytest
from uuid import UUID

from catalog.core.imports.parser import (
    REQUIRED_COLUMNS,
    build_change_fields,
    build_gallery,
    build_object_name,
    missing_columns,
    normalize_header,
    parse_csv,
    row_to_map,
)
from catalog.core.workflow.errors import ImportEmptyFile, ImportMalformedFile


JOB_ID = UUID("6f1c2a52-93f4-4b4f-9a55-0d3f1b2c7e10")


class TestParseCsv:

    def test_headers_normalised(self):
        header, records = parse_csv(b" Name ,CITY\nOld Town,Bangkok\n")
        assert header == ["name", "city"]
        assert records == [["Old Town", "Bangkok"]]

    def test_bom_tolerated(self):
        header, _ = parse_csv(b"\xef\xbb\xbfname,city\nA,B\n")
        assert header == ["name", "city"]

    def test_blank_records_skipped(self):
        _, records = parse_csv(b"name,city\n\n , \nA,B\n")
        assert records == [["A", "B"]]

    def test_quoted_commas(self):
        _, records = parse_csv(b'name,description\nA,"big, green park"\n')
        assert records == [["A", "big, green park"]]

    def test_no_header(self):
        with pytest.raises(ImportEmptyFile):
            parse_csv(b"")

    def test_invalid_utf8(self):
        with pytest.raises(ImportMalformedFile) as exc_info:
            parse_csv(b"name,city\nA,\xe9\n")
        assert exc_info.value.reason == "not valid UTF-8 at byte 12"
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_normalize_header(self):
        assert normalize_header("  Hero_Image_URL ") == "hero_image_url"


class TestColumns:

    def test_missing_columns_in_required_order(self):
        assert missing_columns(["name", "city"]) == [
            "category", "country", "description", "latitude", "longitude", "contact", "hero_image_url",
        ]

    def test_all_present(self):
        assert missing_columns(list(REQUIRED_COLUMNS) + ["slug"]) == []

    def test_row_to_map_pads_short_records(self):
        assert row_to_map(["name", "city", "country"], [" A ", "B"]) == {"name": "A", "city": "B", "country": ""}


class TestBuildChangeFields:

    def test_full_row(self):
        fields, errors = build_change_fields({
            "name": "Old Town",
            "slug": "Old-Town",
            "category": "park",
            "city": "Bangkok",
            "country": "Thailand",
            "description": "desc",
            "latitude": "13.7",
            "longitude": "100.5",
            "contact": "",
            "hero_image_url": "http://cdn.test/a.jpg",
            "opening_time": "09:00",
        })

        assert errors == []
        assert fields.slug == "old-town"
        assert fields.latitude == 13.7
        assert fields.status == "published"
        assert fields.opening_time == "09:00"
        assert not fields.is_set("contact")
        assert not fields.is_set("closing_time")
        assert not fields.is_set("gallery")

    def test_status_normalised(self):
        fields, errors = build_change_fields({"status": "Draft"})
        assert errors == []
        assert fields.status == "draft"

    def test_bad_status(self):
        fields, errors = build_change_fields({"status": "gone"})
        assert errors == ["status must be draft, published, or archived"]
        assert not fields.is_set("status")

    def test_bad_coordinates(self):
        fields, errors = build_change_fields({"latitude": "north", "longitude": "east"})
        assert errors[0].startswith("invalid latitude: ")
        assert errors[1].startswith("invalid longitude: ")
        assert fields.latitude is None

    def test_gallery_columns(self):
        gallery = build_gallery({
            "gallery_1_url": "http://cdn.test/1.jpg",
            "gallery_1_caption": "Front",
            "gallery_2_url": "",
            "gallery_3_url": "http://cdn.test/3.jpg",
        })
        assert [(g.url, g.caption, g.ordering) for g in gallery] == [
            ("http://cdn.test/1.jpg", "Front", 0),
            ("http://cdn.test/3.jpg", None, 2),
        ]

    def test_no_gallery(self):
        assert build_gallery({}) is None


class TestObjectName:

    def test_spaces_replaced(self):
        assert build_object_name(JOB_ID, "my file.csv") == f"destinations/imports/{JOB_ID}/my_file.csv"

    def test_path_stripped(self):
        assert build_object_name(JOB_ID, "/tmp/uploads/data.csv") == f"destinations/imports/{JOB_ID}/data.csv"

    def test_default_name(self):
        assert build_object_name(JOB_ID, "  ") == f"destinations/imports/{JOB_ID}/upload.csv"
