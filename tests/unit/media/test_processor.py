"""Tests for content-type resolution and the Pillow image processor."""

import io

import pytest
from PIL import Image

from catalog.core.media import ImageUpload, PillowImageProcessor
from catalog.core.media.processor import extension_for, resolve_content_type, scale_to_fit
from catalog.core.workflow.errors import ImageProcessingError


def _image_bytes(fmt: str, size=(100, 50), mode="RGB") -> bytes:
    out = io.BytesIO()
    Image.new(mode, size).save(out, format=fmt)
    return out.getvalue()


def _upload(data: bytes, content_type: str, filename: str = "") -> ImageUpload:
    return ImageUpload(stream=io.BytesIO(data), size=len(data), filename=filename, content_type=content_type)


class TestResolveContentType:

    def test_explicit_value(self):
        assert resolve_content_type("image/PNG", "photo.jpg") == "image/png"

    def test_parameters_stripped(self):
        assert resolve_content_type("image/jpeg; charset=binary", "") == "image/jpeg"

    def test_jpg_alias(self):
        assert resolve_content_type("image/jpg", "") == "image/jpeg"

    def test_from_extension(self):
        assert resolve_content_type("", "photo.png") == "image/png"
        assert resolve_content_type(None, "photo.webp") == "image/webp"

    def test_default_jpeg(self):
        assert resolve_content_type("", "") == "image/jpeg"
        assert resolve_content_type("", "no-extension") == "image/jpeg"

    def test_extension_for(self):
        assert extension_for("image/jpeg", "x.jpeg") == ".jpg"
        assert extension_for("image/webp", "") == ".webp"


class TestScaleToFit:

    def test_landscape(self):
        assert scale_to_fit(4000, 2000, 1000) == (1000, 500)

    def test_portrait(self):
        assert scale_to_fit(1000, 4000, 400) == (100, 400)

    def test_minimum_two_pixels(self):
        assert scale_to_fit(10, 5000, 100) == (2, 100)


class TestPillowImageProcessor:

    def test_small_image_untouched(self):
        data = _image_bytes("PNG")
        result = PillowImageProcessor().process(_upload(data, "image/png"), 3840)

        assert result.resized is False
        assert result.data == data
        assert result.content_type == "image/png"

    def test_jpeg_resized(self):
        data = _image_bytes("JPEG", size=(400, 200))
        result = PillowImageProcessor().process(_upload(data, "image/jpeg"), 100)

        assert result.resized is True
        assert result.content_type == "image/jpeg"
        img = Image.open(io.BytesIO(result.data))
        assert img.format == "JPEG"
        assert img.size == (100, 50)

    def test_rgba_saved_as_jpeg(self):
        data = _image_bytes("PNG", size=(300, 300), mode="RGBA")
        result = PillowImageProcessor().process(_upload(data, "image/jpeg"), 150)

        img = Image.open(io.BytesIO(result.data))
        assert img.format == "JPEG"
        assert img.size == (150, 150)

    def test_webp_resized(self):
        data = _image_bytes("WEBP", size=(300, 100))
        result = PillowImageProcessor().process(_upload(data, "image/webp"), 60)

        assert result.content_type == "image/webp"
        assert Image.open(io.BytesIO(result.data)).size == (60, 20)

    def test_default_max_dimension(self):
        data = _image_bytes("PNG", size=(80, 40))
        result = PillowImageProcessor(max_dimension=40).process(_upload(data, "image/png"), 0)
        assert Image.open(io.BytesIO(result.data)).size == (40, 20)

    def test_garbage_rejected(self):
        with pytest.raises(ImageProcessingError):
            PillowImageProcessor().process(_upload(b"not an image", "image/png"), 100)

    def test_empty_stream(self):
        with pytest.raises(ImageProcessingError):
            PillowImageProcessor().process(ImageUpload(stream=None, size=0), 100)
