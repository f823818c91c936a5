"""Image uploads and the pluggable image processor.

``PillowImageProcessor`` downsizes images whose longest side exceeds a
maximum dimension and leaves smaller images byte-for-byte untouched.
"""

import logging
import mimetypes
import os
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Optional, Protocol

from catalog.core.workflow.errors import ImageProcessingError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"

SUPPORTED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

_PILLOW_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


@dataclass
class ImageUpload:
    """A raw upload as received from the caller."""
    stream: Optional[BinaryIO]
    size: int
    filename: str = ""
    content_type: str = ""


@dataclass
class ProcessedImage:
    data: bytes
    content_type: str
    resized: bool = False


class ImageProcessor(Protocol):
    def process(self, upload: ImageUpload, max_dimension: int) -> ProcessedImage:
        ...


def resolve_content_type(content_type: Optional[str], filename: Optional[str]) -> str:
    """
    Explicit content type first, then the filename extension, then JPEG.
    """
    value = (content_type or "").split(";")[0].strip().lower()
    if value == "image/jpg":
        value = "image/jpeg"
    if value:
        return value
    guessed, _ = mimetypes.guess_type(filename or "")
    if guessed:
        return guessed.lower()
    ext = os.path.splitext(filename or "")[1].lower()
    if ext == ".webp":
        return "image/webp"
    return DEFAULT_CONTENT_TYPE


def extension_for(content_type: str, filename: Optional[str]) -> str:
    if content_type in SUPPORTED_IMAGE_TYPES:
        return SUPPORTED_IMAGE_TYPES[content_type]
    ext = os.path.splitext(filename or "")[1]
    return ext or ".img"


def scale_to_fit(width: int, height: int, max_dim: int) -> tuple[int, int]:
    """Scale the longest side down to ``max_dim``, keeping the aspect ratio."""
    if width >= height:
        new_w = max_dim
        new_h = round(height * max_dim / width)
    else:
        new_h = max_dim
        new_w = round(width * max_dim / height)
    return max(2, new_w), max(2, new_h)


class PillowImageProcessor:
    """ImageProcessor that resizes with Pillow."""

    def __init__(self, max_dimension: int = 3840, jpeg_quality: int = 85, webp_quality: int = 85):
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality
        self.webp_quality = webp_quality

    def process(self, upload: ImageUpload, max_dimension: int) -> ProcessedImage:
        from PIL import Image, UnidentifiedImageError

        if upload.stream is None:
            raise ImageProcessingError("empty stream")
        data = upload.stream.read()
        if not data:
            raise ImageProcessingError("empty image data")

        content_type = resolve_content_type(upload.content_type, upload.filename)
        target = max_dimension if max_dimension > 0 else self.max_dimension

        try:
            img = Image.open(BytesIO(data))
            width, height = img.size
        except (UnidentifiedImageError, OSError) as e:
            raise ImageProcessingError(f"decode dimensions: {e}") from e

        if width <= target and height <= target:
            return ProcessedImage(data=data, content_type=content_type, resized=False)

        new_size = scale_to_fit(width, height, target)
        resized = img.resize(new_size, resample=Image.Resampling.LANCZOS)

        out = BytesIO()
        fmt = _PILLOW_FORMATS.get(content_type)
        if fmt == "JPEG":
            if resized.mode in {"RGBA", "LA", "P"}:
                resized = resized.convert("RGB")
            resized.save(out, format="JPEG", quality=self.jpeg_quality, optimize=True)
        elif fmt == "WEBP":
            resized.save(out, format="WEBP", quality=self.webp_quality)
        else:
            resized.save(out, format="PNG", optimize=True)
            content_type = "image/png"

        logger.debug(f"Resized {upload.filename or 'image'} from {width}x{height} to {new_size[0]}x{new_size[1]}")
        return ProcessedImage(data=out.getvalue(), content_type=content_type, resized=True)
