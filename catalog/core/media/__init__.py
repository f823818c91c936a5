"""Hero and gallery image attachment for change-request drafts."""

from .processor import (
    ImageProcessor,
    ImageUpload,
    PillowImageProcessor,
    ProcessedImage,
    SUPPORTED_IMAGE_TYPES,
)
from .pipeline import GalleryUploadResult, MediaAttachmentPipeline

__all__ = [
    "ImageProcessor",
    "ImageUpload",
    "PillowImageProcessor",
    "ProcessedImage",
    "SUPPORTED_IMAGE_TYPES",
    "GalleryUploadResult",
    "MediaAttachmentPipeline",
]
