"""Object storage collaborators."""

from .object_storage import ObjectStorage, S3ObjectStorage, build_object_storage

__all__ = ["ObjectStorage", "S3ObjectStorage", "build_object_storage"]
