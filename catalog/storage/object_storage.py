"""S3/MinIO object storage.

The workflow only needs ``upload``; anything implementing the ``ObjectStorage``
protocol can be swapped in.
"""

import logging
from typing import BinaryIO, Optional, Protocol

from catalog.core.config import Settings

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    def upload(self, bucket: str, key: str, content_type: str, stream: BinaryIO, size: int) -> str:
        """Store ``size`` bytes from ``stream`` and return the object's public URL."""
        ...


class S3ObjectStorage:
    """ObjectStorage backed by an S3-compatible endpoint via boto3."""

    def __init__(
        self,
        client,
        *,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
    ):
        self.client = client
        self.endpoint_url = (endpoint_url or "").rstrip("/")
        self.region = region

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        import boto3
        from botocore.config import Config

        client = boto3.client(
            "s3",
            region_name=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            # MinIO needs path-style addressing
            config=Config(s3={"addressing_style": "path"}) if settings.s3_endpoint_url else None,
        )
        return cls(client, endpoint_url=settings.s3_endpoint_url, region=settings.s3_region)

    def upload(self, bucket: str, key: str, content_type: str, stream: BinaryIO, size: int) -> str:
        self.client.upload_fileobj(
            stream,
            bucket,
            key,
            ExtraArgs={"ContentType": content_type},
        )
        logger.debug(f"Uploaded {size} bytes to {bucket}/{key}")
        return self.public_url(bucket, key)

    def public_url(self, bucket: str, key: str) -> str:
        key = key.lstrip("/")
        if self.endpoint_url:
            return f"{self.endpoint_url}/{bucket}/{key}"
        if self.region:
            return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{bucket}.s3.amazonaws.com/{key}"


def build_object_storage(settings: Settings) -> Optional[ObjectStorage]:
    """Return an S3 storage when a bucket is configured, otherwise None."""
    if not settings.storage_bucket:
        return None
    return S3ObjectStorage.from_settings(settings)
