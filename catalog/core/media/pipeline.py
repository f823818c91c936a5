"""Media attachment pipeline.

Streams hero and gallery uploads into object storage and records the
resulting URLs on the draft's pending field set. Every attachment bumps
``draft_version`` through the same guarded update as a field edit.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import BinaryIO, Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from catalog.core.config import WorkflowConfig
from catalog.core.workflow.errors import ImageRequired, ImageTooLarge, UnsupportedImageType
from catalog.core.workflow.fields import DestinationChangeFields, GalleryItem
from catalog.core.workflow.guards import load_editable_change, raise_for_cas_miss

from .processor import (
    ImageProcessor,
    ImageUpload,
    SUPPORTED_IMAGE_TYPES,
    extension_for,
    resolve_content_type,
)

logger = logging.getLogger(__name__)


@dataclass
class GalleryUploadResult:
    upload_id: str
    url: str
    ordering: int


class MediaAttachmentPipeline:
    """
    Attaches images to editable change requests.

    Size and content type are checked before any storage I/O; the optional
    processor runs between the check and the upload.
    """

    def __init__(
        self,
        changes,
        storage,
        config: WorkflowConfig,
        *,
        processor: Optional[ImageProcessor] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.changes = changes
        self.storage = storage
        self.config = config
        self.processor = processor
        self.now = now

    def attach_hero_image(self, change_id: UUID, author_id: UUID, upload: ImageUpload):
        """
        Upload a hero image and record it on the draft.

        Returns:
            The updated change request

        Raises:
            ImageRequired, ImageTooLarge, UnsupportedImageType: Bad upload
            ChangeRequestNotFound, Forbidden, NotEditable: Guard failures
            StaleVersion: If the draft changed while the image was uploading
        """
        self._check_size(upload)
        change = load_editable_change(self.changes, change_id, author_id)
        expected_version = change.draft_version
        fields = DestinationChangeFields.from_payload(change.payload)
        content_type = self._check_content_type(upload)

        key = f"destinations/changes/{change_id}/{uuid.uuid4()}{extension_for(content_type, upload.filename)}"
        url = self._store(key, upload, content_type)

        fields = fields.with_updates(
            hero_image_upload_id=key,
            hero_image_url=url,
        )
        updated = self.changes.update_draft(
            change_id,
            expected_version,
            payload=fields.to_payload(),
            hero_image_temp_key=key,
            now=self.now(),
        )
        if updated is None:
            raise_for_cas_miss(self.changes, change_id, expected_version)

        logger.info(f"Attached hero image {key} to change {change_id}")
        return updated

    def attach_gallery_images(
        self,
        change_id: UUID,
        author_id: UUID,
        uploads: Sequence[ImageUpload],
    ) -> Tuple[object, List[GalleryUploadResult]]:
        """
        Append images to the draft's gallery.

        New items get contiguous orderings starting at the current gallery
        length; existing items keep theirs.
        """
        if not uploads:
            raise ImageRequired("at least one gallery image is required")
        for upload in uploads:
            self._check_size(upload)

        change = load_editable_change(self.changes, change_id, author_id)
        expected_version = change.draft_version
        content_types = [self._check_content_type(upload) for upload in uploads]

        fields = DestinationChangeFields.from_payload(change.payload)
        gallery = [item.model_copy() for item in (fields.gallery or [])]
        base_ordering = len(gallery)
        results: List[GalleryUploadResult] = []

        for idx, (upload, content_type) in enumerate(zip(uploads, content_types)):
            key = (
                f"destinations/changes/{change_id}/gallery/"
                f"{uuid.uuid4()}{extension_for(content_type, upload.filename)}"
            )
            url = self._store(key, upload, content_type)
            ordering = base_ordering + idx
            gallery.append(GalleryItem(url=url, ordering=ordering))
            results.append(GalleryUploadResult(upload_id=key, url=url, ordering=ordering))

        fields = fields.with_updates(gallery=gallery)
        updated = self.changes.update_draft(
            change_id,
            expected_version,
            payload=fields.to_payload(),
            now=self.now(),
        )
        if updated is None:
            raise_for_cas_miss(self.changes, change_id, expected_version)

        logger.info(f"Attached {len(results)} gallery image(s) to change {change_id}")
        return updated, results

    def _check_size(self, upload: ImageUpload) -> None:
        if upload is None or upload.stream is None or upload.size <= 0:
            raise ImageRequired()
        if upload.size > self.config.image_max_bytes:
            raise ImageTooLarge(upload.size, self.config.image_max_bytes)

    def _check_content_type(self, upload: ImageUpload) -> str:
        content_type = resolve_content_type(upload.content_type, upload.filename)
        if content_type not in SUPPORTED_IMAGE_TYPES:
            raise UnsupportedImageType(content_type)
        return content_type

    def _store(self, key: str, upload: ImageUpload, content_type: str) -> str:
        stream, size, content_type = self._prepare(upload, content_type)
        url = self.storage.upload(self.config.bucket, key, content_type, stream, size)
        if self.config.public_base_url:
            url = f"{self.config.public_base_url}/{key.lstrip('/')}"
        return url

    def _prepare(self, upload: ImageUpload, content_type: str) -> Tuple[BinaryIO, int, str]:
        if self.processor is None:
            return upload.stream, upload.size, content_type
        result = self.processor.process(
            ImageUpload(
                stream=upload.stream,
                size=upload.size,
                filename=upload.filename,
                content_type=content_type,
            ),
            self.config.image_max_dimension,
        )
        return BytesIO(result.data), len(result.data), result.content_type
