"""Service wiring.

Builds the workflow and import services over one SQLAlchemy session. The
caller owns the session and decides when to commit.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from catalog.common.logger import configure_logging
from catalog.core.config import ImportConfig, Settings, WorkflowConfig, get_settings
from catalog.core.imports import DestinationImportService
from catalog.core.media import PillowImageProcessor
from catalog.core.workflow.service import DestinationWorkflowService
from catalog.db.repositories import (
    ChangeRequestRepository,
    DestinationRepository,
    ImportRepository,
    VersionRepository,
)
from catalog.storage import ObjectStorage, build_object_storage

logger = logging.getLogger(__name__)

__all__ = ["Services", "build_services", "configure_logging"]


@dataclass
class Services:
    workflow: DestinationWorkflowService
    imports: DestinationImportService


def build_services(
    session: Session,
    settings: Optional[Settings] = None,
    storage: Optional[ObjectStorage] = None,
) -> Services:
    """
    Wire repositories, storage and the image processor into services.

    Args:
        session: Session shared by every repository
        settings: Defaults to ``get_settings()``
        storage: Overrides the S3 storage built from settings
    """
    settings = settings or get_settings()
    if storage is None:
        storage = build_object_storage(settings)

    processor = None
    if settings.image_processing_enabled:
        processor = PillowImageProcessor(max_dimension=settings.image_max_dimension)

    destinations = DestinationRepository(session)
    workflow = DestinationWorkflowService(
        ChangeRequestRepository(session),
        destinations,
        VersionRepository(session),
        storage,
        WorkflowConfig.from_settings(settings),
        image_processor=processor,
    )
    imports = DestinationImportService(
        ImportRepository(session),
        destinations,
        workflow,
        storage,
        ImportConfig.from_settings(settings),
    )
    logger.debug(f"Services built (image processing: {processor is not None})")
    return Services(workflow=workflow, imports=imports)
