"""Destination workflow service.

High-level API over the change-request lifecycle: drafting, editing,
submission, review and media attachment. Persistence goes through the
repositories passed in; the service flushes but never commits.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from catalog.core.config import WorkflowConfig
from catalog.core.media import GalleryUploadResult, ImageProcessor, ImageUpload, MediaAttachmentPipeline
from catalog.db.models import ChangeRequest

from .applier import ApprovalApplier
from .errors import (
    ChangeRequestNotFound,
    ChangeValidationError,
    DestinationNotFound,
    Forbidden,
    HardDeleteNotAllowed,
    InvalidChangeAction,
    InvalidChangeState,
)
from .fields import DestinationChangeFields
from .guards import load_editable_change, raise_for_cas_miss
from .machine import ChangeRequestStateMachine
from .states import ChangeAction, ChangeStatus, ChangeTransition
from .validation import normalize_categories, validate_fields

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


class DestinationWorkflowService:
    """
    Owns the lifecycle of destination change requests.

    Handles:
    - Creating and editing drafts with optimistic concurrency
    - Submitting drafts for review
    - Approving (applying to the destination + ledger) and rejecting
    - Attaching hero and gallery images to drafts
    """

    def __init__(
        self,
        changes,
        destinations,
        versions,
        storage=None,
        config: Optional[WorkflowConfig] = None,
        *,
        image_processor: Optional[ImageProcessor] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Initialize the workflow service.

        Args:
            changes: ChangeRequestRepository
            destinations: DestinationRepository (also the destination lookup)
            versions: VersionRepository
            storage: ObjectStorage used for image uploads
            config: Policy and media limits
            image_processor: Optional processor applied to uploads
            now: Clock, replaceable in tests
        """
        self.changes = changes
        self.destinations = destinations
        self.versions = versions
        self.config = config or WorkflowConfig()
        self.now = now
        self.allowed_categories = normalize_categories(self.config.allowed_categories)
        self.applier = ApprovalApplier(
            destinations,
            versions,
            hard_delete_allowed=self.config.hard_delete_allowed,
            now=now,
        )
        self.media = MediaAttachmentPipeline(
            changes,
            storage,
            self.config,
            processor=image_processor,
            now=now,
        )

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------

    def create_draft(
        self,
        author_id: UUID,
        action: ChangeAction,
        fields: DestinationChangeFields,
        destination_id: Optional[UUID] = None,
    ):
        """
        Create a new draft change request.

        Raises:
            InvalidChangeAction: Unknown action
            ChangeValidationError: Bad destination reference or fields
            DestinationNotFound: Update/delete target does not exist
            HardDeleteNotAllowed: Delete asks for a hard delete against policy
        """
        action = self._parse_action(action)
        fields = fields.normalized()
        self._check_destination_reference(action, destination_id, fields)

        if action != ChangeAction.DELETE:
            self.validate_fields(action, fields, require_all=action == ChangeAction.CREATE)

        now = self.now()
        change = self.changes.create(
            ChangeRequest(
                destination_id=destination_id,
                action=action.value,
                payload=fields.to_payload(),
                status=ChangeStatus.DRAFT.value,
                draft_version=1,
                submitted_by=author_id,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"Created {action.value} draft {change.id} by {author_id}")
        return change

    def update_draft(
        self,
        change_id: UUID,
        author_id: UUID,
        expected_draft_version: int,
        fields: DestinationChangeFields,
    ):
        """
        Replace a draft's fields.

        Raises:
            Forbidden: Caller is not the author
            NotEditable: Status is not draft or rejected
            StaleVersion: ``expected_draft_version`` is not the current version
            ChangeValidationError: Fields are invalid
            HardDeleteNotAllowed: Delete draft asks for a forbidden hard delete
        """
        change = load_editable_change(self.changes, change_id, author_id)
        if expected_draft_version != change.draft_version:
            raise_for_cas_miss(self.changes, change_id, expected_draft_version)

        action = ChangeAction(change.action)
        fields = fields.normalized()
        if action != ChangeAction.DELETE:
            self.validate_fields(action, fields, require_all=action == ChangeAction.CREATE)
        elif fields.wants_hard_delete and not self.config.hard_delete_allowed:
            raise HardDeleteNotAllowed()

        updated = self.changes.update_draft(
            change_id,
            expected_draft_version,
            payload=fields.to_payload(),
            now=self.now(),
        )
        if updated is None:
            raise_for_cas_miss(self.changes, change_id, expected_draft_version)
        return updated

    def submit_draft(self, change_id: UUID, author_id: UUID):
        """
        Send a draft (or a reworked rejected request) to review.

        Raises:
            Forbidden: Caller is not the author
            InvalidChangeState: Status is not draft or rejected
            ChangeValidationError: Stored fields no longer validate
        """
        change = self._get(change_id)
        if change.submitted_by != author_id:
            raise Forbidden()
        machine = ChangeRequestStateMachine(change.id, change.status)
        machine.transition(ChangeTransition.SUBMIT, author_id)

        action = ChangeAction(change.action)
        if action != ChangeAction.DELETE:
            self.validate_fields(
                action,
                DestinationChangeFields.from_payload(change.payload),
                require_all=action == ChangeAction.CREATE,
            )

        submitted = self.changes.mark_submitted(change.id, self.now())
        if submitted is None:
            current = self._get(change_id)
            raise InvalidChangeState(current.status, ChangeTransition.SUBMIT.value)
        logger.info(f"Change {change_id} submitted for review")
        return submitted

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def approve(self, change_id: UUID, reviewer_id: UUID):
        """
        Approve a pending change and apply it.

        A concurrent approval that loses the status race has already applied its
        destination mutation and ledger row when it raises InvalidChangeState;
        the caller must roll back the session.

        Returns:
            Tuple of (change request, resulting destination or None after a hard delete)

        Raises:
            InvalidChangeState: Not pending review (including a second approval)
            ReviewerConflict: Reviewer is the author and self-review is disallowed
            ChangeValidationError: Payload no longer validates
            DestinationNotFound: Update/delete target vanished
            HardDeleteNotAllowed: Hard delete against policy
            LedgerWriteError: Destination mutated but the snapshot was not written
        """
        change = self.changes.find_for_review(change_id)
        if change is None:
            raise ChangeRequestNotFound(change_id)
        machine = self._machine(change)
        machine.transition(ChangeTransition.APPROVE, reviewer_id)

        action = ChangeAction(change.action)
        if action != ChangeAction.DELETE:
            self.validate_fields(
                action,
                DestinationChangeFields.from_payload(change.payload),
                require_all=action == ChangeAction.CREATE,
            )

        destination = self.applier.apply(change, reviewer_id)
        published_version = destination.version if destination is not None else None

        approved = self.changes.mark_reviewed(
            change.id,
            ChangeStatus.APPROVED,
            reviewed_by=reviewer_id,
            reviewed_at=self.now(),
            review_message=None,
            published_version=published_version,
        )
        if approved is None:
            current = self._get(change_id)
            raise InvalidChangeState(current.status, ChangeTransition.APPROVE.value)

        logger.info(f"Change {change_id} approved by {reviewer_id} ({action.value})")
        return approved, destination

    def reject(self, change_id: UUID, reviewer_id: UUID, message: str):
        """
        Reject a pending change. The destination is never touched.

        Raises:
            InvalidChangeState: Not pending review
            ReviewerConflict: Reviewer is the author and self-review is disallowed
        """
        change = self.changes.find_for_review(change_id)
        if change is None:
            raise ChangeRequestNotFound(change_id)
        machine = self._machine(change)
        machine.transition(ChangeTransition.REJECT, reviewer_id)

        rejected = self.changes.mark_reviewed(
            change.id,
            ChangeStatus.REJECTED,
            reviewed_by=reviewer_id,
            reviewed_at=self.now(),
            review_message=(message or "").strip() or None,
        )
        if rejected is None:
            current = self._get(change_id)
            raise InvalidChangeState(current.status, ChangeTransition.REJECT.value)

        logger.info(f"Change {change_id} rejected by {reviewer_id}")
        return rejected

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def attach_hero_image(self, change_id: UUID, author_id: UUID, upload: ImageUpload):
        return self.media.attach_hero_image(change_id, author_id, upload)

    def attach_gallery_images(
        self,
        change_id: UUID,
        author_id: UUID,
        uploads: Sequence[ImageUpload],
    ) -> Tuple[object, List[GalleryUploadResult]]:
        return self.media.attach_gallery_images(change_id, author_id, uploads)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_change(self, change_id: UUID):
        return self._get(change_id)

    def list_changes(self, change_filter):
        """List change requests; limit defaults to 50, negative offsets clamp to 0."""
        return self.changes.list(
            replace(
                change_filter,
                limit=change_filter.limit if change_filter.limit > 0 else DEFAULT_LIST_LIMIT,
                offset=max(change_filter.offset, 0),
            )
        )

    def list_versions(self, destination_id: UUID, limit: int = DEFAULT_LIST_LIMIT):
        """Ledger entries for a destination, newest first."""
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        return self.versions.list_by_destination(destination_id, limit)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_fields(
        self,
        action: ChangeAction,
        fields: DestinationChangeFields,
        require_all: bool,
    ) -> None:
        """Validate against this service's category allow-list."""
        validate_fields(action, fields, require_all, self.allowed_categories)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, change_id: UUID):
        change = self.changes.find_by_id(change_id)
        if change is None:
            raise ChangeRequestNotFound(change_id)
        return change

    def _machine(self, change) -> ChangeRequestStateMachine:
        return ChangeRequestStateMachine(
            change.id,
            change.status,
            submitted_by=change.submitted_by,
            self_review_allowed=self.config.self_review_allowed,
        )

    @staticmethod
    def _parse_action(action) -> ChangeAction:
        try:
            return ChangeAction(action)
        except ValueError:
            raise InvalidChangeAction(action) from None

    def _check_destination_reference(
        self,
        action: ChangeAction,
        destination_id: Optional[UUID],
        fields: DestinationChangeFields,
    ) -> None:
        if action == ChangeAction.CREATE:
            if destination_id is not None:
                raise ChangeValidationError(["destination_id must be empty for creates"])
            return

        if destination_id is None:
            raise ChangeValidationError([f"destination_id required for {action.value}"])
        if self.destinations.find_by_id(destination_id) is None:
            raise DestinationNotFound(destination_id)
        if action == ChangeAction.DELETE and fields.wants_hard_delete and not self.config.hard_delete_allowed:
            raise HardDeleteNotAllowed()
