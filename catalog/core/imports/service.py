"""CSV bulk import of destinations.

Each valid row becomes a submitted ``create`` change request; every row's
outcome is stored on the import job so the uploader can fix and retry the
failed ones.
"""

import io
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID

from catalog.core.config import ImportConfig
from catalog.core.workflow.errors import (
    ChangeValidationError,
    ImportEmptyFile,
    ImportInvalidHeaders,
    ImportJobNotFound,
    ImportRowLimitExceeded,
    ImportTooLarge,
    WorkflowError,
)
from catalog.core.workflow.fields import DestinationChangeFields
from catalog.core.workflow.states import ChangeAction, ImportJobStatus, ImportRowStatus
from catalog.db.models import DestinationImportJob, DestinationImportRow

from .parser import (
    build_change_fields,
    build_object_name,
    missing_columns,
    parse_csv,
    row_to_map,
)

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"


@dataclass
class ImportTally:
    """Counters accumulated over one import run."""

    processed_rows: int = 0
    rows_failed: int = 0
    changes_created: int = 0
    pending_change_ids: List[UUID] = field(default_factory=list)

    def record_row(self, row: DestinationImportRow, cap: int) -> None:
        self.processed_rows += 1
        if row.error:
            self.rows_failed += 1
        if row.change_id is not None:
            self.changes_created += 1
            if len(self.pending_change_ids) < cap:
                self.pending_change_ids.append(row.change_id)

    def apply_to(self, job: DestinationImportJob) -> None:
        job.processed_rows = self.processed_rows
        job.rows_failed = self.rows_failed
        job.changes_created = self.changes_created
        job.pending_change_ids = [str(change_id) for change_id in self.pending_change_ids]


@dataclass
class ImportOutcome:
    job: DestinationImportJob
    rows: List[DestinationImportRow]
    pending_change_ids: List[UUID] = field(default_factory=list)


class DestinationImportService:
    """Turns CSV uploads into submitted create change requests."""

    def __init__(
        self,
        repo,
        destinations,
        workflow,
        storage=None,
        config: Optional[ImportConfig] = None,
        *,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Args:
            repo: ImportRepository
            destinations: Anything with ``find_by_slug``
            workflow: DestinationWorkflowService (validate, create, submit)
            storage: ObjectStorage for the raw upload; optional
            config: Import limits
        """
        self.repo = repo
        self.destinations = destinations
        self.workflow = workflow
        self.storage = storage
        self.config = config or ImportConfig()
        self.now = now

    def import_csv(
        self,
        uploader_id: UUID,
        filename: str,
        contents: bytes,
        dry_run: bool = False,
        notes: Optional[str] = None,
    ) -> ImportOutcome:
        """
        Import destinations from CSV bytes.

        Raises:
            ImportEmptyFile: No bytes, or no data rows
            ImportTooLarge: Upload above the byte ceiling
            ImportMalformedFile: Not UTF-8, or not splittable as CSV
            ImportInvalidHeaders: Required columns missing
            ImportRowLimitExceeded: More data rows than allowed
        """
        if not contents:
            raise ImportEmptyFile()
        if len(contents) > self.config.max_file_bytes:
            raise ImportTooLarge(len(contents), self.config.max_file_bytes)

        header, records = parse_csv(contents)
        missing = missing_columns(header)
        if missing:
            raise ImportInvalidHeaders(missing)
        if not records:
            raise ImportEmptyFile()
        if len(records) > self.config.max_rows:
            raise ImportRowLimitExceeded(len(records), self.config.max_rows)

        job_id = uuid.uuid4()
        object_name = build_object_name(job_id, filename)
        if self.storage is not None and self.config.bucket:
            self.storage.upload(
                self.config.bucket,
                object_name,
                CSV_CONTENT_TYPE,
                io.BytesIO(contents),
                len(contents),
            )

        job = self.repo.create_job(
            DestinationImportJob(
                id=job_id,
                uploaded_by=uploader_id,
                status=ImportJobStatus.PROCESSING.value,
                dry_run=dry_run,
                file_key=object_name,
                notes=notes,
                submitted_at=self.now(),
                total_rows=len(records),
                pending_change_ids=[],
            )
        )
        logger.info(f"Import job {job.id} started: {len(records)} row(s), dry_run={dry_run}")

        tally = ImportTally()
        rows: List[DestinationImportRow] = []
        try:
            existing_slugs: Dict[str, bool] = {}
            seen_slugs: Dict[str, int] = {}
            for idx, record in enumerate(records):
                # A row's change request and outcome record commit or roll back together
                with self.repo.savepoint():
                    row = self._process_row(
                        job, idx + 2, row_to_map(header, record), uploader_id, dry_run,
                        seen_slugs, existing_slugs,
                    )
                    row = self.repo.insert_row(row)
                rows.append(row)
                tally.record_row(row, self.config.max_pending_ids)
        except Exception:
            logger.exception(f"Import job {job.id} failed after {tally.processed_rows} row(s)")
            self._fail_job(job, tally)
            raise

        tally.apply_to(job)
        job.status = ImportJobStatus.COMPLETED.value
        job.completed_at = self.now()
        job = self.repo.update_job(job)

        logger.info(
            f"Import job {job.id} completed: {tally.processed_rows} processed, "
            f"{tally.rows_failed} failed, {tally.changes_created} change(s) created"
        )
        return ImportOutcome(job=job, rows=rows, pending_change_ids=list(tally.pending_change_ids))

    def get_job(self, job_id: UUID) -> ImportOutcome:
        job = self.repo.find_job(job_id)
        if job is None:
            raise ImportJobNotFound(job_id)
        rows = self.repo.list_rows(job.id)
        pending = [
            row.change_id
            for row in rows
            if row.status == ImportRowStatus.PENDING_REVIEW.value and row.change_id is not None
        ][: self.config.max_pending_ids]
        return ImportOutcome(job=job, rows=rows, pending_change_ids=pending)

    def _process_row(
        self,
        job: DestinationImportJob,
        row_number: int,
        values: Dict[str, str],
        uploader_id: UUID,
        dry_run: bool,
        seen_slugs: Dict[str, int],
        existing_slugs: Dict[str, bool],
    ) -> DestinationImportRow:
        fields, errors = build_change_fields(values)

        slug = values.get("slug", "").strip().lower()
        if slug:
            if slug in seen_slugs:
                errors.append(f"slug duplicates row {seen_slugs[slug]}")
            else:
                seen_slugs[slug] = row_number
                if self._slug_exists(slug, existing_slugs):
                    errors.append("slug already exists")

        if not (fields.hero_image_url or "").strip():
            errors.append("hero image url is required")

        try:
            self.workflow.validate_fields(ChangeAction.CREATE, fields, require_all=True)
        except ChangeValidationError as e:
            errors.append(str(e))

        change_id = None
        if not errors and not dry_run:
            change_id = self._create_and_submit(uploader_id, fields, errors)

        if dry_run:
            status = ImportRowStatus.SKIPPED
        elif errors:
            status = ImportRowStatus.FAILED
        else:
            status = ImportRowStatus.PENDING_REVIEW

        return DestinationImportRow(
            job_id=job.id,
            row_number=row_number,
            status=status.value,
            action=ChangeAction.CREATE.value,
            change_id=change_id,
            error="; ".join(errors) if errors else None,
            payload=fields.to_payload(),
        )

    def _create_and_submit(
        self,
        uploader_id: UUID,
        fields: DestinationChangeFields,
        errors: List[str],
    ) -> Optional[UUID]:
        try:
            change = self.workflow.create_draft(uploader_id, ChangeAction.CREATE, fields)
            change = self.workflow.submit_draft(change.id, uploader_id)
        except WorkflowError as e:
            errors.append(str(e))
            return None
        return change.id

    def _slug_exists(self, slug: str, cache: Dict[str, bool]) -> bool:
        if slug not in cache:
            cache[slug] = self.destinations.find_by_slug(slug) is not None
        return cache[slug]

    def _fail_job(self, job: DestinationImportJob, tally: ImportTally) -> None:
        tally.apply_to(job)
        job.status = ImportJobStatus.FAILED.value
        job.completed_at = self.now()
        try:
            self.repo.update_job(job)
        except Exception:
            logger.warning(f"Could not mark import job {job.id} as failed", exc_info=True)
        else:
            logger.warning(f"Import job {job.id} marked failed")
