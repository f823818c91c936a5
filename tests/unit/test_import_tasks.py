"""Tests for the Celery import task, run eagerly against SQLite."""

import base64

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from unittest import mock

from catalog.core.workflow.errors import ImportEmptyFile
from catalog.db.models import DestinationImportJob
from catalog.db.repositories import ImportRepository
from catalog.workers import import_tasks

from tests.fakes import InMemoryStorage


pytestmark = pytest.mark.db

CSV = (
    "name,category,city,country,description,latitude,longitude,contact,hero_image_url\n"
    "Old Town,park,Bangkok,Thailand,Nice,13.7,100.5,+66,http://cdn.test/a.jpg\n"
    "Broken,park,Bangkok,Thailand,Nice,abc,100.5,+66,http://cdn.test/b.jpg\n"
).encode("utf-8")


@pytest.fixture
def task_session_factory(db_engine):
    factory = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    with mock.patch.object(import_tasks, "SessionLocal", factory), \
            mock.patch("catalog.bootstrap.build_object_storage", return_value=InMemoryStorage()):
        yield factory


class TestImportDestinationsCsv:

    def test_commits_job(self, task_session_factory, author_id):
        result = import_tasks.import_destinations_csv(
            str(author_id), "batch.csv", base64.b64encode(CSV).decode("ascii"),
        )

        assert result["status"] == "completed"
        assert result["total_rows"] == 2
        assert result["rows_failed"] == 1
        assert result["changes_created"] == 1
        assert len(result["pending_change_ids"]) == 1

        session = task_session_factory()
        try:
            job = session.query(DestinationImportJob).one()
            assert str(job.id) == result["job_id"]
            assert len(job.rows) == 2
        finally:
            session.close()

    def test_rejection_propagates(self, task_session_factory, author_id):
        with pytest.raises(ImportEmptyFile):
            import_tasks.import_destinations_csv(str(author_id), "batch.csv", "")

        session = task_session_factory()
        try:
            assert session.query(DestinationImportJob).count() == 0
        finally:
            session.close()

    def test_database_error_commits_failed_job(self, task_session_factory, author_id):
        real_insert = ImportRepository.insert_row
        calls = []

        def insert_without_row_number(repo, row):
            calls.append(row)
            if len(calls) == 2:
                row.row_number = None
            return real_insert(repo, row)

        with mock.patch.object(
            ImportRepository, "insert_row", autospec=True, side_effect=insert_without_row_number
        ):
            with pytest.raises(IntegrityError):
                import_tasks.import_destinations_csv(
                    str(author_id), "batch.csv", base64.b64encode(CSV).decode("ascii"),
                )

        session = task_session_factory()
        try:
            job = session.query(DestinationImportJob).one()
            assert job.status == "failed"
            assert job.processed_rows == 1
            assert job.changes_created == 1
            assert [row.row_number for row in job.rows] == [2]
        finally:
            session.close()

    def test_routed_to_imports_queue(self):
        routes = import_tasks.celery_app.conf.task_routes
        assert routes["catalog.workers.import_tasks.import_destinations_csv"] == {"queue": "imports"}

    def test_worker_process_configures_logging(self):
        with mock.patch.object(import_tasks, "configure_logging") as configure:
            import_tasks._configure_worker_logging()
        configure.assert_called_once_with(import_tasks.settings)
