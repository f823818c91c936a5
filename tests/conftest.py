"""Pytest configuration and shared fixtures."""

import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import catalog.db.models  # noqa: F401  registers tables on Base.metadata
from catalog.core.config import ImportConfig, WorkflowConfig
from catalog.core.imports import DestinationImportService
from catalog.core.workflow.service import DestinationWorkflowService
from catalog.db.base import Base
from catalog.db.repositories import (
    ChangeRequestRepository,
    DestinationRepository,
    ImportRepository,
    VersionRepository,
)

from tests.fakes import InMemoryStorage


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def author_id():
    return uuid.uuid4()


@pytest.fixture
def reviewer_id():
    return uuid.uuid4()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def workflow_config():
    return WorkflowConfig(bucket="destinations", image_max_bytes=1024 * 1024)


@pytest.fixture
def repos(db_session):
    return {
        "changes": ChangeRequestRepository(db_session),
        "destinations": DestinationRepository(db_session),
        "versions": VersionRepository(db_session),
        "imports": ImportRepository(db_session),
    }


@pytest.fixture
def make_workflow(repos, storage, workflow_config):
    """Build a workflow service; keyword arguments override config fields."""

    def _make(processor=None, **overrides):
        config = WorkflowConfig(**{**workflow_config.__dict__, **overrides})
        return DestinationWorkflowService(
            repos["changes"],
            repos["destinations"],
            repos["versions"],
            storage,
            config,
            image_processor=processor,
        )

    return _make


@pytest.fixture
def workflow(make_workflow):
    return make_workflow()


@pytest.fixture
def import_service(repos, workflow, storage):
    return DestinationImportService(
        repos["imports"],
        repos["destinations"],
        workflow,
        storage,
        ImportConfig(bucket="destinations", max_rows=10, max_file_bytes=64 * 1024, max_pending_ids=2),
    )
