"""Tests for the guarded updates in the SQLAlchemy repositories."""

import pytest
from datetime import datetime

from catalog.core.workflow.fields import DestinationChangeFields
from catalog.core.workflow.states import ChangeStatus
from catalog.db.repositories import ChangeFilter

from tests.factories import create_change, create_destination


pytestmark = pytest.mark.db


class TestChangeRequestRepository:

    def test_update_draft_cas(self, repos, db_session):
        changes = repos["changes"]
        change = create_change(db_session)

        updated = changes.update_draft(change.id, 1, payload={"name": "A"})
        assert updated.draft_version == 2
        assert updated.payload == {"name": "A"}

        assert changes.update_draft(change.id, 1, payload={"name": "B"}) is None
        assert changes.find_by_id(change.id).payload == {"name": "A"}

    def test_update_draft_requires_editable(self, repos, db_session):
        change = create_change(db_session, status="pending_review")
        assert repos["changes"].update_draft(change.id, 1, payload={}) is None

    def test_update_draft_keeps_temp_key_unless_given(self, repos, db_session):
        changes = repos["changes"]
        change = create_change(db_session)

        changes.update_draft(change.id, 1, payload={}, hero_image_temp_key="k1")
        updated = changes.update_draft(change.id, 2, payload={})
        assert updated.hero_image_temp_key == "k1"

    def test_mark_submitted_from_rejected(self, repos, db_session):
        change = create_change(db_session, status="rejected")
        submitted = repos["changes"].mark_submitted(change.id, datetime(2024, 1, 1))
        assert submitted.status == "pending_review"
        assert submitted.submitted_at == datetime(2024, 1, 1)

    def test_mark_reviewed_only_once(self, repos, db_session):
        changes = repos["changes"]
        change = create_change(db_session, status="pending_review")
        now = datetime.utcnow()

        first = changes.mark_reviewed(change.id, ChangeStatus.APPROVED, reviewed_by=change.submitted_by, reviewed_at=now)
        second = changes.mark_reviewed(change.id, ChangeStatus.REJECTED, reviewed_by=change.submitted_by, reviewed_at=now)

        assert first.status == "approved"
        assert second is None
        assert changes.find_by_id(change.id).status == "approved"

    def test_list_paging(self, repos, db_session):
        dest = create_destination(db_session)
        for _ in range(3):
            create_change(db_session, action="update", destination_id=dest.id, payload={})
        create_change(db_session)

        assert len(repos["changes"].list(ChangeFilter(destination_id=dest.id))) == 3
        assert len(repos["changes"].list(ChangeFilter(destination_id=dest.id, limit=2, offset=2))) == 1


class TestDestinationRepository:

    def test_update_bumps_version_and_skips_absent_fields(self, repos, db_session):
        dest = create_destination(db_session, contact="+66 1")
        updated = repos["destinations"].update(
            dest, DestinationChangeFields(city="Phuket"), updated_by=dest.id
        )
        assert updated.version == 2
        assert updated.city == "Phuket"
        assert updated.contact == "+66 1"

    def test_archive(self, repos, db_session):
        dest = create_destination(db_session)
        archived = repos["destinations"].archive(dest, updated_by=dest.id)
        assert archived.is_archived
        assert archived.deleted_at is not None
        assert archived.version == 2
