"""
Unit tests for the application audit log.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application
from vulcan.modules.applications.models import ProofStatus, ProofType
from vulcan.modules.audit.log_builder import AuditLogBuilder

MODULE = "vulcan.modules.audit.log_builder"


def at(day: int) -> datetime:
    return datetime(2026, 9, day, 12, tzinfo=UTC)


@pytest.fixture
def application():
    application = make_application()
    application.created_at = at(1)
    return application


@pytest.fixture
def sources():
    change = MagicMock(
        change_type="status_change",
        changed_at=at(5),
        user_id=uuid4(),
        from_status="in_progress",
        to_status="awaiting_proof",
        notes=None,
        change_metadata={},
    )
    review = MagicMock(
        proof_type=ProofType.INCOME,
        status=ProofStatus.REJECTED,
        reviewed_at=at(4),
        admin_id=uuid4(),
        rejection_reason="Expired",
        rejection_reason_code="expired",
        notes=None,
    )
    notification = MagicMock(
        action="medical_certification_rejected",
        created_at=at(3),
        actor_id=None,
        delivery_status="delivered",
        notification_metadata={"delivery_method": "email"},
    )
    events = [
        MagicMock(action="application_status_changed", created_at=at(5), actor_id=None),
        MagicMock(
            action="document_signing_viewed",
            created_at=at(2),
            actor_id=None,
            event_metadata={"submission_id": "501"},
        ),
    ]
    with (
        patch(f"{MODULE}.application_repository") as apps,
        patch(f"{MODULE}.notification_repository") as notifications,
        patch(f"{MODULE}.repository") as audit,
    ):
        apps.list_status_changes = AsyncMock(return_value=[change])
        apps.list_proof_reviews = AsyncMock(return_value=[review])
        notifications.list_for_application = AsyncMock(return_value=[notification])
        audit.list_for = AsyncMock(return_value=events)
        yield audit


class TestBuild:
    @pytest.mark.asyncio
    async def test_merges_newest_first(self, mock_db, application, sources):
        entries = await AuditLogBuilder(mock_db).build(application)

        assert [entry["action"] for entry in entries] == [
            "status_change",
            "income_proof_rejected",
            "medical_certification_rejected",
            "document_signing_viewed",
            "application_created",
        ]
        assert entries[0]["details"]["to_status"] == "awaiting_proof"
        assert entries[2]["details"]["delivery_method"] == "email"
        sources.list_for.assert_awaited_once_with(mock_db, "Application", application.id)

    @pytest.mark.asyncio
    async def test_recorded_creation_event_not_duplicated(self, mock_db, application, sources):
        sources.list_for = AsyncMock(
            return_value=[
                MagicMock(
                    action="application_created",
                    created_at=at(1),
                    actor_id=None,
                    event_metadata={"submission_method": "paper"},
                )
            ]
        )

        entries = await AuditLogBuilder(mock_db).build(application)

        created = [entry for entry in entries if entry["action"] == "application_created"]
        assert len(created) == 1
        assert created[0]["details"] == {"submission_method": "paper"}
