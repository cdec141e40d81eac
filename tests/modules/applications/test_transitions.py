"""
Unit tests for application status transitions.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vulcan.modules.applications.models import ApplicationStatus, ApplicationStatusChange
from vulcan.modules.applications.repository import (
    TERMINAL_STATUSES,
    VALID_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    can_transition,
    normalize_status,
    update_status,
)


class TestCanTransition:
    def test_every_status_has_an_entry(self):
        assert set(VALID_STATUS_TRANSITIONS) == set(ApplicationStatus)

    def test_draft_can_be_submitted(self):
        assert can_transition(ApplicationStatus.DRAFT, ApplicationStatus.IN_PROGRESS)

    def test_draft_cannot_be_approved(self):
        assert not can_transition(ApplicationStatus.DRAFT, ApplicationStatus.APPROVED)

    def test_same_status_is_allowed(self):
        for status in ApplicationStatus:
            assert can_transition(status, status)

    def test_archived_is_final(self):
        for status in ApplicationStatus:
            if status != ApplicationStatus.ARCHIVED:
                assert not can_transition(ApplicationStatus.ARCHIVED, status)

    def test_terminal_statuses_only_archive(self):
        for status in TERMINAL_STATUSES - {ApplicationStatus.ARCHIVED}:
            assert VALID_STATUS_TRANSITIONS[status] == {ApplicationStatus.ARCHIVED}

    def test_awaiting_dcf_can_be_approved(self):
        assert can_transition(ApplicationStatus.AWAITING_DCF, ApplicationStatus.APPROVED)


class TestNormalizeStatus:
    def test_legacy_names(self):
        assert normalize_status("awaiting_documents") == "awaiting_dcf"
        assert normalize_status("needs_information") == "awaiting_proof"

    def test_current_names_unchanged(self):
        assert normalize_status("approved") == "approved"
        assert normalize_status(None) is None


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_records_change_and_event(self, mock_db, application):
        actor_id = uuid4()
        with patch(
            "vulcan.modules.applications.repository.record_event", new=AsyncMock()
        ) as mock_event:
            await update_status(
                mock_db,
                application,
                ApplicationStatus.AWAITING_PROOF,
                actor_id=actor_id,
                notes="Income proof rejected",
            )

        assert application.status == ApplicationStatus.AWAITING_PROOF
        change = mock_db.add.call_args.args[0]
        assert isinstance(change, ApplicationStatusChange)
        assert change.from_status == "in_progress"
        assert change.to_status == "awaiting_proof"
        assert change.user_id == actor_id
        assert mock_event.call_args.args[1] == "application_status_changed"
        assert mock_event.call_args.kwargs["metadata"]["new_status"] == "awaiting_proof"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_transition_raises(self, mock_db, application):
        application.status = ApplicationStatus.APPROVED

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await update_status(mock_db, application, ApplicationStatus.IN_PROGRESS)

        assert "approved -> in_progress" in str(exc_info.value)
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_status_only_applies_fields(self, mock_db, application):
        with patch(
            "vulcan.modules.applications.repository.record_event", new=AsyncMock()
        ) as mock_event:
            await update_status(
                mock_db, application, ApplicationStatus.IN_PROGRESS, household_size=4
            )

        assert application.household_size == 4
        mock_db.add.assert_not_called()
        mock_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_field_raises(self, mock_db, application):
        with pytest.raises(AttributeError):
            await update_status(
                mock_db, application, ApplicationStatus.IN_PROGRESS, not_a_column=1
            )
