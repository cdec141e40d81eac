"""
Unit tests for application notes.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from vulcan.modules.applications.models import ApplicationNote
from vulcan.modules.applications.notes import (
    assign_to,
    create_note,
    mark_as_done,
    mark_as_incomplete,
    unassign,
)
from vulcan.modules.users.models import UserRole

MODULE = "vulcan.modules.applications.notes"


@pytest.fixture
def note():
    return ApplicationNote(
        id=uuid4(),
        application_id=uuid4(),
        content="Call the provider",
        internal_only=True,
        assigned_to_id=None,
        completed_at=None,
    )


class TestCreateNote:
    @pytest.mark.asyncio
    async def test_records_created_and_assigned_events(self, mock_db, application, note):
        assignee_id = uuid4()
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event,
        ):
            mock_repo.create_note = AsyncMock(return_value=note)

            await create_note(
                mock_db, application, uuid4(), "  Call the provider  ", True, assignee_id
            )

        assert mock_repo.create_note.call_args.kwargs["content"] == "Call the provider"
        actions = [call.args[1] for call in mock_event.await_args_list]
        assert actions == ["application_note_created", "note_assigned"]


class TestNoteUpdates:
    @pytest.mark.asyncio
    async def test_assign_to_staff(self, mock_db, note):
        assignee = MagicMock(role=UserRole.EVALUATOR)
        assignee_id = uuid4()
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.UserRepository") as mock_users,
            patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event,
        ):
            mock_users.get_by_id = AsyncMock(return_value=assignee)
            mock_repo.get_note_for_update = AsyncMock(return_value=note)

            assert await assign_to(mock_db, note.id, assignee_id, uuid4()) is True

        assert note.assigned_to_id == assignee_id
        metadata = mock_event.call_args.kwargs["metadata"]
        assert metadata["changes"]["assigned_to_id"] == {"from": None, "to": str(assignee_id)}
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cannot_assign_to_constituent(self, mock_db, note):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.UserRepository") as mock_users,
        ):
            mock_users.get_by_id = AsyncMock(return_value=MagicMock(role=UserRole.CONSTITUENT))
            mock_repo.get_note_for_update = AsyncMock(return_value=note)

            assert await assign_to(mock_db, note.id, uuid4(), uuid4()) is False

        mock_repo.get_note_for_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_done_then_reopened(self, mock_db, note):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event,
        ):
            mock_repo.get_note_for_update = AsyncMock(return_value=note)

            assert await mark_as_done(mock_db, note.id, uuid4()) is True
            assert note.completed is True

            assert await mark_as_incomplete(mock_db, note.id, uuid4()) is True
            assert note.completed is False

        actions = [call.args[1] for call in mock_event.await_args_list]
        assert actions == ["note_completed", "note_reopened"]

    @pytest.mark.asyncio
    async def test_missing_note(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_note_for_update = AsyncMock(return_value=None)

            assert await unassign(mock_db, uuid4(), uuid4()) is False

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_error_rolls_back(self, mock_db, note):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_note_for_update = AsyncMock(
                side_effect=OperationalError("SELECT", {}, Exception("lock timeout"))
            )

            assert await unassign(mock_db, note.id, uuid4()) is False

        mock_db.rollback.assert_awaited_once()
