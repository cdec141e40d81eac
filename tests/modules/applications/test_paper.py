"""
Unit tests for paper applications keyed in by admins.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application, make_user
from vulcan.modules.applications.models import ApplicationStatus, SubmissionMethod
from vulcan.modules.applications.paper import create_paper_application
from vulcan.modules.applications.schemas import PaperApplicationCreate
from vulcan.modules.applications.service import (
    ActiveApplicationExistsError,
    ApplicationServiceError,
)

MODULE = "vulcan.modules.applications.paper"


@pytest.fixture
def mock_users(applicant):
    with patch(f"{MODULE}.UserRepository") as users:
        users.get_by_id = AsyncMock(return_value=applicant)
        yield users


@pytest.fixture
def mock_repo(application):
    with patch(f"{MODULE}.repository") as repo:
        repo.get_open_for_applicant = AsyncMock(return_value=None)
        repo.create = AsyncMock(return_value=application)
        yield repo


class TestCreatePaperApplication:
    @pytest.mark.asyncio
    async def test_existing_applicant(self, mock_db, applicant, mock_users, mock_repo):
        admin_id = uuid4()
        data = PaperApplicationCreate(applicant_id=applicant.id, household_size=3)

        with patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event:
            await create_paper_application(mock_db, data, admin_id)

        kwargs = mock_repo.create.call_args.kwargs
        assert kwargs["user_id"] == applicant.id
        assert kwargs["status"] == ApplicationStatus.IN_PROGRESS
        assert kwargs["submission_method"] == SubmissionMethod.PAPER
        assert kwargs["household_size"] == 3
        assert kwargs["managing_guardian_id"] is None
        assert "annual_income" not in kwargs
        assert mock_event.call_args.args[1] == "application_created"
        assert mock_event.call_args.kwargs["metadata"]["submission_method"] == "paper"

    @pytest.mark.asyncio
    async def test_refuses_second_open_application(
        self, mock_db, applicant, mock_users, mock_repo
    ):
        mock_repo.get_open_for_applicant = AsyncMock(return_value=make_application(applicant))
        data = PaperApplicationCreate(applicant_id=applicant.id)

        with pytest.raises(ActiveApplicationExistsError):
            await create_paper_application(mock_db, data, uuid4())

        mock_repo.create.assert_not_called()
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_applicant(self, mock_db, mock_users, mock_repo):
        mock_users.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(ApplicationServiceError) as exc_info:
            await create_paper_application(
                mock_db, PaperApplicationCreate(applicant_id=uuid4()), uuid4()
            )

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_existing_guardian_link_sets_managing_guardian(
        self, mock_db, applicant, mock_users, mock_repo
    ):
        guardian = make_user(email="guardian@example.org")
        data = PaperApplicationCreate(applicant_id=applicant.id, guardian_id=guardian.id)

        with (
            patch(f"{MODULE}.guardian_repository") as mock_guardians,
            patch(f"{MODULE}.record_event", new=AsyncMock()),
        ):
            mock_guardians.get_relationship = AsyncMock(
                return_value=MagicMock(guardian_id=guardian.id)
            )
            await create_paper_application(mock_db, data, uuid4())

        assert mock_repo.create.call_args.kwargs["managing_guardian_id"] == guardian.id

    @pytest.mark.asyncio
    async def test_new_guardian_link_needs_relationship_type(
        self, mock_db, applicant, mock_users, mock_repo
    ):
        data = PaperApplicationCreate(applicant_id=applicant.id, guardian_id=uuid4())

        with patch(f"{MODULE}.guardian_repository") as mock_guardians:
            mock_guardians.get_relationship = AsyncMock(return_value=None)
            with pytest.raises(ApplicationServiceError) as exc_info:
                await create_paper_application(mock_db, data, uuid4())

        assert exc_info.value.error_code == "RELATIONSHIP_TYPE_REQUIRED"
