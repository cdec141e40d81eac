"""
Unit tests for field autosave.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application
from vulcan.modules.applications.autosave import AutosaveError, autosave_field, coerce_value
from vulcan.modules.applications.models import ApplicationStatus

MODULE = "vulcan.modules.applications.autosave"


class TestCoerceValue:
    @pytest.mark.parametrize("raw", ["1", "true", "on", "yes", "TRUE", " yes "])
    def test_truthy_booleans(self, raw):
        assert coerce_value("terms_accepted", raw) is True

    @pytest.mark.parametrize("raw", ["0", "false", "off", "", "no"])
    def test_falsy_booleans(self, raw):
        assert coerce_value("maryland_resident", raw) is False

    def test_disability_fields_are_booleans(self):
        assert coerce_value("hearing_disability", "on") is True

    def test_income_strips_currency_formatting(self):
        assert coerce_value("annual_income", "$25,000.50") == Decimal("25000.50")

    def test_negative_income_rejected(self):
        with pytest.raises(AutosaveError) as exc_info:
            coerce_value("annual_income", "-5")
        assert exc_info.value.field_name == "annual_income"

    def test_non_numeric_income_rejected(self):
        with pytest.raises(AutosaveError):
            coerce_value("annual_income", "lots")

    def test_household_size(self):
        assert coerce_value("household_size", "3") == 3

    @pytest.mark.parametrize("raw", ["0", "2.5", "two"])
    def test_invalid_household_size(self, raw):
        with pytest.raises(AutosaveError):
            coerce_value("household_size", raw)

    def test_blank_becomes_none(self):
        assert coerce_value("medical_provider_name", "   ") is None

    def test_text_is_stripped(self):
        assert coerce_value("medical_provider_name", "  Dr. Who ") == "Dr. Who"


class TestAutosaveField:
    @pytest.mark.asyncio
    async def test_field_name_required(self, mock_db):
        result = await autosave_field(mock_db, uuid4(), None, "x")
        assert result["success"] is False
        assert result["message"] == "Field name is required"

    @pytest.mark.asyncio
    async def test_files_not_autosaved(self, mock_db):
        result = await autosave_field(mock_db, uuid4(), "income_proof", "file")
        assert result["success"] is False
        assert result["errors"] == {"income_proof": ["Files are uploaded separately"]}

    @pytest.mark.asyncio
    async def test_active_application_blocks_autosave(self, mock_db):
        active = make_application()
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=active)

            result = await autosave_field(mock_db, active.user_id, "household_size", "2")

        assert result["success"] is False
        assert result["application_id"] == active.id

    @pytest.mark.asyncio
    async def test_address_fields_are_rejected(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=None)

            result = await autosave_field(mock_db, uuid4(), "city", "Baltimore")

        assert result == {
            "success": False,
            "application_id": None,
            "message": "Field not autosaved",
            "errors": {"city": ["This field cannot be autosaved"]},
        }
        mock_repo.get_draft_for_applicant.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_field(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=None)

            result = await autosave_field(mock_db, uuid4(), "favourite_colour", "blue")

        assert result["success"] is False
        assert result["errors"] == {"favourite_colour": ["Unknown field"]}

    @pytest.mark.asyncio
    async def test_creates_draft_and_saves_value(self, mock_db):
        actor_id = uuid4()
        draft = make_application(status=ApplicationStatus.DRAFT, household_size=None)

        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=None)
            mock_repo.get_draft_for_applicant = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=draft)
            mock_repo.save = AsyncMock(return_value=draft)

            result = await autosave_field(
                mock_db, actor_id, "household_size", "4", step="household"
            )

        assert result["success"] is True
        assert result["application_id"] == draft.id
        assert draft.household_size == 4
        assert draft.last_visited_step == "household"
        assert mock_repo.create.call_args.kwargs["status"] == ApplicationStatus.DRAFT
        assert mock_repo.create.call_args.kwargs["user_id"] == actor_id

    @pytest.mark.asyncio
    async def test_invalid_value_reports_error(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=None)

            result = await autosave_field(mock_db, uuid4(), "annual_income", "abc")

        assert result["success"] is False
        assert result["errors"] == {"annual_income": ["Annual income must be a number"]}

    @pytest.mark.asyncio
    async def test_field_name_is_last_visited_step_without_step(self, mock_db):
        draft = make_application(status=ApplicationStatus.DRAFT, last_visited_step="income")

        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_active_for_applicant = AsyncMock(return_value=None)
            mock_repo.get_draft_for_applicant = AsyncMock(return_value=draft)
            mock_repo.save = AsyncMock(return_value=draft)

            result = await autosave_field(mock_db, draft.user_id, "household_size", "3")

        assert result["success"] is True
        assert draft.household_size == 3
        assert draft.last_visited_step == "household_size"
        mock_repo.create.assert_not_called()
