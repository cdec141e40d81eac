"""
Unit tests for rejection reason lookup and editing.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vulcan.modules.rejection_reasons.models import RejectionProofType, RejectionReason
from vulcan.modules.rejection_reasons.service import (
    NeedsSyncError,
    RejectionReasonNotFoundError,
    apply_update,
    group_reasons,
    resolve,
    resolve_for_persistence,
    update_reason,
)

ADDRESS_BODY = "The address does not match: %{address}"


def make_reason(locale="en", body=ADDRESS_BODY, needs_sync=False, code="address_mismatch"):
    return RejectionReason(
        id=uuid4(),
        code=code,
        proof_type=RejectionProofType.INCOME,
        locale=locale,
        body=body,
        version=1,
        needs_sync=needs_sync,
    )


class TestResolve:
    @pytest.mark.asyncio
    async def test_fills_placeholders(self, mock_db):
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get = AsyncMock(return_value=make_reason())

            text = await resolve(
                mock_db,
                "address_mismatch",
                RejectionProofType.INCOME,
                variables={"address": "1 Main St"},
            )

        assert text == "The address does not match: 1 Main St"

    @pytest.mark.asyncio
    async def test_falls_back_to_english(self, mock_db):
        english = make_reason(body="Expired document")
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get = AsyncMock(side_effect=[None, english])

            text = await resolve(mock_db, "expired", RejectionProofType.INCOME, locale="es")

        assert text == "Expired document"
        assert mock_repo.get.await_args_list[1].args[3] == "en"

    @pytest.mark.asyncio
    async def test_unknown_code(self, mock_db):
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get = AsyncMock(return_value=None)

            assert await resolve(mock_db, "nope", RejectionProofType.RESIDENCY) is None


class TestResolveForPersistence:
    @pytest.mark.asyncio
    async def test_custom_text_wins(self, mock_db):
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get = AsyncMock(return_value=make_reason())

            result = await resolve_for_persistence(
                mock_db,
                "address_mismatch",
                RejectionProofType.INCOME,
                custom_text="  Please send a lease  ",
            )

        assert result == {"text": "Please send a lease", "code": "address_mismatch"}
        mock_repo.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_code_kept_as_text(self, mock_db):
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get = AsyncMock(return_value=None)

            result = await resolve_for_persistence(
                mock_db, "custom_code", RejectionProofType.INCOME
            )

        assert result == {"text": "custom_code", "code": "custom_code"}


class TestApplyUpdate:
    def test_body_change_versions(self):
        reason = make_reason(body="Old")
        assert apply_update(reason, body="New") is True
        assert reason.previous_body == "Old"
        assert reason.version == 2

    def test_needs_sync_blocks_other_changes(self):
        reason = make_reason(needs_sync=True)
        with pytest.raises(NeedsSyncError):
            apply_update(reason, code="renamed")

    def test_needs_sync_cleared_by_body_edit(self):
        reason = make_reason(locale="es", needs_sync=True)
        assert apply_update(reason, body="Texto nuevo") is True
        assert reason.needs_sync is False


class TestUpdateReason:
    @pytest.mark.asyncio
    async def test_body_change_flags_other_locales(self, mock_db):
        english = make_reason()
        spanish = make_reason(locale="es", body="La dirección no coincide: %{address}")

        with (
            patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo,
            patch(
                "vulcan.modules.rejection_reasons.service.record_event", new=AsyncMock()
            ) as mock_event,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=english)
            mock_repo.list_other_locales = AsyncMock(return_value=[spanish])

            await update_reason(mock_db, english.id, uuid4(), body="Updated text %{address}")

        assert spanish.needs_sync is True
        metadata = mock_event.call_args.kwargs["metadata"]
        assert metadata["body_changed"] is True
        assert metadata["previous_body"] == ADDRESS_BODY

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db):
        with patch("vulcan.modules.rejection_reasons.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(RejectionReasonNotFoundError):
                await update_reason(mock_db, uuid4(), uuid4(), body="x")


def test_group_reasons_pairs_locales():
    english = make_reason()
    spanish = make_reason(locale="es")
    other = make_reason(code="expired")

    groups = group_reasons([english, spanish, other])

    assert len(groups) == 2
    assert groups[0]["en"] is english
    assert groups[0]["es"] is spanish
    assert groups[1]["es"] is None
