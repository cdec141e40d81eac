"""
Unit tests for feature flag lookups.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from vulcan.modules.feature_flags import VOUCHERS_ENABLED, FeatureFlag
from vulcan.modules.feature_flags import repository


def lookup(flag):
    result = MagicMock()
    result.scalar_one_or_none.return_value = flag
    return AsyncMock(return_value=result)


class TestIsEnabled:
    @pytest.mark.asyncio
    async def test_enabled_flag(self, mock_db):
        mock_db.execute = lookup(FeatureFlag(name=VOUCHERS_ENABLED, enabled=True))
        assert await repository.is_enabled(mock_db, VOUCHERS_ENABLED)

    @pytest.mark.asyncio
    async def test_missing_flag_uses_default(self, mock_db):
        mock_db.execute = lookup(None)
        assert not await repository.is_enabled(mock_db, VOUCHERS_ENABLED)
        assert await repository.is_enabled(mock_db, VOUCHERS_ENABLED, default=True)

    @pytest.mark.asyncio
    async def test_lookup_error_uses_default(self, mock_db):
        mock_db.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )
        assert await repository.is_enabled(mock_db, VOUCHERS_ENABLED, default=True)


class TestSetEnabled:
    @pytest.mark.asyncio
    async def test_creates_missing_flag(self, mock_db):
        mock_db.execute = lookup(None)

        flag = await repository.enable(mock_db, VOUCHERS_ENABLED)

        assert flag.enabled is True
        mock_db.add.assert_called_once_with(flag)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_updates_existing_flag(self, mock_db):
        existing = FeatureFlag(name=VOUCHERS_ENABLED, enabled=True)
        mock_db.execute = lookup(existing)

        flag = await repository.disable(mock_db, VOUCHERS_ENABLED)

        assert flag is existing
        assert flag.enabled is False
        mock_db.add.assert_not_called()
