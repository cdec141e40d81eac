"""
Unit tests for voucher redemption.
"""

import re
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from tests.modules.vouchers.conftest import make_voucher
from vulcan.modules.vouchers.models import TransactionType, VoucherStatus
from vulcan.modules.vouchers.redemption import (
    IDENTITY_VERIFICATION_REQUIRED,
    VoucherRedemptionService,
    reference_number,
    to_amount,
)

MODULE = "vulcan.modules.vouchers.redemption"


@pytest.fixture
def mock_flags():
    with patch(f"{MODULE}.feature_flags") as flags:
        flags.is_enabled = AsyncMock(return_value=True)
        yield flags


@pytest.fixture
def mock_verification():
    with patch(f"{MODULE}.verification") as verification:
        verification.is_verified = AsyncMock(return_value=True)
        verification.clear_verification = AsyncMock()
        yield verification


@pytest.fixture
def mock_receipt():
    with patch(f"{MODULE}.send_to_constituent", new=AsyncMock()) as receipt:
        yield receipt


def redeem(db, voucher, vendor, amount="100", product_ids="default"):
    if product_ids == "default":
        product_ids = [uuid4()]
    return VoucherRedemptionService(db, voucher, vendor, amount, product_ids).call()


class TestHelpers:
    def test_to_amount(self):
        assert to_amount("12.5") == Decimal("12.50")
        assert to_amount(40) == Decimal("40.00")
        assert to_amount("abc") == Decimal("0")
        assert to_amount(None) == Decimal("0")

    def test_reference_number_format(self):
        reference = reference_number(datetime(2026, 10, 17, tzinfo=UTC))
        assert re.fullmatch(r"TXN-20261017-[0-9A-F]{8}", reference)


class TestChecks:
    """Each check fails with its own message, in a fixed order."""

    @pytest.mark.asyncio
    async def test_feature_disabled(self, mock_db, voucher, vendor, mock_flags, mock_verification):
        mock_flags.is_enabled = AsyncMock(return_value=False)
        result = await redeem(mock_db, voucher, vendor)
        assert result.message == "Voucher functionality is currently disabled"

    @pytest.mark.asyncio
    async def test_vendor_not_approved(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        vendor.vendor_approved = False
        result = await redeem(mock_db, voucher, vendor)
        assert result.message == "Your account is not approved for processing vouchers yet"

    @pytest.mark.asyncio
    async def test_voucher_not_active(self, mock_db, vendor, mock_flags, mock_verification):
        voucher = make_voucher(status=VoucherStatus.EXPIRED)
        result = await redeem(mock_db, voucher, vendor)
        assert result.message == "This voucher is not active or has already been processed"

    @pytest.mark.asyncio
    async def test_identity_not_verified(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        mock_verification.is_verified = AsyncMock(return_value=False)
        result = await redeem(mock_db, voucher, vendor)

        assert result.failure
        assert result.error_type == IDENTITY_VERIFICATION_REQUIRED
        assert result.data == {"error_type": IDENTITY_VERIFICATION_REQUIRED}

    @pytest.mark.asyncio
    async def test_amount_must_be_positive(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        result = await redeem(mock_db, voucher, vendor, amount="0")
        assert result.message == "Redemption amount must be greater than zero"

    @pytest.mark.asyncio
    async def test_amount_over_balance(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        result = await redeem(mock_db, voucher, vendor, amount="600")
        assert result.message == "Cannot redeem more than the available amount ($500.00)"

    @pytest.mark.asyncio
    async def test_products_required(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        result = await redeem(mock_db, voucher, vendor, product_ids=[])
        assert result.message == "Please select at least one product for this voucher redemption"

    @pytest.mark.asyncio
    async def test_disabled_wins_over_other_failures(
        self, mock_db, vendor, mock_flags, mock_verification
    ):
        mock_flags.is_enabled = AsyncMock(return_value=False)
        vendor.vendor_approved = False
        voucher = make_voucher(status=VoucherStatus.CANCELLED)

        result = await redeem(mock_db, voucher, vendor, amount="0", product_ids=[])
        assert result.message == "Voucher functionality is currently disabled"


class TestRedeem:
    @pytest.mark.asyncio
    async def test_partial_redemption(
        self, mock_db, voucher, vendor, mock_flags, mock_verification, mock_receipt
    ):
        product_id = uuid4()
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=voucher)
            result = await redeem(mock_db, voucher, vendor, "125.50", [product_id])

        assert result.success
        assert result.message == "Voucher successfully processed"
        transaction = result.data["transaction"]
        assert transaction.amount == Decimal("125.50")
        assert transaction.transaction_type == TransactionType.REDEMPTION
        assert transaction.product_data == {str(product_id): 1}
        assert transaction.vendor_id == vendor.id

        assert voucher.remaining_value == Decimal("374.50")
        assert voucher.status == VoucherStatus.ACTIVE
        assert voucher.last_used_at is not None

        assert mock_event.call_args.args[1] == "voucher_redeemed"
        mock_verification.clear_verification.assert_awaited_once_with(vendor.id, voucher.id)
        variables = mock_receipt.call_args.args[3]
        assert variables["transaction_amount_formatted"] == "$125.50"
        assert variables["remaining_balance_formatted"] == "$374.50"
        assert variables["vendor_business_name"] == "Accessible Phones LLC"

    @pytest.mark.asyncio
    async def test_full_redemption_marks_redeemed(
        self, mock_db, voucher, vendor, mock_flags, mock_verification, mock_receipt
    ):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.record_event", new=AsyncMock()),
        ):
            mock_repo.get_for_update = AsyncMock(return_value=voucher)
            result = await redeem(mock_db, voucher, vendor, "500")

        assert result.success
        assert voucher.remaining_value == Decimal("0.00")
        assert voucher.status == VoucherStatus.REDEEMED

    @pytest.mark.asyncio
    async def test_balance_changed_under_lock(
        self, mock_db, voucher, vendor, mock_flags, mock_verification, mock_receipt
    ):
        locked = make_voucher(id=voucher.id, remaining_value=Decimal("50.00"))
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(return_value=locked)
            result = await redeem(mock_db, voucher, vendor, "100")

        assert result.failure
        assert result.message == (
            "Unable to process voucher redemption. Please verify the amount and try again."
        )
        mock_db.add.assert_not_called()
        mock_db.commit.assert_awaited_once()
        mock_receipt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(side_effect=RuntimeError("deadlock detected"))
            result = await redeem(mock_db, voucher, vendor)

        assert result.message == "Error processing voucher: deadlock detected"
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_receipt_failure_does_not_fail_redemption(
        self, mock_db, voucher, vendor, mock_flags, mock_verification
    ):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.record_event", new=AsyncMock()),
            patch(
                f"{MODULE}.send_to_constituent",
                new=AsyncMock(side_effect=RuntimeError("mail down")),
            ),
        ):
            mock_repo.get_for_update = AsyncMock(return_value=voucher)
            result = await redeem(mock_db, voucher, vendor)

        assert result.success
