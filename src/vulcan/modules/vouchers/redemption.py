"""
Voucher Redemption

A vendor redeems part or all of a voucher against products sold. Every
check has a user-facing message; the service returns a Result instead of
raising so the vendor portal can show it directly.
"""

import logging
import secrets
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications.emails import format_currency, send_to_constituent
from vulcan.modules.audit.repository import record_event
from vulcan.modules.email_templates import mailer
from vulcan.modules.feature_flags import VOUCHERS_ENABLED
from vulcan.modules.feature_flags import repository as feature_flags
from vulcan.modules.shared import Result
from vulcan.modules.users.models import User, UserRole
from vulcan.modules.vouchers import repository, verification
from vulcan.modules.vouchers.models import (
    TransactionType,
    Voucher,
    VoucherStatus,
    VoucherTransaction,
)

logger = logging.getLogger(__name__)

IDENTITY_VERIFICATION_REQUIRED = "identity_verification_required"


def to_amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def reference_number(now: datetime) -> str:
    return f"TXN-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"


class VoucherRedemptionService:
    """
    Redeem a voucher for a vendor.

    Checks run in a fixed order and the first failure is returned:
    feature flag, vendor approval, voucher active, identity verified,
    amount positive, amount within balance, products selected.
    """

    def __init__(
        self,
        db: AsyncSession,
        voucher: Voucher,
        vendor: User,
        amount: Any,
        product_ids: list[UUID] | None,
        notes: str | None = None,
    ):
        self.db = db
        self.voucher = voucher
        self.vendor = vendor
        self.amount = to_amount(amount)
        self.product_ids = [p for p in (product_ids or []) if p]
        self.notes = notes

    async def call(self) -> Result:
        try:
            if not await feature_flags.is_enabled(self.db, VOUCHERS_ENABLED):
                return Result.fail("Voucher functionality is currently disabled")
            if not self._vendor_authorized():
                return Result.fail("Your account is not approved for processing vouchers yet")
            if not self.voucher.is_active:
                return Result.fail("This voucher is not active or has already been processed")
            if not await verification.is_verified(self.vendor.id, self.voucher.id):
                return Result.fail(
                    "Identity verification is required before redemption",
                    data={"error_type": IDENTITY_VERIFICATION_REQUIRED},
                    error_type=IDENTITY_VERIFICATION_REQUIRED,
                )
            if self.amount <= 0:
                return Result.fail("Redemption amount must be greater than zero")
            if self.amount > self.voucher.remaining_value:
                return Result.fail(
                    "Cannot redeem more than the available amount "
                    f"({format_currency(self.voucher.remaining_value)})"
                )
            if not self.product_ids:
                return Result.fail("Please select at least one product for this voucher redemption")

            transaction = await self._redeem()
            if transaction is None:
                return Result.fail(
                    "Unable to process voucher redemption. Please verify the amount and try again."
                )
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Voucher redemption failed (voucher={self.voucher.id}, "
                f"vendor={self.vendor.id}, amount={self.amount}): {e}",
                exc_info=True,
            )
            return Result.fail(f"Error processing voucher: {e}")

        await verification.clear_verification(self.vendor.id, self.voucher.id)
        await self._send_receipt(transaction)
        return Result.ok(
            "Voucher successfully processed",
            data={"transaction": transaction, "voucher": self.voucher},
        )

    def _vendor_authorized(self) -> bool:
        return (
            self.vendor.role == UserRole.VENDOR
            and self.vendor.vendor_approved
            and self.vendor.is_active
        )

    async def _redeem(self) -> VoucherTransaction | None:
        """Apply the redemption under a row lock; None when the balance moved underneath."""
        voucher = await repository.get_for_update(self.db, self.voucher.id)
        if (
            voucher is None
            or voucher.status != VoucherStatus.ACTIVE
            or self.amount > voucher.remaining_value
        ):
            await self.db.commit()
            return None

        now = datetime.now(UTC)
        transaction = VoucherTransaction(
            voucher_id=voucher.id,
            vendor_id=self.vendor.id,
            amount=self.amount,
            transaction_type=TransactionType.REDEMPTION,
            product_data={str(product_id): 1 for product_id in self.product_ids},
            reference_number=reference_number(now),
            notes=self.notes,
            processed_at=now,
        )
        self.db.add(transaction)

        voucher.remaining_value = voucher.remaining_value - self.amount
        voucher.last_used_at = now
        if voucher.remaining_value <= 0:
            voucher.remaining_value = Decimal("0.00")
            voucher.status = VoucherStatus.REDEEMED

        await record_event(
            self.db,
            "voucher_redeemed",
            actor_id=self.vendor.id,
            auditable=voucher,
            metadata={
                "voucher_code": voucher.code,
                "amount": str(self.amount),
                "remaining_value": str(voucher.remaining_value),
                "reference_number": transaction.reference_number,
                "product_ids": [str(p) for p in self.product_ids],
            },
        )
        await self.db.commit()
        await self.db.refresh(transaction)
        self.voucher = voucher

        logger.info(
            f"Voucher {voucher.code} redeemed for {self.amount} by vendor {self.vendor.id} "
            f"({transaction.reference_number})"
        )
        return transaction

    async def _send_receipt(self, transaction: VoucherTransaction) -> None:
        try:
            await send_to_constituent(
                self.db,
                self.voucher.application,
                mailer.VOUCHER_REDEEMED,
                {
                    "voucher_code": self.voucher.code,
                    "transaction_amount_formatted": format_currency(transaction.amount),
                    "remaining_balance_formatted": format_currency(self.voucher.remaining_value),
                    "vendor_business_name": self.vendor.business_name or self.vendor.full_name,
                },
            )
        except Exception as e:
            logger.error(f"Failed to send redemption receipt for {self.voucher.code}: {e}")
