"""
Voucher Service

Issuing vouchers to approved applications and expiring them.
Redemption lives in `redemption.py`.
"""

import calendar
import logging
import secrets
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.config import settings
from vulcan.core.gateways import GatewayError
from vulcan.modules.applications import emails as application_emails
from vulcan.modules.applications import repository as application_repository
from vulcan.modules.applications.models import Application, ApplicationStatus
from vulcan.modules.audit.repository import record_event
from vulcan.modules.email_templates import mailer
from vulcan.modules.notifications.sms import SmsService
from vulcan.modules.vouchers import repository
from vulcan.modules.vouchers.models import Voucher, VoucherStatus

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 12


class VoucherServiceError(Exception):
    """Base exception for voucher service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class VoucherNotFoundError(VoucherServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid voucher code",
            error_code="VOUCHER_NOT_FOUND",
            status_code=404,
        )


class ApplicationNotApprovedError(VoucherServiceError):
    def __init__(self):
        super().__init__(
            message="Vouchers can only be issued for approved applications",
            error_code="APPLICATION_NOT_APPROVED",
            status_code=409,
        )


class ActiveVoucherExistsError(VoucherServiceError):
    def __init__(self, code: str):
        super().__init__(
            message=f"This application already has an active voucher ({code})",
            error_code="ACTIVE_VOUCHER_EXISTS",
            status_code=409,
        )


class VoucherNotActiveError(VoucherServiceError):
    def __init__(self):
        super().__init__(
            message="This voucher is not active or has already been processed",
            error_code="VOUCHER_NOT_ACTIVE",
            status_code=409,
        )


def add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def unique_code(db: AsyncSession) -> str:
    while True:
        code = generate_code()
        if not await repository.code_exists(db, code):
            return code


async def get_by_code(db: AsyncSession, code: str) -> Voucher:
    voucher = await repository.get_by_code(db, code)
    if voucher is None:
        raise VoucherNotFoundError()
    return voucher


async def issue_voucher(
    db: AsyncSession,
    application_id: UUID,
    admin_id: UUID | None,
    value: Decimal | None = None,
) -> Voucher:
    """
    Issue a voucher for an approved application.

    One active voucher per application. The constituent is told by email,
    and by SMS when they have a phone number on file.
    """
    application = await application_repository.get_for_update(db, application_id)
    if application is None:
        raise VoucherServiceError("Application not found", "APPLICATION_NOT_FOUND", 404)
    if application.status != ApplicationStatus.APPROVED:
        await db.commit()
        raise ApplicationNotApprovedError()

    existing = await repository.get_active_for_application(db, application_id)
    if existing is not None:
        await db.commit()
        raise ActiveVoucherExistsError(existing.code)

    amount = Decimal(value if value is not None else settings.voucher_value).quantize(
        Decimal("0.01")
    )
    issued_at = datetime.now(UTC)
    voucher = Voucher(
        code=await unique_code(db),
        application_id=application.id,
        initial_value=amount,
        remaining_value=amount,
        status=VoucherStatus.ACTIVE,
        issued_at=issued_at,
        expires_at=add_months(issued_at, settings.voucher_validity_months),
    )
    db.add(voucher)
    await db.flush()

    await record_event(
        db,
        "voucher_assigned",
        actor_id=admin_id,
        auditable=application,
        metadata={
            "application_id": str(application.id),
            "voucher_id": str(voucher.id),
            "voucher_code": voucher.code,
            "initial_value": str(amount),
            "expires_at": voucher.expires_at.isoformat(),
        },
    )
    await db.commit()
    await db.refresh(voucher)

    logger.info(f"Voucher {voucher.code} issued for application {application.id}")

    await _notify_voucher_assigned(db, application, voucher)
    return voucher


async def _notify_voucher_assigned(
    db: AsyncSession, application: Application, voucher: Voucher
) -> None:
    await application_emails.send_to_constituent(
        db,
        application,
        mailer.VOUCHER_ASSIGNED,
        {
            "voucher_code": voucher.code,
            "initial_value_formatted": application_emails.format_currency(voucher.initial_value),
            "expiration_date_formatted": application_emails.format_date(voucher.expires_at),
            "validity_period_months": settings.voucher_validity_months,
            "minimum_redemption_amount_formatted": application_emails.format_currency(
                settings.voucher_minimum_redemption
            ),
        },
    )

    phone = application.contact_user.phone
    if not phone:
        return
    try:
        await SmsService().send(
            phone,
            f"Your MAT voucher {voucher.code} for "
            f"{application_emails.format_currency(voucher.initial_value)} is ready. "
            f"It expires {application_emails.format_date(voucher.expires_at)}.",
        )
    except GatewayError as e:
        logger.warning(f"Voucher {voucher.code} SMS not delivered: {e}")


async def cancel_voucher(
    db: AsyncSession, voucher_id: UUID, admin_id: UUID, reason: str | None = None
) -> Voucher:
    voucher = await repository.get_for_update(db, voucher_id)
    if voucher is None:
        raise VoucherNotFoundError()
    if not voucher.is_active:
        await db.commit()
        raise VoucherNotActiveError()

    voucher.status = VoucherStatus.CANCELLED
    voucher.notes = reason
    await record_event(
        db,
        "voucher_cancelled",
        actor_id=admin_id,
        auditable=voucher,
        metadata={"voucher_code": voucher.code, "reason": reason},
    )
    await db.commit()
    await db.refresh(voucher)
    logger.info(f"Voucher {voucher.code} cancelled by {admin_id}")
    return voucher


async def expire_voucher(db: AsyncSession, voucher_id: UUID) -> bool:
    """
    Expire one voucher if it is still active and past its date.

    Returns True when the voucher was expired.
    """
    voucher = await repository.get_for_update(db, voucher_id)
    now = datetime.now(UTC)
    if voucher is None or not voucher.is_active or voucher.expires_at >= now:
        await db.commit()
        return False

    voucher.status = VoucherStatus.EXPIRED
    await record_event(
        db,
        "voucher_expired",
        auditable=voucher,
        metadata={
            "voucher_code": voucher.code,
            "expired_at": now.isoformat(),
            "remaining_value": str(voucher.remaining_value),
        },
    )
    await db.commit()
    return True
