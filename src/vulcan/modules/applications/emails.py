"""
Application emails.

Builds the template variables for each application notification and sends
it to the right person: the managing guardian for a dependent's
application, otherwise the applicant. Providers get their own messages.
"""

from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications.models import Application, ProofType
from vulcan.modules.email_templates import mailer


def format_date(value: date | None) -> str:
    return value.strftime("%m/%d/%Y") if value else ""


def format_currency(value: Any) -> str:
    return f"${value:,.2f}"


async def send_to_constituent(
    db: AsyncSession,
    application: Application,
    template_name: str,
    variables: dict[str, Any] | None = None,
) -> bool:
    recipient = application.contact_user
    return await mailer.send_templated_email(
        db,
        template_name,
        recipient.email,
        {
            "user_first_name": recipient.first_name,
            "application_id": str(application.id),
            **(variables or {}),
        },
        locale=recipient.locale,
    )


async def send_submitted(db: AsyncSession, application: Application) -> bool:
    return await send_to_constituent(
        db,
        application,
        mailer.APPLICATION_SUBMITTED,
        {"submission_date_formatted": format_date(application.application_date)},
    )


async def send_approved(db: AsyncSession, application: Application) -> bool:
    return await send_to_constituent(db, application, mailer.APPLICATION_APPROVED)


async def send_proof_approved(db: AsyncSession, application: Application, proof_type: ProofType) -> bool:
    return await send_to_constituent(
        db,
        application,
        mailer.PROOF_APPROVED,
        {"proof_type_formatted": proof_type.value.title()},
    )


async def send_proof_rejected(
    db: AsyncSession,
    application: Application,
    proof_type: ProofType,
    reason: str,
    remaining_attempts: int,
) -> bool:
    return await send_to_constituent(
        db,
        application,
        mailer.PROOF_REJECTED,
        {
            "proof_type_formatted": proof_type.value.title(),
            "rejection_reason": reason,
            "remaining_attempts": remaining_attempts,
        },
    )


async def send_max_rejections_reached(
    db: AsyncSession, application: Application, reapply_date: date
) -> bool:
    return await send_to_constituent(
        db,
        application,
        mailer.MAX_REJECTIONS_REACHED,
        {"reapply_date_formatted": format_date(reapply_date)},
    )


async def send_proof_reminder(db: AsyncSession, application: Application, days_waiting: int) -> bool:
    return await send_to_constituent(
        db,
        application,
        mailer.AWAITING_PROOF_REMINDER,
        {"days_waiting": days_waiting},
    )


async def send_certification_approved(db: AsyncSession, application: Application) -> bool:
    return await send_to_constituent(db, application, mailer.MEDICAL_CERTIFICATION_APPROVED)


async def send_certification_request(db: AsyncSession, application: Application) -> bool:
    """Ask the medical provider to complete the disability certification form."""
    applicant = application.user
    return await mailer.send_templated_email(
        db,
        mailer.PROVIDER_REQUEST_CERTIFICATION,
        application.medical_provider_email,
        {
            "medical_provider_name": application.medical_provider_name or "Medical Provider",
            "constituent_full_name": applicant.full_name,
            "constituent_dob_formatted": format_date(applicant.date_of_birth),
            "application_id": str(application.id),
            "request_count": application.medical_certification_request_count,
        },
    )
