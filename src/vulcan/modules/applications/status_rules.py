"""
Application Status Rules

Rules that move an application forward on their own once its evidence is
in place. The service layer calls `apply_status_rules` after every change
to an application (proof review, certification review, webhook updates,
admin status changes), and the rules run in a fixed order:

1. request_medical_certification_if_ready
   Both proofs approved and the application is waiting for the disability
   certification form -> ask the medical provider for it.

2. auto_approve_if_eligible
   Income, residency and medical certification all approved -> approve
   the application and write an `application_auto_approved` event.

Each rule re-reads the application under a row lock so two concurrent
requests cannot both act on the same state.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import emails, repository
from vulcan.modules.applications.models import (
    Application,
    ApplicationStatus,
    MedicalCertificationStatus,
)
from vulcan.modules.audit.repository import record_event_safely

logger = logging.getLogger(__name__)

AUTO_APPROVAL_NOTE = "Auto-approved based on all requirements being met"

# Statuses auto-approval never touches
AUTO_APPROVAL_EXCLUDED_STATUSES = {
    ApplicationStatus.DRAFT,
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.ARCHIVED,
}


def needs_medical_certification_request(application: Application) -> bool:
    return (
        application.status == ApplicationStatus.AWAITING_DCF
        and application.all_proofs_approved
        and application.medical_certification_status == MedicalCertificationStatus.NOT_REQUESTED
    )


def eligible_for_auto_approval(application: Application) -> bool:
    return (
        application.status not in AUTO_APPROVAL_EXCLUDED_STATUSES
        and application.all_requirements_met
    )


async def request_medical_certification_if_ready(
    db: AsyncSession, application_id: UUID
) -> bool:
    """
    Mark the certification requested and email the provider.

    Returns:
        True if a request was made
    """
    application = await repository.get_for_update(db, application_id)
    if application is None or not needs_medical_certification_request(application):
        await db.commit()  # release the row lock
        return False

    application.medical_certification_status = MedicalCertificationStatus.REQUESTED
    application.medical_certification_requested_at = datetime.now(UTC)
    application.medical_certification_request_count = (
        application.medical_certification_request_count or 0
    ) + 1
    await db.commit()
    await db.refresh(application)

    logger.info(f"Requested medical certification for application {application.id}")
    await emails.send_certification_request(db, application)
    return True


async def auto_approve_if_eligible(
    db: AsyncSession, application_id: UUID, actor_id: UUID | None = None
) -> bool:
    """
    Approve the application when every requirement is approved.

    The status change commits first; the audit event is written after and
    a failure to write it is only logged.

    Returns:
        True if the application was approved
    """
    application = await repository.get_for_update(db, application_id)
    if application is None or not eligible_for_auto_approval(application):
        await db.commit()  # release the row lock
        return False

    old_status = application.status
    await repository.update_status(
        db,
        application,
        ApplicationStatus.APPROVED,
        actor_id=actor_id,
        notes=AUTO_APPROVAL_NOTE,
        change_type="auto_approval",
    )
    logger.info(f"Auto-approved application {application.id} (was {old_status.value})")

    await record_event_safely(
        db,
        "application_auto_approved",
        actor_id=actor_id,
        auditable=application,
        metadata={
            "application_id": str(application.id),
            "old_status": old_status.value,
            "new_status": ApplicationStatus.APPROVED.value,
            "timestamp": datetime.now(UTC).isoformat(),
            "auto_approval": True,
            "triggered_by_user_id": str(actor_id) if actor_id else None,
        },
    )

    await emails.send_approved(db, application)
    return True


async def apply_status_rules(
    db: AsyncSession, application_id: UUID, actor_id: UUID | None = None
) -> dict[str, bool]:
    """Run every status rule in order and report which ones fired."""
    return {
        "medical_certification_requested": await request_medical_certification_if_ready(
            db, application_id
        ),
        "auto_approved": await auto_approve_if_eligible(db, application_id, actor_id),
    }
