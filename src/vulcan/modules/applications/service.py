"""
Applications Service Layer

Business logic for benefit applications. Orchestrates repository
operations, file storage, rejection reasons and email notifications, and
runs the status rules after every change.

This module implements:
1. Constituent flow:
   - Create a draft for self or a dependent (guardian relationship required)
   - Submit (waiting period and required field checks)
   - Upload income and residency proofs
   - Update the alternate contact

2. Admin review:
   - Approve or reject proofs (rejection reasons, rejection limit)
   - Approve or reject the medical certification
   - Request the medical certification manually
   - Change the status directly

Every mutation that can unlock the next step ends with
`status_rules.apply_status_rules`, which requests the medical
certification and auto-approves the application when its conditions hold.
"""

import asyncio
import logging
import uuid
from datetime import UTC, date, datetime
from pathlib import PurePath
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.config import settings
from vulcan.core.storage import StorageError, get_storage
from vulcan.modules.applications import emails, repository, status_rules
from vulcan.modules.applications.models import (
    Application,
    ApplicationStatus,
    MedicalCertificationStatus,
    ProofStatus,
    ProofType,
)
from vulcan.modules.applications.repository import InvalidStatusTransitionError
from vulcan.modules.applications.schemas import AlternateContactUpdate, ApplicationFields
from vulcan.modules.audit.repository import record_event
from vulcan.modules.guardians import repository as guardian_repository
from vulcan.modules.notifications.provider_notifier import (
    MedicalProviderNotifier,
    remaining_attempts,
)
from vulcan.modules.rejection_reasons.models import RejectionProofType
from vulcan.modules.rejection_reasons.service import resolve_for_persistence

logger = logging.getLogger(__name__)

ALLOWED_PROOF_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}
MAX_PROOF_SIZE_BYTES = 5 * 1024 * 1024

MAX_REJECTIONS_NOTE = "Maximum number of proof rejections reached"

# Statuses in which proofs can still be uploaded and reviewed
REVIEWABLE_STATUSES = {
    ApplicationStatus.IN_PROGRESS,
    ApplicationStatus.AWAITING_PROOF,
    ApplicationStatus.REMINDER_SENT,
    ApplicationStatus.AWAITING_DCF,
}


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ApplicationNotFoundError(ApplicationServiceError):
    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(message=message, error_code="APPLICATION_NOT_FOUND", status_code=404)


class NotApplicationOwnerError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="You do not have access to this application.",
            error_code="NOT_APPLICATION_OWNER",
            status_code=403,
        )


class NotGuardianError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="You are not a guardian of this dependent.",
            error_code="NOT_GUARDIAN",
            status_code=403,
        )


class ActiveApplicationExistsError(ApplicationServiceError):
    def __init__(self, message: str = "An active application already exists for this applicant."):
        super().__init__(message=message, error_code="ACTIVE_APPLICATION_EXISTS", status_code=409)


class WaitingPeriodError(ApplicationServiceError):
    """Raised when the applicant applied within the waiting period."""

    def __init__(self, eligible_on: date):
        self.eligible_on = eligible_on
        super().__init__(
            message=(
                "You must wait "
                f"{settings.waiting_period_years} years between applications. "
                f"You can apply again on {eligible_on.strftime('%m/%d/%Y')}."
            ),
            error_code="WAITING_PERIOD",
            status_code=422,
        )


class ApplicationValidationError(ApplicationServiceError):
    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(
            message="The application is missing required information.",
            error_code="VALIDATION_ERROR",
            status_code=422,
        )


class InvalidApplicationStateError(ApplicationServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_STATE", status_code=409)


class InvalidProofError(ApplicationServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_PROOF", status_code=422)


# ============================================
# Helpers
# ============================================


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a non leap year
        return day.replace(year=day.year - years, day=28)


def years_after(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def can_access(application: Application, user_id: UUID) -> bool:
    return application.user_id == user_id or application.managing_guardian_id == user_id


def validate_for_submission(application: Application) -> dict[str, list[str]]:
    """Required fields for a submitted application, keyed by field name."""
    errors: dict[str, list[str]] = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    if not application.maryland_resident:
        add("maryland_resident", "You must be a Maryland resident to apply")
    if not application.household_size:
        add("household_size", "Household size is required")
    if application.annual_income is None:
        add("annual_income", "Annual income is required")
    if not application.self_certify_disability:
        add("self_certify_disability", "You must certify that you have a disability")
    if not application.user.has_disability:
        add("disability", "At least one disability must be selected")
    if not application.medical_provider_name:
        add("medical_provider_name", "Medical provider name is required")
    if not application.medical_provider_phone:
        add("medical_provider_phone", "Medical provider phone is required")
    if not application.medical_provider_email:
        add("medical_provider_email", "Medical provider email is required")
    if not application.terms_accepted:
        add("terms_accepted", "You must accept the terms and conditions")
    if not application.information_verified:
        add("information_verified", "You must verify the information is correct")
    if not application.medical_release_authorized:
        add("medical_release_authorized", "You must authorize the medical release")
    return errors


async def check_waiting_period(
    db: AsyncSession, applicant_id: UUID, exclude_id: UUID | None = None
) -> None:
    """
    Raises:
        WaitingPeriodError: The applicant applied within the waiting period
    """
    last = await repository.get_last_submitted_for_applicant(db, applicant_id, exclude_id)
    if last is None or last.application_date is None:
        return
    cutoff = years_before(date.today(), settings.waiting_period_years)
    if last.application_date > cutoff:
        raise WaitingPeriodError(years_after(last.application_date, settings.waiting_period_years))


async def resolve_applicant(
    db: AsyncSession, actor_id: UUID, dependent_id: UUID | None
) -> tuple[UUID, UUID | None]:
    """
    Work out who the application is for.

    Returns:
        (applicant_id, managing_guardian_id)
    """
    if dependent_id is None or dependent_id == actor_id:
        return actor_id, None
    relationship = await guardian_repository.get_relationship(db, actor_id, dependent_id)
    if relationship is None:
        raise NotGuardianError()
    return dependent_id, relationship.guardian_id


async def _get_for_update(db: AsyncSession, application_id: UUID) -> Application:
    application = await repository.get_for_update(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)
    return application


async def get_application(db: AsyncSession, application_id: UUID) -> Application:
    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)
    return application


async def get_application_for_user(
    db: AsyncSession, application_id: UUID, user_id: UUID
) -> Application:
    application = await get_application(db, application_id)
    if not can_access(application, user_id):
        raise NotApplicationOwnerError()
    return application


async def list_for_user(db: AsyncSession, user_id: UUID) -> list[Application]:
    return await repository.list_for_user(db, user_id)


# ============================================
# Constituent flow
# ============================================


async def create_application(
    db: AsyncSession,
    actor_id: UUID,
    data: ApplicationFields,
    dependent_id: UUID | None = None,
    submit: bool = False,
) -> Application:
    """
    Create (or continue) a draft application and optionally submit it.

    Raises:
        NotGuardianError: dependent_id is not the caller's dependent
        ActiveApplicationExistsError: the applicant already has an active application
        WaitingPeriodError: on submit, the applicant applied too recently
        ApplicationValidationError: on submit, required fields are missing
    """
    applicant_id, managing_guardian_id = await resolve_applicant(db, actor_id, dependent_id)

    if await repository.get_active_for_applicant(db, applicant_id):
        raise ActiveApplicationExistsError()

    fields = data.model_dump(exclude_unset=True, exclude={"dependent_id", "submit"})
    application = await repository.get_draft_for_applicant(db, applicant_id, managing_guardian_id)
    if application is None:
        application = await repository.create(
            db,
            user_id=applicant_id,
            managing_guardian_id=managing_guardian_id,
            status=ApplicationStatus.DRAFT,
            **fields,
        )
        logger.info(f"Created draft application {application.id} for {applicant_id}")
    else:
        for key, value in fields.items():
            setattr(application, key, value)
        await repository.save(db, application)

    if submit:
        return await submit_application(db, application.id, actor_id)
    return application


async def submit_application(db: AsyncSession, application_id: UUID, actor_id: UUID) -> Application:
    application = await get_application_for_user(db, application_id, actor_id)
    if application.status != ApplicationStatus.DRAFT:
        raise InvalidApplicationStateError("Only draft applications can be submitted.")

    await check_waiting_period(db, application.user_id, exclude_id=application.id)

    errors = validate_for_submission(application)
    if errors:
        raise ApplicationValidationError(errors)

    now = datetime.now(UTC)
    await repository.update_status(
        db,
        application,
        ApplicationStatus.IN_PROGRESS,
        actor_id=actor_id,
        notes="Application submitted",
        application_date=now.date(),
        needs_review_since=(
            now if application.income_proof_key or application.residency_proof_key else None
        ),
    )
    logger.info(f"Application {application.id} submitted by {actor_id}")

    await emails.send_submitted(db, application)
    return application


async def upload_proof(
    db: AsyncSession,
    application_id: UUID,
    actor_id: UUID,
    proof_type: ProofType,
    filename: str,
    content: bytes,
    content_type: str | None,
) -> Application:
    """
    Store an income or residency proof and queue it for review.

    A resubmission while the application awaits proofs moves it back to
    in_progress.
    """
    extension = ALLOWED_PROOF_CONTENT_TYPES.get((content_type or "").lower())
    if extension is None:
        raise InvalidProofError("Proofs must be PDF, JPEG or PNG files.")
    if not content:
        raise InvalidProofError("The uploaded file is empty.")
    if len(content) > MAX_PROOF_SIZE_BYTES:
        raise InvalidProofError("Proofs must be 5 MB or smaller.")

    application = await get_application_for_user(db, application_id, actor_id)
    if application.status not in REVIEWABLE_STATUSES | {ApplicationStatus.DRAFT}:
        raise InvalidApplicationStateError(
            f"Proofs cannot be uploaded while the application is {application.status.value}."
        )
    status_field = f"{proof_type.value}_proof_status"
    if getattr(application, status_field) == ProofStatus.APPROVED:
        raise InvalidApplicationStateError(f"The {proof_type.value} proof is already approved.")

    key = f"proofs/{application.id}/{proof_type.value}/{uuid.uuid4().hex}{extension}"
    try:
        await asyncio.to_thread(get_storage().put_bytes, key, content, content_type=content_type)
    except StorageError as e:
        logger.error(f"Failed to store {proof_type.value} proof for {application.id}: {e}")
        raise ApplicationServiceError(
            "The file could not be saved. Please try again.", "STORAGE_ERROR", 502
        ) from e

    application = await _get_for_update(db, application_id)
    now = datetime.now(UTC)
    fields: dict[str, Any] = {
        f"{proof_type.value}_proof_key": key,
        status_field: ProofStatus.NOT_REVIEWED,
        "last_proof_submitted_at": now,
    }
    if application.status != ApplicationStatus.DRAFT:
        fields["needs_review_since"] = application.needs_review_since or now

    new_status = application.status
    if application.status in (ApplicationStatus.AWAITING_PROOF, ApplicationStatus.REMINDER_SENT):
        new_status = ApplicationStatus.IN_PROGRESS
        fields["reminder_sent_at"] = None

    await repository.update_status(
        db,
        application,
        new_status,
        actor_id=actor_id,
        notes=f"{proof_type.value.title()} proof resubmitted",
        change_type="proof_submitted",
        **fields,
    )
    await record_event(
        db,
        "proof_submitted",
        actor_id=actor_id,
        auditable=application,
        metadata={"proof_type": proof_type.value, "filename": PurePath(filename or "").name},
        commit=True,
    )
    logger.info(f"{proof_type.value} proof uploaded for application {application.id}")
    return application


async def update_alternate_contact(
    db: AsyncSession, application_id: UUID, actor_id: UUID, data: AlternateContactUpdate
) -> Application:
    application = await get_application_for_user(db, application_id, actor_id)

    changes: dict[str, dict[str, Any]] = {}
    for field, value in data.model_dump(exclude_unset=True).items():
        old = getattr(application, field)
        if old != value:
            changes[field] = {"from": old, "to": value}
            setattr(application, field, value)

    if not changes:
        return application

    await record_event(
        db,
        "alternate_contact_updated",
        actor_id=actor_id,
        auditable=application,
        metadata={"changes": changes},
    )
    return await repository.save(db, application)


# ============================================
# Admin review
# ============================================


def _clear_review_flag_if_done(application: Application) -> None:
    pending = any(
        getattr(application, f"{t.value}_proof_key")
        and getattr(application, f"{t.value}_proof_status") == ProofStatus.NOT_REVIEWED
        for t in ProofType
    )
    if not pending:
        application.needs_review_since = None


async def review_proof(
    db: AsyncSession,
    application_id: UUID,
    admin_id: UUID,
    proof_type: ProofType,
    approved: bool,
    rejection_reason_code: str | None = None,
    rejection_reason: str | None = None,
    notes: str | None = None,
) -> Application:
    """
    Approve or reject an income or residency proof.

    Rejection moves the application to awaiting_proof and tells the
    constituent why. At the rejection limit the application is archived
    instead.
    """
    application = await _get_for_update(db, application_id)
    if application.status not in REVIEWABLE_STATUSES:
        await db.commit()
        raise InvalidApplicationStateError(
            f"Proofs cannot be reviewed while the application is {application.status.value}."
        )
    if not getattr(application, f"{proof_type.value}_proof_key"):
        await db.commit()
        raise InvalidApplicationStateError(f"No {proof_type.value} proof has been uploaded.")

    status_field = f"{proof_type.value}_proof_status"

    if approved:
        setattr(application, status_field, ProofStatus.APPROVED)
        await repository.create_proof_review(
            db,
            application_id=application.id,
            admin_id=admin_id,
            proof_type=proof_type,
            status=ProofStatus.APPROVED,
            notes=notes,
        )
        _clear_review_flag_if_done(application)

        new_status = application.status
        if (
            application.all_proofs_approved
            and application.status != ApplicationStatus.AWAITING_DCF
        ):
            new_status = ApplicationStatus.AWAITING_DCF

        await repository.update_status(
            db,
            application,
            new_status,
            actor_id=admin_id,
            notes="All proofs approved" if new_status != application.status else None,
        )
        logger.info(f"Admin {admin_id} approved {proof_type.value} proof for {application.id}")
        await emails.send_proof_approved(db, application, proof_type)
    else:
        resolved = await resolve_for_persistence(
            db,
            rejection_reason_code,
            RejectionProofType(proof_type.value),
            locale=application.contact_user.locale,
            custom_text=rejection_reason,
            variables={"address": application.user.physical_address_1 or ""},
        )
        setattr(application, status_field, ProofStatus.REJECTED)
        application.total_rejections = (application.total_rejections or 0) + 1
        await repository.create_proof_review(
            db,
            application_id=application.id,
            admin_id=admin_id,
            proof_type=proof_type,
            status=ProofStatus.REJECTED,
            rejection_reason=resolved["text"],
            rejection_reason_code=resolved["code"],
            notes=notes,
        )
        _clear_review_flag_if_done(application)

        if application.total_rejections >= settings.max_proof_rejections:
            await repository.update_status(
                db,
                application,
                ApplicationStatus.ARCHIVED,
                actor_id=admin_id,
                notes=MAX_REJECTIONS_NOTE,
                change_type="max_rejections",
            )
            logger.info(f"Application {application.id} archived after max proof rejections")
            await emails.send_max_rejections_reached(
                db,
                application,
                years_after(date.today(), settings.waiting_period_years),
            )
            return application

        await repository.update_status(
            db,
            application,
            ApplicationStatus.AWAITING_PROOF,
            actor_id=admin_id,
            notes=f"{proof_type.value.title()} proof rejected",
        )
        logger.info(f"Admin {admin_id} rejected {proof_type.value} proof for {application.id}")
        await emails.send_proof_rejected(
            db, application, proof_type, resolved["text"] or "", remaining_attempts(application)
        )

    await status_rules.apply_status_rules(db, application.id, admin_id)
    return application


async def approve_medical_certification(
    db: AsyncSession, application_id: UUID, admin_id: UUID
) -> Application:
    application = await _get_for_update(db, application_id)
    if application.medical_certification_status == MedicalCertificationStatus.APPROVED:
        await db.commit()
        raise InvalidApplicationStateError("The medical certification is already approved.")
    if application.status not in REVIEWABLE_STATUSES:
        await db.commit()
        raise InvalidApplicationStateError(
            f"Certifications cannot be reviewed while the application is {application.status.value}."
        )

    application.medical_certification_status = MedicalCertificationStatus.APPROVED
    application.medical_certification_verified_at = datetime.now(UTC)
    application.medical_certification_verified_by_id = admin_id
    application.medical_certification_rejection_reason = None
    application.medical_certification_rejection_reason_code = None
    await record_event(
        db,
        "medical_certification_approved",
        actor_id=admin_id,
        auditable=application,
        metadata={"application_id": str(application.id)},
    )
    await repository.save(db, application)
    logger.info(f"Admin {admin_id} approved medical certification for {application.id}")

    await emails.send_certification_approved(db, application)
    await status_rules.apply_status_rules(db, application.id, admin_id)
    return application


async def reject_medical_certification(
    db: AsyncSession,
    application_id: UUID,
    admin_id: UUID,
    rejection_reason_code: str | None = None,
    rejection_reason: str | None = None,
) -> Application:
    """Reject the certification and notify the provider by fax or email."""
    application = await _get_for_update(db, application_id)
    if application.status not in REVIEWABLE_STATUSES:
        await db.commit()
        raise InvalidApplicationStateError(
            f"Certifications cannot be reviewed while the application is {application.status.value}."
        )

    resolved = await resolve_for_persistence(
        db,
        rejection_reason_code,
        RejectionProofType.MEDICAL_CERTIFICATION,
        custom_text=rejection_reason,
    )
    application.medical_certification_status = MedicalCertificationStatus.REJECTED
    application.medical_certification_rejection_reason = resolved["text"]
    application.medical_certification_rejection_reason_code = resolved["code"]
    application.medical_certification_verified_at = datetime.now(UTC)
    application.medical_certification_verified_by_id = admin_id
    await repository.save(db, application)
    logger.info(f"Admin {admin_id} rejected medical certification for {application.id}")

    notifier = MedicalProviderNotifier(db, application)
    await notifier.notify_certification_rejection(resolved["text"] or "", admin_id)
    return application


async def request_medical_certification(
    db: AsyncSession, application_id: UUID, admin_id: UUID
) -> Application:
    """Send (or resend) the certification request email to the provider."""
    application = await _get_for_update(db, application_id)
    if application.status not in REVIEWABLE_STATUSES:
        await db.commit()
        raise InvalidApplicationStateError(
            f"Certification cannot be requested while the application is {application.status.value}."
        )
    if not application.medical_provider_email:
        await db.commit()
        raise InvalidApplicationStateError("The application has no medical provider email.")
    if application.medical_certification_status == MedicalCertificationStatus.APPROVED:
        await db.commit()
        raise InvalidApplicationStateError("The medical certification is already approved.")

    application.medical_certification_status = MedicalCertificationStatus.REQUESTED
    application.medical_certification_requested_at = datetime.now(UTC)
    application.medical_certification_request_count = (
        application.medical_certification_request_count or 0
    ) + 1
    await record_event(
        db,
        "medical_certification_requested",
        actor_id=admin_id,
        auditable=application,
        metadata={
            "application_id": str(application.id),
            "request_count": application.medical_certification_request_count,
        },
    )
    await repository.save(db, application)
    logger.info(f"Admin {admin_id} requested medical certification for {application.id}")

    await emails.send_certification_request(db, application)
    return application


async def change_status(
    db: AsyncSession,
    application_id: UUID,
    admin_id: UUID,
    new_status: ApplicationStatus,
    notes: str | None = None,
) -> Application:
    application = await _get_for_update(db, application_id)
    old_status = application.status
    try:
        await repository.update_status(
            db, application, new_status, actor_id=admin_id, notes=notes, change_type="admin"
        )
    except InvalidStatusTransitionError as e:
        await db.commit()
        raise InvalidApplicationStateError(str(e)) from e

    logger.info(
        f"Admin {admin_id} changed application {application.id} "
        f"from {old_status.value} to {new_status.value}"
    )
    if new_status == ApplicationStatus.APPROVED and old_status != ApplicationStatus.APPROVED:
        await emails.send_approved(db, application)

    await status_rules.apply_status_rules(db, application.id, admin_id)
    return application
