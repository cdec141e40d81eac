"""
Applications Repository

Database operations for applications, status history, proof reviews and
notes. Status changes go through `update_status`, which enforces the
transition table and writes the status history row and audit event in
the same transaction.

Row locks: `get_for_update` issues SELECT ... FOR UPDATE and refreshes the
instance, so multi-field updates (auto-approval, signing state, note
assignment) never act on stale values.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications.models import (
    Application,
    ApplicationNote,
    ApplicationStatus,
    ApplicationStatusChange,
    DocumentSigningStatus,
    MedicalCertificationStatus,
    ProofReview,
    ProofStatus,
    ProofType,
)
from vulcan.modules.audit.repository import record_event

# Applications a constituent is still working through with the program
ACTIVE_STATUSES = {
    ApplicationStatus.IN_PROGRESS,
    ApplicationStatus.AWAITING_PROOF,
    ApplicationStatus.REMINDER_SENT,
    ApplicationStatus.AWAITING_DCF,
}

TERMINAL_STATUSES = {
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.ARCHIVED,
}

# Status names used before awaiting_dcf replaced awaiting_documents
LEGACY_STATUS_ALIASES = {
    "awaiting_documents": ApplicationStatus.AWAITING_DCF.value,
    "needs_information": ApplicationStatus.AWAITING_PROOF.value,
}

VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.IN_PROGRESS,  # Submitted
        ApplicationStatus.ARCHIVED,  # Abandoned draft
    },
    ApplicationStatus.IN_PROGRESS: {
        ApplicationStatus.AWAITING_PROOF,  # A proof was rejected
        ApplicationStatus.AWAITING_DCF,  # Proofs approved, need certification
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.ARCHIVED,
    },
    ApplicationStatus.AWAITING_PROOF: {
        ApplicationStatus.REMINDER_SENT,  # Constituent reminded to resubmit
        ApplicationStatus.IN_PROGRESS,  # Proof resubmitted
        ApplicationStatus.AWAITING_DCF,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.ARCHIVED,  # Max rejections reached
    },
    ApplicationStatus.REMINDER_SENT: {
        ApplicationStatus.AWAITING_PROOF,
        ApplicationStatus.IN_PROGRESS,
        ApplicationStatus.AWAITING_DCF,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.ARCHIVED,
    },
    ApplicationStatus.AWAITING_DCF: {
        ApplicationStatus.IN_PROGRESS,  # Certification received, back in review
        ApplicationStatus.AWAITING_PROOF,
        ApplicationStatus.APPROVED,  # Certification approved
        ApplicationStatus.REJECTED,
        ApplicationStatus.ARCHIVED,
    },
    # Terminal states
    ApplicationStatus.APPROVED: {ApplicationStatus.ARCHIVED},
    ApplicationStatus.REJECTED: {ApplicationStatus.ARCHIVED},
    ApplicationStatus.ARCHIVED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current_status: ApplicationStatus, new_status: ApplicationStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def can_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    return new == current or new in VALID_STATUS_TRANSITIONS.get(current, set())


def normalize_status(value: str | None) -> str | None:
    """Map legacy status names onto the current ones."""
    if value is None:
        return None
    return LEGACY_STATUS_ALIASES.get(value, value)


def _now() -> datetime:
    return datetime.now(UTC)


# ============================================
# Applications
# ============================================


async def create(db: AsyncSession, **fields: Any) -> Application:
    application = Application(**fields)
    db.add(application)
    await db.commit()
    await db.refresh(application)
    return application


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    return await db.get(Application, id)


async def get_for_update(db: AsyncSession, id: UUID) -> Application | None:
    """Load an application with a row lock held until commit."""
    result = await db.execute(
        select(Application)
        .where(Application.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_by_signing_submission(
    db: AsyncSession, service: str, submission_id: str
) -> Application | None:
    result = await db.execute(
        select(Application).where(
            Application.document_signing_service == service,
            Application.document_signing_submission_id == submission_id,
        )
    )
    return result.scalars().first()


async def list_for_user(db: AsyncSession, user_id: UUID) -> list[Application]:
    """Applications the user filed for themselves or manages as guardian."""
    result = await db.execute(
        select(Application)
        .where((Application.user_id == user_id) | (Application.managing_guardian_id == user_id))
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def get_active_for_applicant(db: AsyncSession, user_id: UUID) -> Application | None:
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id, Application.status.in_(ACTIVE_STATUSES))
        .order_by(Application.created_at.desc())
    )
    return result.scalars().first()


async def get_open_for_applicant(db: AsyncSession, user_id: UUID) -> Application | None:
    """Any application for the applicant that has not been archived."""
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id, Application.status != ApplicationStatus.ARCHIVED)
        .order_by(Application.created_at.desc())
    )
    return result.scalars().first()


async def get_draft_for_applicant(
    db: AsyncSession, user_id: UUID, managing_guardian_id: UUID | None = None
) -> Application | None:
    query = select(Application).where(
        Application.user_id == user_id,
        Application.status == ApplicationStatus.DRAFT,
    )
    if managing_guardian_id is None:
        query = query.where(Application.managing_guardian_id.is_(None))
    else:
        query = query.where(Application.managing_guardian_id == managing_guardian_id)
    result = await db.execute(query.order_by(Application.created_at.desc()))
    return result.scalars().first()


async def get_last_submitted_for_applicant(
    db: AsyncSession, user_id: UUID, exclude_id: UUID | None = None
) -> Application | None:
    query = select(Application).where(
        Application.user_id == user_id,
        Application.status != ApplicationStatus.DRAFT,
        Application.application_date.is_not(None),
    )
    if exclude_id is not None:
        query = query.where(Application.id != exclude_id)
    result = await db.execute(query.order_by(Application.application_date.desc()))
    return result.scalars().first()


async def save(db: AsyncSession, application: Application) -> Application:
    await db.commit()
    await db.refresh(application)
    return application


async def update_status(
    db: AsyncSession,
    application: Application,
    status: ApplicationStatus,
    *,
    actor_id: UUID | None = None,
    notes: str | None = None,
    change_type: str = "status",
    metadata: dict[str, Any] | None = None,
    commit: bool = True,
    **fields: Any,
) -> Application:
    """
    Move an application to a new status.

    Validates the transition, applies extra fields, and records an
    ApplicationStatusChange plus an `application_status_changed` event.
    Setting the current status again only applies the extra fields.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    current_status = application.status
    if not can_transition(current_status, status):
        raise InvalidStatusTransitionError(current_status, status)

    for key, value in fields.items():
        if not hasattr(application, key):
            raise AttributeError(f"Application has no attribute {key}")
        setattr(application, key, value)

    if status != current_status:
        application.status = status
        db.add(
            ApplicationStatusChange(
                application_id=application.id,
                user_id=actor_id,
                from_status=current_status.value,
                to_status=status.value,
                change_type=change_type,
                notes=notes,
                change_metadata=metadata or {},
                changed_at=_now(),
            )
        )
        await record_event(
            db,
            "application_status_changed",
            actor_id=actor_id,
            auditable=application,
            metadata={
                "old_status": current_status.value,
                "new_status": status.value,
                "notes": notes,
            },
        )

    if commit:
        await db.commit()
        await db.refresh(application)

    return application


async def list_status_changes(db: AsyncSession, application_id: UUID) -> list[ApplicationStatusChange]:
    result = await db.execute(
        select(ApplicationStatusChange)
        .where(ApplicationStatusChange.application_id == application_id)
        .order_by(ApplicationStatusChange.changed_at.desc())
    )
    return list(result.scalars().all())


# ============================================
# Proof reviews
# ============================================


async def create_proof_review(
    db: AsyncSession,
    *,
    application_id: UUID,
    admin_id: UUID,
    proof_type: ProofType,
    status: ProofStatus,
    rejection_reason: str | None = None,
    rejection_reason_code: str | None = None,
    notes: str | None = None,
) -> ProofReview:
    review = ProofReview(
        application_id=application_id,
        admin_id=admin_id,
        proof_type=proof_type,
        status=status,
        rejection_reason=rejection_reason,
        rejection_reason_code=rejection_reason_code,
        notes=notes,
        reviewed_at=_now(),
    )
    db.add(review)
    return review


async def list_proof_reviews(db: AsyncSession, application_id: UUID) -> list[ProofReview]:
    result = await db.execute(
        select(ProofReview)
        .where(ProofReview.application_id == application_id)
        .order_by(ProofReview.reviewed_at.desc())
    )
    return list(result.scalars().all())


# ============================================
# Notes
# ============================================


async def create_note(
    db: AsyncSession,
    *,
    application_id: UUID,
    admin_id: UUID,
    content: str,
    internal_only: bool = True,
    assigned_to_id: UUID | None = None,
) -> ApplicationNote:
    note = ApplicationNote(
        application_id=application_id,
        admin_id=admin_id,
        content=content,
        internal_only=internal_only,
        assigned_to_id=assigned_to_id,
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return note


async def get_note_for_update(db: AsyncSession, note_id: UUID) -> ApplicationNote | None:
    result = await db.execute(
        select(ApplicationNote)
        .where(ApplicationNote.id == note_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_notes(db: AsyncSession, application_id: UUID) -> list[ApplicationNote]:
    result = await db.execute(
        select(ApplicationNote)
        .where(ApplicationNote.application_id == application_id)
        .order_by(ApplicationNote.created_at.desc())
    )
    return list(result.scalars().all())


# ============================================
# Job queries
# ============================================


async def list_awaiting_proof_since(db: AsyncSession, before: datetime) -> list[Application]:
    """Applications waiting on the constituent since before the cutoff, not yet reminded."""
    result = await db.execute(
        select(Application).where(
            Application.status == ApplicationStatus.AWAITING_PROOF,
            Application.updated_at < before,
            Application.reminder_sent_at.is_(None),
        )
    )
    return list(result.scalars().all())


async def list_proofs_waiting_review_since(db: AsyncSession, before: datetime) -> list[Application]:
    result = await db.execute(
        select(Application)
        .where(
            Application.status.in_(ACTIVE_STATUSES),
            Application.needs_review_since.is_not(None),
            Application.needs_review_since < before,
        )
        .order_by(Application.needs_review_since.asc())
    )
    return list(result.scalars().all())


# ============================================
# Dashboard
# ============================================


def proofs_pending_review() -> ColumnElement[bool]:
    """An uploaded income or residency proof nobody has reviewed yet."""
    return (
        (Application.income_proof_status == ProofStatus.NOT_REVIEWED)
        & Application.income_proof_key.is_not(None)
    ) | (
        (Application.residency_proof_status == ProofStatus.NOT_REVIEWED)
        & Application.residency_proof_key.is_not(None)
    )


async def get_dashboard_counts(db: AsyncSession) -> dict[str, int]:
    """Counts for the admin dashboard, one aggregate query."""
    status = Application.status
    proofs_pending = proofs_pending_review()

    query = select(
        func.count().filter(status.in_(ACTIVE_STATUSES)).label("open_applications"),
        func.count().filter(status == ApplicationStatus.APPROVED).label("pending_services"),
        func.count()
        .filter(status.in_(ACTIVE_STATUSES) & proofs_pending)
        .label("proofs_needing_review"),
        func.count()
        .filter(
            status.in_(ACTIVE_STATUSES)
            & (Application.medical_certification_status == MedicalCertificationStatus.RECEIVED)
        )
        .label("medical_certs_to_review"),
        func.count()
        .filter(
            (Application.document_signing_status == DocumentSigningStatus.SIGNED)
            & (Application.medical_certification_status != MedicalCertificationStatus.APPROVED)
        )
        .label("digitally_signed_needs_review"),
    ).select_from(Application)

    row = (await db.execute(query)).one()
    return dict(row._mapping)
