"""
Application Models

A constituent's eligibility application and the records hanging off it:

- Application: the application itself, with its overall status and the
  sub-statuses for each piece of evidence (income proof, residency proof,
  medical certification) plus the e-signature request state
- ApplicationStatusChange: one row per status transition
- ProofReview: one row per admin decision on a proof
- ApplicationNote: admin notes, optionally assigned to a staff member
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vulcan.core.database import Base
from vulcan.modules.users.models import User


class ApplicationStatus(str, enum.Enum):
    """
    Overall application status.

    draft -> in_progress (submitted) -> awaiting_proof / reminder_sent
    (constituent must resubmit proofs) -> awaiting_dcf (waiting for the
    disability certification form) -> approved, or rejected / archived.
    """

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    AWAITING_PROOF = "awaiting_proof"
    REMINDER_SENT = "reminder_sent"
    AWAITING_DCF = "awaiting_dcf"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class ProofStatus(str, enum.Enum):
    """Review status of an income or residency proof."""

    NOT_REVIEWED = "not_reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class MedicalCertificationStatus(str, enum.Enum):
    NOT_REQUESTED = "not_requested"
    REQUESTED = "requested"
    RECEIVED = "received"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentSigningStatus(str, enum.Enum):
    """State of the e-signature request sent to the medical provider."""

    NOT_SENT = "not_sent"
    SENT = "sent"
    OPENED = "opened"
    SIGNED = "signed"
    DECLINED = "declined"


class SubmissionMethod(str, enum.Enum):
    ONLINE = "online"
    PAPER = "paper"
    PHONE = "phone"
    EMAIL = "email"


class ApplicationType(str, enum.Enum):
    NEW = "new"
    RENEWAL = "renewal"


class ProofType(str, enum.Enum):
    INCOME = "income"
    RESIDENCY = "residency"


class Application(Base):
    """
    Benefit eligibility application.

    `user_id` is the applicant. For a dependent's application the applicant
    is the dependent and `managing_guardian_id` is the guardian who manages
    it and receives correspondence.
    """

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    managing_guardian_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Status tracking
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )
    application_type: Mapped[ApplicationType] = mapped_column(
        Enum(ApplicationType, name="application_type"),
        nullable=False,
        default=ApplicationType.NEW,
    )
    submission_method: Mapped[SubmissionMethod] = mapped_column(
        Enum(SubmissionMethod, name="submission_method"),
        nullable=False,
        default=SubmissionMethod.ONLINE,
    )
    application_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_visited_step: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Eligibility
    household_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    annual_income: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    maryland_resident: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    self_certify_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    terms_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    information_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    medical_release_authorized: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Alternate contact
    alternate_contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    alternate_contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    alternate_contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Medical provider
    medical_provider_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    medical_provider_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    medical_provider_fax: Mapped[str | None] = mapped_column(String(20), nullable=True)
    medical_provider_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Proofs
    income_proof_status: Mapped[ProofStatus] = mapped_column(
        Enum(ProofStatus, name="proof_status"), nullable=False, default=ProofStatus.NOT_REVIEWED
    )
    residency_proof_status: Mapped[ProofStatus] = mapped_column(
        Enum(ProofStatus, name="proof_status"), nullable=False, default=ProofStatus.NOT_REVIEWED
    )
    income_proof_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    residency_proof_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    needs_review_since: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_rejections: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_proof_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Medical certification
    medical_certification_status: Mapped[MedicalCertificationStatus] = mapped_column(
        Enum(MedicalCertificationStatus, name="medical_certification_status"),
        nullable=False,
        default=MedicalCertificationStatus.NOT_REQUESTED,
    )
    medical_certification_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    medical_certification_request_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    medical_certification_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    medical_certification_verified_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    medical_certification_rejection_reason: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    medical_certification_rejection_reason_code: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    medical_certification_file_key: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )

    # E-signature request
    document_signing_service: Mapped[str | None] = mapped_column(String(50), nullable=True)
    document_signing_submission_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    document_signing_submitter_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    document_signing_status: Mapped[DocumentSigningStatus] = mapped_column(
        Enum(DocumentSigningStatus, name="document_signing_status"),
        nullable=False,
        default=DocumentSigningStatus.NOT_SENT,
    )
    document_signing_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    document_signing_signed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    document_signing_document_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_signing_audit_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_signing_request_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Reminders
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    user: Mapped[User] = relationship(User, foreign_keys=[user_id], lazy="selectin")
    managing_guardian: Mapped[User | None] = relationship(
        User, foreign_keys=[managing_guardian_id], lazy="selectin"
    )

    __table_args__ = (
        Index("ix_applications_status", "status"),
        Index("ix_applications_user_id", "user_id"),
        Index("ix_applications_managing_guardian_id", "managing_guardian_id"),
        Index("ix_applications_medical_certification_status", "medical_certification_status"),
        Index(
            "ix_applications_document_signing_submission",
            "document_signing_service",
            "document_signing_submission_id",
        ),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status.value})>"

    @property
    def for_dependent(self) -> bool:
        return self.managing_guardian_id is not None

    @property
    def all_proofs_approved(self) -> bool:
        return (
            self.income_proof_status == ProofStatus.APPROVED
            and self.residency_proof_status == ProofStatus.APPROVED
        )

    @property
    def all_requirements_met(self) -> bool:
        return (
            self.all_proofs_approved
            and self.medical_certification_status == MedicalCertificationStatus.APPROVED
        )

    @property
    def contact_user(self) -> User:
        """Who receives correspondence: the managing guardian, else the applicant."""
        return self.managing_guardian or self.user


class ApplicationStatusChange(Base):
    __tablename__ = "application_status_changes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    from_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    change_type: Mapped[str] = mapped_column(String(50), nullable=False, default="status")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    change_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_application_status_changes_application_id", "application_id"),)


class ProofReview(Base):
    __tablename__ = "proof_reviews"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    proof_type: Mapped[ProofType] = mapped_column(
        Enum(ProofType, name="proof_type"), nullable=False
    )
    status: Mapped[ProofStatus] = mapped_column(
        Enum(ProofStatus, name="proof_status"), nullable=False
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_proof_reviews_application_id", "application_id"),)


class ApplicationNote(Base):
    """
    Admin note on an application.

    Notes are internal by default. A note can be assigned to a staff member
    as a task and marked done.
    """

    __tablename__ = "application_notes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    internal_only: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    assigned_to: Mapped[User | None] = relationship(
        User, foreign_keys=[assigned_to_id], lazy="selectin"
    )

    __table_args__ = (
        Index("ix_application_notes_application_id", "application_id"),
        Index("ix_application_notes_assigned_to_id", "assigned_to_id"),
    )

    @property
    def completed(self) -> bool:
        return self.completed_at is not None
