"""
Application Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from vulcan.modules.applications.models import (
    ApplicationStatus,
    ApplicationType,
    DocumentSigningStatus,
    MedicalCertificationStatus,
    ProofStatus,
    ProofType,
    SubmissionMethod,
)

# ============================================
# Constituent requests
# ============================================


class ApplicationFields(BaseModel):
    """Fields a constituent fills in on the application form."""

    household_size: int | None = Field(None, ge=1, le=50)
    annual_income: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    maryland_resident: bool | None = None
    self_certify_disability: bool | None = None
    terms_accepted: bool | None = None
    information_verified: bool | None = None
    medical_release_authorized: bool | None = None

    alternate_contact_name: str | None = Field(None, max_length=200)
    alternate_contact_phone: str | None = Field(None, max_length=20)
    alternate_contact_email: EmailStr | None = None

    medical_provider_name: str | None = Field(None, max_length=200)
    medical_provider_phone: str | None = Field(None, max_length=20)
    medical_provider_fax: str | None = Field(None, max_length=20)
    medical_provider_email: EmailStr | None = None


class ApplicationCreate(ApplicationFields):
    """
    Request body for POST /applications.

    `dependent_id` files the application for a dependent the caller is
    guardian of. `submit` submits straight away instead of saving a draft.
    """

    dependent_id: UUID | None = None
    submit: bool = False


class AlternateContactUpdate(BaseModel):
    alternate_contact_name: str | None = Field(None, max_length=200)
    alternate_contact_phone: str | None = Field(None, max_length=20)
    alternate_contact_email: EmailStr | None = None


class AutosaveRequest(BaseModel):
    field_name: str | None = None
    field_value: Any = None
    application_id: UUID | None = None
    dependent_id: UUID | None = None
    step: str | None = Field(None, max_length=50)


class AutosaveResponse(BaseModel):
    success: bool
    application_id: UUID | None = None
    message: str | None = None
    errors: dict[str, list[str]] | None = None


# ============================================
# Responses
# ============================================


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    managing_guardian_id: UUID | None
    status: ApplicationStatus
    application_type: ApplicationType
    submission_method: SubmissionMethod
    application_date: date | None
    last_visited_step: str | None

    household_size: int | None
    annual_income: Decimal | None
    maryland_resident: bool
    self_certify_disability: bool

    alternate_contact_name: str | None
    alternate_contact_phone: str | None
    alternate_contact_email: str | None

    medical_provider_name: str | None
    medical_provider_phone: str | None
    medical_provider_fax: str | None
    medical_provider_email: str | None

    income_proof_status: ProofStatus
    residency_proof_status: ProofStatus
    medical_certification_status: MedicalCertificationStatus
    document_signing_status: DocumentSigningStatus
    total_rejections: int

    created_at: datetime
    updated_at: datetime


class ApplicationListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    applicant_name: str
    managing_guardian_id: UUID | None
    status: ApplicationStatus
    submission_method: SubmissionMethod
    application_date: date | None
    income_proof_status: ProofStatus
    residency_proof_status: ProofStatus
    medical_certification_status: MedicalCertificationStatus
    document_signing_status: DocumentSigningStatus
    created_at: datetime


class ApplicationListResponse(BaseModel):
    items: list[ApplicationListItem]
    total: int
    page: int
    page_size: int


class ProofUploadResponse(BaseModel):
    application_id: UUID
    proof_type: ProofType
    status: ProofStatus
    application_status: ApplicationStatus


# ============================================
# Admin requests
# ============================================


class ProofReviewRequest(BaseModel):
    """
    Admin decision on a proof.

    A rejection needs a reason: a catalogue `rejection_reason_code`, free
    text in `rejection_reason`, or both (free text wins).
    """

    decision: Literal["approved", "rejected"]
    rejection_reason_code: str | None = Field(None, max_length=100)
    rejection_reason: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_reason(self) -> "ProofReviewRequest":
        if self.decision == "rejected" and not (
            self.rejection_reason_code or (self.rejection_reason and self.rejection_reason.strip())
        ):
            raise ValueError("A rejection reason is required when rejecting")
        return self


class MedicalCertificationReviewRequest(ProofReviewRequest):
    pass


class StatusChangeRequest(BaseModel):
    status: ApplicationStatus
    notes: str | None = Field(None, max_length=2000)


class PaperApplicant(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    physical_address_1: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=2)
    zip_code: str | None = Field(None, max_length=10)
    hearing_disability: bool = False
    vision_disability: bool = False
    speech_disability: bool = False
    mobility_disability: bool = False
    cognition_disability: bool = False


class PaperApplicationCreate(ApplicationFields):
    """
    Paper application keyed in by an admin.

    Either `applicant_id` (an existing constituent) or `applicant` (a new
    one). For a dependent, `guardian_id` names the managing guardian.
    """

    applicant_id: UUID | None = None
    applicant: PaperApplicant | None = None
    guardian_id: UUID | None = None
    relationship_type: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def validate_applicant(self) -> "PaperApplicationCreate":
        if (self.applicant_id is None) == (self.applicant is None):
            raise ValueError("Provide exactly one of applicant_id or applicant")
        if self.guardian_id and self.applicant and not self.relationship_type:
            raise ValueError("relationship_type is required for a new dependent")
        return self


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    internal_only: bool = True
    assigned_to_id: UUID | None = None


class NoteAssign(BaseModel):
    assigned_to_id: UUID


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    admin_id: UUID | None
    assigned_to_id: UUID | None
    content: str
    internal_only: bool
    completed_at: datetime | None
    created_at: datetime


class ActionResponse(BaseModel):
    success: bool
    message: str


class DashboardStats(BaseModel):
    open_applications: int
    pending_services: int
    proofs_needing_review: int
    medical_certs_to_review: int
    digitally_signed_needs_review: int


class AuditLogEntry(BaseModel):
    type: str
    action: str
    actor_id: UUID | None = None
    occurred_at: datetime
    details: dict[str, Any] = Field(default_factory=dict)


class ApplicationDetailResponse(ApplicationResponse):
    applicant_name: str
    managing_guardian_name: str | None
    notes: list[NoteResponse] = Field(default_factory=list)
    audit_log: list[AuditLogEntry] = Field(default_factory=list)
