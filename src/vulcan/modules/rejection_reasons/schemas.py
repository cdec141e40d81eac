"""
Rejection Reason Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from vulcan.modules.rejection_reasons.models import RejectionProofType


class RejectionReasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    proof_type: RejectionProofType
    locale: str
    body: str
    version: int
    previous_body: str | None
    needs_sync: bool
    updated_at: datetime


class RejectionReasonGroup(BaseModel):
    proof_type: RejectionProofType
    code: str
    en: RejectionReasonResponse | None = None
    es: RejectionReasonResponse | None = None


class RejectionReasonUpdate(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)
