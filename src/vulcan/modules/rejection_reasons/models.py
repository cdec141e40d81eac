"""
Rejection Reason Model

Standard wording admins pick from when rejecting a proof or a medical
certification. Stored per locale so the constituent reads it in their
language; editing the English text flags the Spanish text for update.
"""

import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from vulcan.modules.shared import BaseModel


class RejectionProofType(str, enum.Enum):
    INCOME = "income"
    RESIDENCY = "residency"
    MEDICAL_CERTIFICATION = "medical_certification"


class RejectionReason(BaseModel):
    __tablename__ = "rejection_reasons"
    __table_args__ = (
        UniqueConstraint("code", "proof_type", "locale", name="uq_rejection_reasons_code_type_locale"),
    )

    code: Mapped[str] = mapped_column(String(100), nullable=False)
    proof_type: Mapped[RejectionProofType] = mapped_column(
        Enum(RejectionProofType, name="rejection_proof_type"), nullable=False
    )
    locale: Mapped[str] = mapped_column(String(5), nullable=False, default="en")
    body: Mapped[str] = mapped_column(Text, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    needs_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<RejectionReason(code={self.code}, type={self.proof_type.value}, locale={self.locale})>"
