"""
Guardian Relationship Model

Links a guardian account to a dependent account. A guardian may apply on
behalf of any of their dependents, and becomes the application's managing
guardian.
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vulcan.modules.shared import BaseModel
from vulcan.modules.users.models import User

RELATIONSHIP_TYPES = (
    "Parent",
    "Legal Guardian",
    "Caretaker",
    "Power of Attorney",
    "Other",
)


class GuardianRelationship(BaseModel):
    __tablename__ = "guardian_relationships"
    __table_args__ = (
        UniqueConstraint("guardian_id", "dependent_id", name="uq_guardian_dependent"),
        CheckConstraint("guardian_id <> dependent_id", name="ck_guardian_not_self"),
    )

    guardian_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dependent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    relationship_type: Mapped[str] = mapped_column(String(50), nullable=False)

    guardian: Mapped[User] = relationship(User, foreign_keys=[guardian_id], lazy="selectin")
    dependent: Mapped[User] = relationship(User, foreign_keys=[dependent_id], lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<GuardianRelationship(guardian={self.guardian_id}, "
            f"dependent={self.dependent_id}, type={self.relationship_type})>"
        )
