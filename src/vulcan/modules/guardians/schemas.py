"""
Guardian Relationship Schemas
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class DependentCreate(BaseModel):
    """
    Profile for a new dependent account created by a guardian.

    A dependent without an email of their own shares the guardian's contact
    details; the service generates a placeholder address.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    hearing_disability: bool = False
    vision_disability: bool = False
    speech_disability: bool = False
    mobility_disability: bool = False
    cognition_disability: bool = False


class GuardianRelationshipCreate(BaseModel):
    """Link an existing dependent, or create one, under a guardian."""

    relationship_type: str = Field(..., min_length=1, max_length=50)
    dependent_id: UUID | None = None
    dependent: DependentCreate | None = None

    @model_validator(mode="after")
    def validate_dependent_source(self) -> "GuardianRelationshipCreate":
        if (self.dependent_id is None) == (self.dependent is None):
            raise ValueError("Provide exactly one of dependent_id or dependent")
        return self


class AdminGuardianRelationshipCreate(GuardianRelationshipCreate):
    guardian_id: UUID


class GuardianRelationshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    guardian_id: UUID
    dependent_id: UUID
    relationship_type: str
    created_at: datetime
