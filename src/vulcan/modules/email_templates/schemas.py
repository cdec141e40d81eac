"""
Email Template Schemas
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from vulcan.modules.email_templates.models import TemplateFormat


class EmailTemplateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    format: TemplateFormat
    locale: str
    subject: str
    description: str | None
    enabled: bool
    version: int
    needs_sync: bool
    updated_at: datetime


class EmailTemplateDetail(EmailTemplateSummary):
    body: str
    variables: dict[str, Any]
    previous_subject: str | None
    previous_body: str | None
    updated_by_id: UUID | None


class EmailTemplateShowResponse(BaseModel):
    template: EmailTemplateDetail
    preview_subject: str
    preview_body: str
    sample_data: dict[str, str]


class EmailTemplateUpdate(BaseModel):
    subject: str | None = Field(None, min_length=1, max_length=255)
    body: str | None = Field(None, min_length=1)
    description: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_any_field(self) -> "EmailTemplateUpdate":
        if self.subject is None and self.body is None and self.description is None:
            raise ValueError("Provide at least one of subject, body or description")
        return self


class SendTestRequest(BaseModel):
    email: EmailStr | None = Field(
        None, description="Recipient, defaults to the signed-in admin"
    )


class SendTestResponse(BaseModel):
    sent: bool
    recipient: str


class BulkToggleRequest(BaseModel):
    template_ids: list[UUID] = Field(..., min_length=1, max_length=500)


class BulkToggleResponse(BaseModel):
    updated: int
    message: str
