"""
Document Signing Schemas
"""

from typing import Any

from pydantic import BaseModel, Field


class SigningRequestResponse(BaseModel):
    success: bool
    message: str
    submission_id: str | None = None
    submitter_id: str | None = None


class DocuSealWebhookPayload(BaseModel):
    event_type: str = Field(..., min_length=1)
    timestamp: str | None = None
    data: dict[str, Any] = Field(..., min_length=1)


class WebhookAckResponse(BaseModel):
    status: str
    reason: str | None = None
    application_id: str | None = None
