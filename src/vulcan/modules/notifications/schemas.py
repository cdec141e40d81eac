"""
Notification Schemas
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    action: str
    application_id: UUID | None
    delivery_status: str | None
    metadata: dict[str, Any] = Field(validation_alias="notification_metadata")
    read_at: datetime | None
    created_at: datetime


class FaxStatusResponse(BaseModel):
    success: bool
    status: str | None = None
    error: str | None = None
