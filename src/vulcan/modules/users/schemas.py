"""
User Schemas
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from vulcan.modules.users.models import UserRole


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    needs_duplicate_review: bool
    created_at: datetime


class UserDetail(UserSummary):
    phone: str | None
    date_of_birth: date | None
    locale: str
    physical_address_1: str | None
    physical_address_2: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    hearing_disability: bool
    vision_disability: bool
    speech_disability: bool
    mobility_disability: bool
    cognition_disability: bool
    business_name: str | None
    vendor_approved: bool
    totp_enabled: bool
    sms_2fa_enabled: bool
    last_sign_in_at: datetime | None


class UserListResponse(BaseModel):
    items: list[UserSummary]
    total: int
    page: int
    page_size: int
    message: str
