"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from vulcan.modules.users.models import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    """The signed-in user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    locale: str
    is_active: bool
    vendor_approved: bool
    two_factor_enabled: bool
    totp_enabled: bool
    sms_2fa_enabled: bool
    created_at: datetime


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class TwoFactorChallengeResponse(BaseModel):
    """Returned by login instead of tokens when a second factor is needed."""

    two_factor_required: bool = True
    challenge_token: str
    method: str


class TwoFactorVerifyRequest(BaseModel):
    challenge_token: str
    code: str = Field(..., min_length=4, max_length=10)


class ChallengeRequest(BaseModel):
    challenge_token: str


class CodeRequest(BaseModel):
    code: str = Field(..., min_length=4, max_length=10)


class TotpSetupResponse(BaseModel):
    secret: str
    provisioning_uri: str


class SmsSetupRequest(BaseModel):
    phone: str = Field(..., description="US phone number formatted XXX-XXX-XXXX")


class SmsCodeResponse(BaseModel):
    success: bool
    status: str
    message: str


class DisableTwoFactorRequest(BaseModel):
    password: str


class TwoFactorStatusResponse(BaseModel):
    two_factor_enabled: bool
    totp_enabled: bool
    sms_2fa_enabled: bool
    sms_2fa_phone: str | None = None
