"""
User Models

One table holds every account: program staff, constituents (applicants,
guardians and dependents), and equipment vendors.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from vulcan.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    EVALUATOR = "evaluator"
    TRAINER = "trainer"
    CONSTITUENT = "constituent"
    VENDOR = "vendor"


DISABILITY_FIELDS = (
    "hearing_disability",
    "vision_disability",
    "speech_disability",
    "mobility_disability",
    "cognition_disability",
)

SUPPORTED_LOCALES = ("en", "es")


class User(BaseModel):
    """
    User account.

    Dependents managed by a guardian may have no email of their own; the
    guardian's contact details are used for them.
    """

    __tablename__ = "users"

    # Authentication
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    locale: Mapped[str] = mapped_column(String(5), default="en", nullable=False)

    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.CONSTITUENT,
    )

    # Address
    physical_address_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    physical_address_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Self-reported disabilities
    hearing_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vision_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    speech_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mobility_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cognition_disability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Account status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    needs_duplicate_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Vendors
    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vendor_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Two-factor authentication
    totp_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    totp_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sms_2fa_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    sms_2fa_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_disability(self) -> bool:
        return any(getattr(self, field) for field in DISABILITY_FIELDS)

    @property
    def two_factor_enabled(self) -> bool:
        return self.totp_enabled or self.sms_2fa_enabled

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
