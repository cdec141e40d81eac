"""
Voucher Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from vulcan.modules.vouchers.models import TransactionType, VoucherStatus


class VoucherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    application_id: UUID
    initial_value: Decimal
    remaining_value: Decimal
    status: VoucherStatus
    issued_at: datetime
    expires_at: datetime
    last_used_at: datetime | None


class VendorVoucherView(BaseModel):
    """What a vendor sees before identity verification: no personal details."""

    code: str
    status: VoucherStatus
    remaining_value: Decimal
    expires_at: datetime
    identity_verified: bool
    attempts_left: int


class VoucherIssueRequest(BaseModel):
    value: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)


class VoucherCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class VerifyIdentityRequest(BaseModel):
    date_of_birth: date


class VerifyIdentityResponse(BaseModel):
    success: bool
    message: str
    attempts_left: int


class RedemptionRequest(BaseModel):
    amount: Decimal
    product_ids: list[UUID] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=2000)


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    voucher_id: UUID
    vendor_id: UUID
    amount: Decimal
    transaction_type: TransactionType
    product_data: dict[str, int]
    reference_number: str
    notes: str | None
    processed_at: datetime


class RedemptionResponse(BaseModel):
    success: bool
    message: str
    error_type: str | None = None
    transaction: TransactionResponse | None = None
    voucher: VoucherResponse | None = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    manufacturer: str | None
    price: Decimal
    active: bool
