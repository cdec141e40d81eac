"""
Voucher Models

- Voucher: the equipment credit issued to an approved application
- VoucherTransaction: one redemption (or adjustment) processed by a vendor
- Product: the catalogue of equipment vendors can sell against a voucher
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vulcan.modules.applications.models import Application
from vulcan.modules.shared import BaseModel
from vulcan.modules.users.models import User


class VoucherStatus(str, enum.Enum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class TransactionType(str, enum.Enum):
    REDEMPTION = "redemption"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class Voucher(BaseModel):
    __tablename__ = "vouchers"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    initial_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    remaining_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[VoucherStatus] = mapped_column(
        Enum(VoucherStatus, name="voucher_status"),
        nullable=False,
        default=VoucherStatus.ACTIVE,
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    application: Mapped[Application] = relationship(Application, lazy="selectin")

    __table_args__ = (
        Index("ix_vouchers_application_id", "application_id"),
        Index("ix_vouchers_status_expires_at", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Voucher(code={self.code}, status={self.status.value})>"

    @property
    def is_active(self) -> bool:
        return self.status == VoucherStatus.ACTIVE

    @property
    def constituent(self) -> User:
        return self.application.user


class VoucherTransaction(BaseModel):
    __tablename__ = "voucher_transactions"

    voucher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="voucher_transaction_type"),
        nullable=False,
        default=TransactionType.REDEMPTION,
    )
    # {product_id: quantity}
    product_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    reference_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    voucher: Mapped[Voucher] = relationship(Voucher, lazy="selectin")
    vendor: Mapped[User] = relationship(User, lazy="selectin")

    __table_args__ = (
        Index("ix_voucher_transactions_voucher_id", "voucher_id"),
        Index("ix_voucher_transactions_vendor_id", "vendor_id"),
    )


class Product(BaseModel):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Product(name={self.name}, price={self.price})>"
