"""
Voucher Repository

Database queries for vouchers, their transactions and the product catalogue.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.vouchers.models import Product, Voucher, VoucherStatus, VoucherTransaction


async def get_by_id(db: AsyncSession, id: UUID) -> Voucher | None:
    return await db.get(Voucher, id)


async def get_by_code(db: AsyncSession, code: str) -> Voucher | None:
    result = await db.execute(select(Voucher).where(Voucher.code == code.strip().upper()))
    return result.scalar_one_or_none()


async def get_for_update(db: AsyncSession, id: UUID) -> Voucher | None:
    """Load a voucher with a row lock held until commit."""
    result = await db.execute(
        select(Voucher)
        .where(Voucher.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def code_exists(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Voucher.id).where(Voucher.code == code))
    return result.scalar_one_or_none() is not None


async def get_active_for_application(db: AsyncSession, application_id: UUID) -> Voucher | None:
    result = await db.execute(
        select(Voucher).where(
            Voucher.application_id == application_id,
            Voucher.status == VoucherStatus.ACTIVE,
        )
    )
    return result.scalars().first()


async def list_for_application(db: AsyncSession, application_id: UUID) -> list[Voucher]:
    result = await db.execute(
        select(Voucher)
        .where(Voucher.application_id == application_id)
        .order_by(Voucher.issued_at.desc())
    )
    return list(result.scalars().all())


async def list_expired_active(db: AsyncSession, now: datetime) -> list[Voucher]:
    result = await db.execute(
        select(Voucher).where(
            Voucher.status == VoucherStatus.ACTIVE,
            Voucher.expires_at < now,
        )
    )
    return list(result.scalars().all())


async def list_transactions_for_vendor(
    db: AsyncSession, vendor_id: UUID, limit: int = 50
) -> list[VoucherTransaction]:
    result = await db.execute(
        select(VoucherTransaction)
        .where(VoucherTransaction.vendor_id == vendor_id)
        .order_by(VoucherTransaction.processed_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_transactions_for_voucher(
    db: AsyncSession, voucher_id: UUID
) -> list[VoucherTransaction]:
    result = await db.execute(
        select(VoucherTransaction)
        .where(VoucherTransaction.voucher_id == voucher_id)
        .order_by(VoucherTransaction.processed_at.desc())
    )
    return list(result.scalars().all())


async def reference_exists(db: AsyncSession, reference_number: str) -> bool:
    result = await db.execute(
        select(VoucherTransaction.id).where(
            VoucherTransaction.reference_number == reference_number
        )
    )
    return result.scalar_one_or_none() is not None


async def list_products(db: AsyncSession, active_only: bool = True) -> list[Product]:
    query = select(Product)
    if active_only:
        query = query.where(Product.active.is_(True))
    result = await db.execute(query.order_by(Product.name))
    return list(result.scalars().all())


async def get_products(db: AsyncSession, product_ids: list[UUID]) -> list[Product]:
    if not product_ids:
        return []
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    return list(result.scalars().all())
