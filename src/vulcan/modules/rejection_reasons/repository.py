"""
Rejection Reason Repository
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.rejection_reasons.models import RejectionProofType, RejectionReason


async def get_by_id(db: AsyncSession, reason_id: UUID) -> RejectionReason | None:
    return await db.get(RejectionReason, reason_id)


async def get(
    db: AsyncSession, code: str, proof_type: RejectionProofType, locale: str
) -> RejectionReason | None:
    result = await db.execute(
        select(RejectionReason).where(
            RejectionReason.code == code,
            RejectionReason.proof_type == proof_type,
            RejectionReason.locale == locale,
        )
    )
    return result.scalar_one_or_none()


async def list_all(
    db: AsyncSession, proof_type: RejectionProofType | None = None
) -> list[RejectionReason]:
    query = select(RejectionReason)
    if proof_type:
        query = query.where(RejectionReason.proof_type == proof_type)
    result = await db.execute(
        query.order_by(RejectionReason.proof_type, RejectionReason.code, RejectionReason.locale)
    )
    return list(result.scalars().all())


async def list_other_locales(db: AsyncSession, reason: RejectionReason) -> list[RejectionReason]:
    result = await db.execute(
        select(RejectionReason).where(
            RejectionReason.code == reason.code,
            RejectionReason.proof_type == reason.proof_type,
            RejectionReason.locale != reason.locale,
        )
    )
    return list(result.scalars().all())
