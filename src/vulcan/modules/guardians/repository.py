"""
Guardian Relationship Repository
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.guardians.models import GuardianRelationship

logger = logging.getLogger(__name__)


async def get_by_id(db: AsyncSession, relationship_id: UUID) -> GuardianRelationship | None:
    return await db.get(GuardianRelationship, relationship_id)


async def get_relationship(
    db: AsyncSession, guardian_id: UUID, dependent_id: UUID
) -> GuardianRelationship | None:
    result = await db.execute(
        select(GuardianRelationship).where(
            GuardianRelationship.guardian_id == guardian_id,
            GuardianRelationship.dependent_id == dependent_id,
        )
    )
    return result.scalar_one_or_none()


async def get_first_for_dependent(
    db: AsyncSession, dependent_id: UUID
) -> GuardianRelationship | None:
    """Oldest guardian relationship for a dependent, used as managing guardian."""
    result = await db.execute(
        select(GuardianRelationship)
        .where(GuardianRelationship.dependent_id == dependent_id)
        .order_by(GuardianRelationship.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_guardian(db: AsyncSession, guardian_id: UUID) -> list[GuardianRelationship]:
    result = await db.execute(
        select(GuardianRelationship)
        .where(GuardianRelationship.guardian_id == guardian_id)
        .order_by(GuardianRelationship.created_at.asc())
    )
    return list(result.scalars().all())


async def list_for_dependent(db: AsyncSession, dependent_id: UUID) -> list[GuardianRelationship]:
    result = await db.execute(
        select(GuardianRelationship)
        .where(GuardianRelationship.dependent_id == dependent_id)
        .order_by(GuardianRelationship.created_at.asc())
    )
    return list(result.scalars().all())


async def create(
    db: AsyncSession, guardian_id: UUID, dependent_id: UUID, relationship_type: str
) -> GuardianRelationship:
    relationship = GuardianRelationship(
        guardian_id=guardian_id,
        dependent_id=dependent_id,
        relationship_type=relationship_type,
    )
    db.add(relationship)
    await db.commit()
    await db.refresh(relationship)
    logger.info(f"Created guardian relationship {relationship.id}")
    return relationship


async def delete(db: AsyncSession, relationship: GuardianRelationship) -> None:
    await db.delete(relationship)
    await db.commit()
