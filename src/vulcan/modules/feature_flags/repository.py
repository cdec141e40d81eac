"""
Feature Flag Repository

`is_enabled` never raises: a lookup failure returns the default so a
database hiccup cannot take a feature down with an error page.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.feature_flags.models import FeatureFlag

logger = logging.getLogger(__name__)


async def get_by_name(db: AsyncSession, name: str) -> FeatureFlag | None:
    result = await db.execute(select(FeatureFlag).where(FeatureFlag.name == name))
    return result.scalar_one_or_none()


async def is_enabled(db: AsyncSession, name: str, default: bool = False) -> bool:
    try:
        flag = await get_by_name(db, name)
    except Exception as e:
        logger.error(f"Feature flag lookup failed for {name}: {e}")
        return default
    return flag.enabled if flag is not None else default


async def set_enabled(db: AsyncSession, name: str, enabled: bool) -> FeatureFlag:
    """Find or create the flag and set its state."""
    flag = await get_by_name(db, name)
    if flag is None:
        flag = FeatureFlag(name=name, enabled=enabled)
        db.add(flag)
    else:
        flag.enabled = enabled
    await db.commit()
    await db.refresh(flag)
    logger.info(f"Feature flag {name} {'enabled' if enabled else 'disabled'}")
    return flag


async def enable(db: AsyncSession, name: str) -> FeatureFlag:
    return await set_enabled(db, name, True)


async def disable(db: AsyncSession, name: str) -> FeatureFlag:
    return await set_enabled(db, name, False)


async def list_flags(db: AsyncSession) -> list[FeatureFlag]:
    result = await db.execute(select(FeatureFlag).order_by(FeatureFlag.name))
    return list(result.scalars().all())
