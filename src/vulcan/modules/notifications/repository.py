"""
Notification Repository
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.notifications.models import Notification


async def create(
    db: AsyncSession,
    *,
    action: str,
    recipient_id: UUID | None,
    actor_id: UUID | None = None,
    application_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    delivery_status: str | None = None,
) -> Notification:
    """Add a notification to the session (caller commits)."""
    notification = Notification(
        action=action,
        recipient_id=recipient_id,
        actor_id=actor_id,
        application_id=application_id,
        notification_metadata=metadata or {},
        delivery_status=delivery_status,
    )
    db.add(notification)
    await db.flush()
    return notification


async def get_by_id(db: AsyncSession, notification_id: UUID) -> Notification | None:
    return await db.get(Notification, notification_id)


async def get_by_fax_sid(db: AsyncSession, fax_sid: str) -> Notification | None:
    result = await db.execute(
        select(Notification).where(Notification.notification_metadata["fax_sid"].astext == fax_sid)
    )
    return result.scalars().first()


async def list_for_recipient(
    db: AsyncSession, recipient_id: UUID, unread_only: bool = False, limit: int = 50
) -> list[Notification]:
    query = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.where(Notification.read_at.is_(None))
    result = await db.execute(query.order_by(Notification.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def list_for_application(db: AsyncSession, application_id: UUID) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.application_id == application_id)
        .order_by(Notification.created_at.desc())
    )
    return list(result.scalars().all())


def merge_metadata(notification: Notification, **values: Any) -> None:
    """Update metadata keys; reassign so the JSONB change is tracked."""
    notification.notification_metadata = {**(notification.notification_metadata or {}), **values}


async def mark_read(db: AsyncSession, notification: Notification) -> Notification:
    if notification.read_at is None:
        notification.read_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(notification)
    return notification
