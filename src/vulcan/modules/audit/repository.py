"""
Audit Event Repository

`record_event` adds an Event to the session. By default it does not commit,
so the event lands in the same transaction as the change it describes.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.audit.models import Event

logger = logging.getLogger(__name__)


def _auditable_ref(auditable: Any) -> tuple[str | None, UUID | None]:
    if auditable is None:
        return None, None
    return type(auditable).__name__, auditable.id


async def record_event(
    db: AsyncSession,
    action: str,
    *,
    actor_id: UUID | None = None,
    auditable: Any = None,
    metadata: dict[str, Any] | None = None,
    commit: bool = False,
) -> Event:
    """
    Record an audit event.

    Args:
        db: Database session
        action: Event name, e.g. "application_auto_approved"
        actor_id: User who acted, None for system and webhook events
        auditable: The model instance the event is about
        metadata: JSON-serialisable details
        commit: Commit immediately instead of riding the caller's transaction
    """
    auditable_type, auditable_id = _auditable_ref(auditable)
    event = Event(
        action=action,
        actor_id=actor_id,
        auditable_type=auditable_type,
        auditable_id=auditable_id,
        event_metadata=metadata or {},
    )
    db.add(event)
    if commit:
        await db.commit()
    logger.debug(f"Recorded event {action} for {auditable_type}:{auditable_id}")
    return event


async def record_event_safely(db: AsyncSession, action: str, **kwargs) -> Event | None:
    """
    Record and commit an event, logging instead of raising on failure.

    Used where the audit trail must not undo or block the main change.
    """
    try:
        return await record_event(db, action, commit=True, **kwargs)
    except Exception as e:
        logger.error(f"Failed to record {action} event: {e}", exc_info=True)
        await db.rollback()
        return None


async def list_for(
    db: AsyncSession,
    auditable_type: str,
    auditable_id: UUID,
    actions: list[str] | None = None,
) -> list[Event]:
    query = select(Event).where(
        Event.auditable_type == auditable_type,
        Event.auditable_id == auditable_id,
    )
    if actions:
        query = query.where(Event.action.in_(actions))
    result = await db.execute(query.order_by(Event.created_at.desc()))
    return list(result.scalars().all())


async def list_by_actor(db: AsyncSession, actor_id: UUID, limit: int = 100) -> list[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.actor_id == actor_id)
        .order_by(Event.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
