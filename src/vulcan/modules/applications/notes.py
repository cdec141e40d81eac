"""
Application Notes

Admin notes double as lightweight tasks: a note can be assigned to a staff
member, unassigned, marked done and reopened. Each of those updates runs
under a row lock on the note and writes an audit event. They report
success as a bool; failures are logged.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import repository
from vulcan.modules.applications.models import Application, ApplicationNote
from vulcan.modules.audit.repository import record_event
from vulcan.modules.users.models import UserRole
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def create_note(
    db: AsyncSession,
    application: Application,
    admin_id: UUID,
    content: str,
    internal_only: bool = True,
    assigned_to_id: UUID | None = None,
) -> ApplicationNote:
    note = await repository.create_note(
        db,
        application_id=application.id,
        admin_id=admin_id,
        content=content.strip(),
        internal_only=internal_only,
        assigned_to_id=assigned_to_id,
    )
    await record_event(
        db,
        "application_note_created",
        actor_id=admin_id,
        auditable=application,
        metadata={"note_id": str(note.id), "internal_only": internal_only},
        commit=True,
    )
    if assigned_to_id:
        await record_event(
            db,
            "note_assigned",
            actor_id=admin_id,
            auditable=note,
            metadata={"assigned_to_id": str(assigned_to_id)},
            commit=True,
        )
    return note


def _as_json(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value) if value is not None else None


async def _update_locked(
    db: AsyncSession,
    note_id: UUID,
    actor_id: UUID,
    action: str,
    **values,
) -> bool:
    try:
        note = await repository.get_note_for_update(db, note_id)
        if note is None:
            logger.warning(f"Note {note_id} not found for {action}")
            await db.rollback()
            return False

        changes = {}
        for key, value in values.items():
            changes[key] = {"from": _as_json(getattr(note, key)), "to": _as_json(value)}
            setattr(note, key, value)

        await record_event(
            db,
            action,
            actor_id=actor_id,
            auditable=note,
            metadata={"application_id": str(note.application_id), "changes": changes},
        )
        await db.commit()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Failed to {action.replace('_', ' ')} for note {note_id}: {e}")
        await db.rollback()
        return False


async def assign_to(db: AsyncSession, note_id: UUID, assignee_id: UUID, actor_id: UUID) -> bool:
    assignee = await UserRepository.get_by_id(db, assignee_id)
    if assignee is None or assignee.role not in (UserRole.ADMIN, UserRole.EVALUATOR):
        logger.warning(f"Cannot assign note {note_id} to {assignee_id}: not a staff member")
        return False
    return await _update_locked(db, note_id, actor_id, "note_assigned", assigned_to_id=assignee_id)


async def unassign(db: AsyncSession, note_id: UUID, actor_id: UUID) -> bool:
    return await _update_locked(db, note_id, actor_id, "note_unassigned", assigned_to_id=None)


async def mark_as_done(db: AsyncSession, note_id: UUID, actor_id: UUID) -> bool:
    return await _update_locked(
        db, note_id, actor_id, "note_completed", completed_at=datetime.now(UTC)
    )


async def mark_as_incomplete(db: AsyncSession, note_id: UUID, actor_id: UUID) -> bool:
    return await _update_locked(db, note_id, actor_id, "note_reopened", completed_at=None)
