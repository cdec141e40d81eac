"""
Application audit log.

Merges everything recorded about an application into one timeline for the
admin view, newest first:

- status changes
- proof reviews
- notifications sent about the application
- audit events on the application (status change events are already
  covered by the status change rows and are skipped)
- the creation of the application itself
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import repository as application_repository
from vulcan.modules.applications.models import Application
from vulcan.modules.audit import repository
from vulcan.modules.notifications import repository as notification_repository

SKIPPED_EVENT_ACTIONS = {"application_status_changed"}


def _entry(
    type: str,
    action: str,
    occurred_at: datetime,
    actor_id: Any = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": type,
        "action": action,
        "actor_id": actor_id,
        "occurred_at": occurred_at,
        "details": details or {},
    }


class AuditLogBuilder:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def build(self, application: Application) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []

        for change in await application_repository.list_status_changes(self.db, application.id):
            entries.append(
                _entry(
                    "status_change",
                    change.change_type,
                    change.changed_at,
                    change.user_id,
                    {
                        "from_status": change.from_status,
                        "to_status": change.to_status,
                        "notes": change.notes,
                        **(change.change_metadata or {}),
                    },
                )
            )

        for review in await application_repository.list_proof_reviews(self.db, application.id):
            entries.append(
                _entry(
                    "proof_review",
                    f"{review.proof_type.value}_proof_{review.status.value}",
                    review.reviewed_at,
                    review.admin_id,
                    {
                        "rejection_reason": review.rejection_reason,
                        "rejection_reason_code": review.rejection_reason_code,
                        "notes": review.notes,
                    },
                )
            )

        for notification in await notification_repository.list_for_application(
            self.db, application.id
        ):
            entries.append(
                _entry(
                    "notification",
                    notification.action,
                    notification.created_at,
                    notification.actor_id,
                    {
                        "delivery_status": notification.delivery_status,
                        **(notification.notification_metadata or {}),
                    },
                )
            )

        events = await repository.list_for(self.db, "Application", application.id)
        has_creation_event = False
        for event in events:
            if event.action in SKIPPED_EVENT_ACTIONS:
                continue
            has_creation_event = has_creation_event or event.action == "application_created"
            entries.append(
                _entry("event", event.action, event.created_at, event.actor_id, event.event_metadata)
            )

        if not has_creation_event:
            entries.append(
                _entry(
                    "event",
                    "application_created",
                    application.created_at,
                    application.user_id,
                    {"submission_method": application.submission_method.value},
                )
            )

        entries.sort(key=lambda entry: entry["occurred_at"], reverse=True)
        return entries
