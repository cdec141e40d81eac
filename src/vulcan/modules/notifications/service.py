"""
Notification Service

Fax delivery status updates from Twilio, plus the constituent's own
notification list.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import repository as application_repository
from vulcan.modules.notifications import repository
from vulcan.modules.notifications.models import DeliveryStatus, Notification
from vulcan.modules.notifications.provider_notifier import MedicalProviderNotifier

logger = logging.getLogger(__name__)

FAX_STATUS_MAP = {
    "queued": DeliveryStatus.SENDING,
    "processing": DeliveryStatus.SENDING,
    "sending": DeliveryStatus.SENDING,
    "delivered": DeliveryStatus.DELIVERED,
    "received": DeliveryStatus.RECEIVED,
    "no-answer": DeliveryStatus.FAILED,
    "busy": DeliveryStatus.FAILED,
    "failed": DeliveryStatus.FAILED,
    "canceled": DeliveryStatus.FAILED,
}


class NotificationServiceError(Exception):
    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotificationNotFoundError(NotificationServiceError):
    def __init__(self) -> None:
        super().__init__("Notification not found", "NOTIFICATION_NOT_FOUND", 404)


def map_fax_status(fax_status: str | None) -> str:
    return FAX_STATUS_MAP.get((fax_status or "").strip().lower(), DeliveryStatus.UNKNOWN)


async def handle_fax_status(
    db: AsyncSession,
    fax_sid: str,
    fax_status: str,
    details: dict[str, Any] | None = None,
) -> Notification | None:
    """
    Apply a Twilio fax status callback to the notification that sent it.

    Returns:
        The updated notification, or None if no notification has this SID
    """
    notification = await repository.get_by_fax_sid(db, fax_sid)
    if notification is None:
        logger.warning(f"Fax status callback for unknown fax {fax_sid}")
        return None

    previous = notification.delivery_status
    delivery_status = map_fax_status(fax_status)
    emailed = bool((notification.notification_metadata or {}).get("email_fallback_sent"))
    repository.merge_metadata(
        notification,
        fax_status=fax_status,
        fax_status_updated_at=datetime.now(UTC).isoformat(),
        fax_status_details=details or {},
    )
    if emailed:
        # The provider already has the notice by email; the fax history is kept only
        await db.commit()
        logger.info(f"Fax {fax_sid} status {fax_status} after email fallback; status unchanged")
        return notification

    notification.delivery_status = delivery_status
    await db.commit()

    logger.info(f"Fax {fax_sid} status {fax_status} -> {delivery_status}")

    if delivery_status == DeliveryStatus.FAILED and previous != DeliveryStatus.FAILED:
        await _fall_back_to_email(db, notification)

    return notification


async def _fall_back_to_email(db: AsyncSession, notification: Notification) -> None:
    if notification.application_id is None:
        return
    application = await application_repository.get_by_id(db, notification.application_id)
    if application is None or not application.medical_provider_email:
        logger.warning(
            f"Fax for notification {notification.id} failed and no provider email is on file"
        )
        return

    notifier = MedicalProviderNotifier(db, application)
    reason = (notification.notification_metadata or {}).get("reason", "")
    sent = await notifier.send_rejection_email(reason)
    methods = list((notification.notification_metadata or {}).get("notification_methods", []))
    if "email" not in methods:
        methods.append("email")
    repository.merge_metadata(
        notification,
        notification_methods=methods,
        email_fallback_sent=sent,
    )
    if sent:
        notification.delivery_status = DeliveryStatus.DELIVERED
        repository.merge_metadata(notification, delivery_method="email")
    await db.commit()
    logger.info(f"Fax fallback email for notification {notification.id}: sent={sent}")


async def list_notifications(
    db: AsyncSession, user_id: UUID, unread_only: bool = False
) -> list[Notification]:
    return await repository.list_for_recipient(db, user_id, unread_only=unread_only)


async def mark_read(db: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
    notification = await repository.get_by_id(db, notification_id)
    if notification is None or notification.recipient_id != user_id:
        raise NotificationNotFoundError()
    return await repository.mark_read(db, notification)
