"""
Notifications Routers

Endpoints:
- GET /notifications - Current user's notifications
- POST /notifications/{id}/read - Mark a notification read
- POST /webhooks/twilio/fax-status - Twilio fax status callback
- GET /files/fax/{name} - Generated fax documents (fetched by Twilio)
"""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import CurrentUser, get_current_user
from vulcan.core.config import settings
from vulcan.core.database import get_db
from vulcan.core.storage import StorageError, get_storage
from vulcan.core.webhooks import TWILIO_SIGNATURE_HEADER, verify_twilio_signature
from vulcan.modules.notifications import service
from vulcan.modules.notifications.provider_notifier import fax_status_callback_url
from vulcan.modules.notifications.schemas import FaxStatusResponse, NotificationResponse
from vulcan.modules.notifications.service import NotificationServiceError

logger = logging.getLogger(__name__)

router = APIRouter()
webhook_router = APIRouter()
files_router = APIRouter()


@router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List My Notifications",
)
async def list_notifications(
    unread_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[NotificationResponse]:
    notifications = await service.list_notifications(db, user.id, unread_only=unread_only)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark Notification Read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_notification_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> NotificationResponse:
    try:
        notification = await service.mark_read(db, notification_id, user.id)
        return NotificationResponse.model_validate(notification)
    except NotificationServiceError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": e.error_code, "message": e.message},
        ) from e


@webhook_router.post(
    "/fax-status",
    response_model=FaxStatusResponse,
    summary="Twilio Fax Status Callback",
    description="""
Receives fax delivery status updates from Twilio.

The `X-Twilio-Signature` header is verified in production. Unknown fax
SIDs are acknowledged with `success: false` so Twilio stops retrying.
""",
    responses={
        401: {"description": "Invalid Twilio signature"},
        400: {"description": "Missing FaxSid or Status"},
    },
)
async def fax_status_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> FaxStatusResponse:
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if settings.is_production:
        signature = request.headers.get(TWILIO_SIGNATURE_HEADER)
        if not verify_twilio_signature(
            settings.twilio_auth_token, fax_status_callback_url(), params, signature
        ):
            logger.warning("Rejected fax status callback with invalid Twilio signature")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"error": "INVALID_SIGNATURE", "message": "Invalid signature"},
            )

    fax_sid = params.get("FaxSid")
    fax_status = params.get("Status") or params.get("FaxStatus")
    if not fax_sid or not fax_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "INVALID_PAYLOAD", "message": "FaxSid and Status are required"},
        )

    details = {
        key: params[key]
        for key in ("ErrorCode", "ErrorMessage", "NumPages", "Duration", "To")
        if key in params
    }

    try:
        notification = await service.handle_fax_status(db, fax_sid, fax_status, details)
    except Exception:
        logger.exception(f"Failed to process fax status for {fax_sid}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
        ) from None

    if notification is None:
        return FaxStatusResponse(success=False, error="Notification not found")
    return FaxStatusResponse(success=True, status=notification.delivery_status)


@files_router.get(
    "/fax/{name}",
    summary="Fax Document",
    response_class=Response,
    responses={404: {"description": "File not found"}},
)
async def get_fax_document(
    name: str = Path(..., pattern=r"^[a-f0-9]{32}\.pdf$"),
) -> Response:
    try:
        content = await asyncio.to_thread(get_storage().get_bytes, f"fax/{name}")
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "FILE_NOT_FOUND", "message": "File not found"},
        ) from None
    return Response(content=content, media_type="application/pdf")
