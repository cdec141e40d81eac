"""
Document Signing Router

Endpoints:
- POST /admin/applications/{id}/document-signing - Send the certification
  form to the medical provider for e-signature (admin)
- POST /webhooks/docuseal/medical-certification - DocuSeal form events
"""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.config import settings
from vulcan.core.database import get_db
from vulcan.core.webhooks import extract_signature, verify_signature
from vulcan.modules.applications import repository as application_repository
from vulcan.modules.audit.repository import record_event_safely
from vulcan.modules.document_signing.schemas import (
    DocuSealWebhookPayload,
    SigningRequestResponse,
    WebhookAckResponse,
)
from vulcan.modules.document_signing.service import DocumentSigningSubmissionService
from vulcan.modules.document_signing.webhook import DocuSealWebhookHandler, submission_id_from

logger = logging.getLogger(__name__)

router = APIRouter()
webhook_router = APIRouter()


@router.post(
    "/{application_id}/document-signing",
    response_model=SigningRequestResponse,
    summary="Send Certification For E-Signature",
    description="""
Send the disability certification form to the application's medical
provider through DocuSeal. The provider receives an email with a signing
link; the signed PDF is attached to the application when they finish.

Requests for the same application are throttled to one every 30 seconds.
""",
    responses={
        404: {"description": "Application not found"},
        422: {"description": "Missing provider details, throttled, or vendor error"},
    },
)
async def send_signing_request(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> SigningRequestResponse:
    application = await application_repository.get_by_id(db, application_id)
    if application is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "APPLICATION_NOT_FOUND", "message": "Application not found"},
        )

    result = await DocumentSigningSubmissionService(db, application, admin.id).call()
    if result.failure:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "SIGNING_REQUEST_FAILED", "message": result.message},
        )
    return SigningRequestResponse(success=True, message=result.message, **result.data)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "INVALID_SIGNATURE", "message": message},
    )


@webhook_router.post(
    "/medical-certification",
    response_model=WebhookAckResponse,
    summary="DocuSeal Medical Certification Webhook",
    description="""
Receives DocuSeal form events (`form.viewed`, `form.started`,
`form.completed`, `form.declined`).

The raw body must carry an HMAC-SHA256 signature in `X-Webhook-Signature`
or `X-DocuSeal-Signature` (an optional `sha256=` prefix is accepted).

After the signature checks out the response is always 200: unknown
submissions are ignored and processing failures are written to the audit
trail instead of being returned to the vendor.
""",
    responses={
        400: {"description": "Payload missing event_type or data"},
        401: {"description": "Missing or invalid signature"},
    },
)
async def docuseal_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> WebhookAckResponse:
    body = await request.body()

    signature = extract_signature(request.headers)
    if not signature:
        logger.warning("DocuSeal webhook without signature header")
        raise _unauthorized("Missing signature")
    if not verify_signature(settings.docuseal_webhook_secret or "", body, signature):
        logger.warning("DocuSeal webhook with invalid signature")
        raise _unauthorized("Invalid signature")

    try:
        payload = DocuSealWebhookPayload.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "INVALID_PAYLOAD", "message": "event_type and data are required"},
        ) from e

    try:
        result = await DocuSealWebhookHandler(db).handle(payload.event_type, payload.data)
        return WebhookAckResponse(**result)
    except Exception as e:
        logger.exception(f"Failed to process DocuSeal {payload.event_type}: {e}")
        await db.rollback()
        await record_event_safely(
            db,
            "document_signing_webhook_failed",
            metadata={
                "event_type": payload.event_type,
                "submission_id": submission_id_from(payload.data),
                "error": str(e),
            },
        )
        return WebhookAckResponse(status="error", reason="processing_failed")
