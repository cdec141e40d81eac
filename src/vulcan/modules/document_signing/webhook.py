"""
DocuSeal Webhook Handler

Applies DocuSeal form events to the application that owns the submission:

- form.viewed     -> signing status `opened`
- form.started    -> audit event only
- form.completed  -> attach the signed PDF, status `signed`, certification
                     `received`
- form.declined   -> status `declined` with the provider's reason

The router verifies the signature before anything here runs. Handler
failures are recorded as events; the vendor always gets a 200 so it does
not retry a payload we have already seen.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.gateways import download_document
from vulcan.core.storage import get_storage
from vulcan.modules.applications import repository as application_repository
from vulcan.modules.applications.models import (
    Application,
    DocumentSigningStatus,
    MedicalCertificationStatus,
)
from vulcan.modules.applications.status_rules import apply_status_rules
from vulcan.modules.audit.repository import record_event, record_event_safely
from vulcan.modules.document_signing.service import SIGNING_SERVICE

logger = logging.getLogger(__name__)

EVENT_VIEWED = "form.viewed"
EVENT_STARTED = "form.started"
EVENT_COMPLETED = "form.completed"
EVENT_DECLINED = "form.declined"

ATTACHMENT_FAILED = "document_signing_attachment_failed"


def submission_id_from(data: dict[str, Any]) -> str | None:
    """DocuSeal sends the submission id flat on form events, nested on others."""
    submission_id = data.get("submission_id")
    if submission_id is None and isinstance(data.get("submission"), dict):
        submission_id = data["submission"].get("id")
    return str(submission_id) if submission_id is not None else None


def document_url_from(data: dict[str, Any]) -> str | None:
    documents = data.get("documents") or []
    if documents and isinstance(documents[0], dict):
        return documents[0].get("url")
    return None


def audit_log_url_from(data: dict[str, Any]) -> str | None:
    url = data.get("audit_log_url")
    if url is None and isinstance(data.get("submission"), dict):
        url = data["submission"].get("audit_log_url")
    return url


def signed_document_key(application_id) -> str:
    return f"medical_certifications/medical_cert_docuseal_{application_id}.pdf"


class DocuSealWebhookHandler:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def handle(self, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Apply one webhook event.

        Returns a small status dict for the response body. Never raises for
        unknown submissions or events.
        """
        submission_id = submission_id_from(data)
        application = None
        if submission_id:
            application = await application_repository.get_by_signing_submission(
                self.db, SIGNING_SERVICE, submission_id
            )
        if application is None:
            logger.warning(
                f"DocuSeal {event_type} for unknown submission {submission_id}; ignoring"
            )
            return {"status": "ignored", "reason": "unknown_submission"}

        if event_type == EVENT_VIEWED:
            await self._mark_viewed(application, data)
        elif event_type == EVENT_STARTED:
            await record_event_safely(
                self.db,
                "document_signing_started",
                auditable=application,
                metadata=self._event_metadata(application, data),
            )
        elif event_type == EVENT_COMPLETED:
            await self._mark_completed(application, data)
        elif event_type == EVENT_DECLINED:
            await self._mark_declined(application, data)
        else:
            logger.info(f"Unhandled DocuSeal event {event_type} for application {application.id}")
            return {"status": "ignored", "reason": "unhandled_event"}

        return {"status": "processed", "application_id": str(application.id)}

    def _event_metadata(self, application: Application, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "application_id": str(application.id),
            "submission_id": application.document_signing_submission_id,
            "submitter_id": str(data["id"]) if data.get("id") is not None else None,
        }

    async def _mark_viewed(self, application: Application, data: dict[str, Any]) -> None:
        locked = await application_repository.get_for_update(self.db, application.id)
        if locked.document_signing_status in (
            DocumentSigningStatus.NOT_SENT,
            DocumentSigningStatus.SENT,
        ):
            locked.document_signing_status = DocumentSigningStatus.OPENED
        await record_event(
            self.db,
            "document_signing_viewed",
            auditable=locked,
            metadata=self._event_metadata(locked, data),
        )
        await self.db.commit()

    async def _mark_declined(self, application: Application, data: dict[str, Any]) -> None:
        reason = data.get("decline_reason")
        locked = await application_repository.get_for_update(self.db, application.id)
        locked.document_signing_status = DocumentSigningStatus.DECLINED
        metadata = self._event_metadata(locked, data)
        metadata["decline_reason"] = reason
        await record_event(
            self.db, "document_signing_declined", auditable=locked, metadata=metadata
        )
        await self.db.commit()
        logger.info(f"Medical provider declined to sign for application {locked.id}: {reason}")

    async def _mark_completed(self, application: Application, data: dict[str, Any]) -> None:
        if (
            application.document_signing_status == DocumentSigningStatus.SIGNED
            and application.document_signing_document_url
        ):
            logger.info(f"Duplicate completion for application {application.id}; already signed")
            return

        already_approved = (
            application.medical_certification_status == MedicalCertificationStatus.APPROVED
        )
        attachment = None
        if not already_approved:
            attachment = await self._fetch_signed_document(application, data)

        locked = await application_repository.get_for_update(self.db, application.id)
        locked.document_signing_status = DocumentSigningStatus.SIGNED
        locked.document_signing_signed_at = datetime.now(UTC)
        if attachment:
            locked.medical_certification_file_key = attachment["file_key"]
            locked.document_signing_document_url = attachment["document_url"]
            locked.document_signing_audit_url = attachment["audit_log_url"]
            if locked.medical_certification_status != MedicalCertificationStatus.RECEIVED:
                locked.medical_certification_status = MedicalCertificationStatus.RECEIVED

        metadata = self._event_metadata(locked, data)
        metadata["attached"] = attachment is not None
        metadata["certification_already_approved"] = already_approved
        await record_event(
            self.db, "document_signing_completed", auditable=locked, metadata=metadata
        )
        await self.db.commit()

        await apply_status_rules(self.db, locked.id, None)

    async def _fetch_signed_document(
        self, application: Application, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Download the signed PDF and store it.

        Returns the fields to save on the application, or None after
        recording why the attachment failed.
        """
        url = document_url_from(data)
        if not url:
            await self._attachment_failed(application, "missing_document_url")
            return None

        audit_log_url = audit_log_url_from(data)
        if (
            url == application.document_signing_document_url
            and application.medical_certification_file_key
        ):
            return {
                "file_key": application.medical_certification_file_key,
                "document_url": url,
                "audit_log_url": audit_log_url or application.document_signing_audit_url,
            }

        try:
            response = await download_document(url)
            if not 200 <= response.status_code < 300:
                await self._attachment_failed(
                    application, "download_failed", f"HTTP {response.status_code}"
                )
                return None

            key = signed_document_key(application.id)
            await asyncio.to_thread(
                get_storage().put_bytes, key, response.content, content_type="application/pdf"
            )
        except Exception as e:
            logger.error(
                f"Failed to attach signed certification for application {application.id}: {e}",
                exc_info=True,
            )
            await self._attachment_failed(application, "exception", str(e))
            return None

        return {"file_key": key, "document_url": url, "audit_log_url": audit_log_url}

    async def _attachment_failed(
        self, application: Application, reason: str, error: str | None = None
    ) -> None:
        metadata = {"application_id": str(application.id), "reason": reason}
        if error:
            metadata["error"] = error
        logger.warning(f"Signed certification not attached for {application.id}: {reason}")
        await record_event_safely(
            self.db, ATTACHMENT_FAILED, auditable=application, metadata=metadata
        )
