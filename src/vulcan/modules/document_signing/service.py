"""
Document Signing Submission Service

Sends the disability certification form to the applicant's medical provider
as a DocuSeal e-signature request. DocuSeal emails the provider a link; the
signed PDF comes back through the webhook handled in `webhook.py`.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.config import settings
from vulcan.core.gateways import DocuSealClient
from vulcan.modules.applications import repository as application_repository
from vulcan.modules.applications.models import (
    Application,
    DocumentSigningStatus,
    MedicalCertificationStatus,
)
from vulcan.modules.audit.repository import record_event
from vulcan.modules.shared import Result

logger = logging.getLogger(__name__)

SIGNING_SERVICE = "docuseal"
SUBMITTER_ROLE = "Medical Provider"
RESEND_THROTTLE = timedelta(seconds=30)
COMPLETED_REDIRECT_PATH = "/medical-certification/complete"


class DocumentSigningSubmissionService:
    """
    Create a DocuSeal submission for an application's medical provider.

    Usage:
        result = await DocumentSigningSubmissionService(db, application, admin.id).call()
        if result.failure:
            ...
    """

    def __init__(
        self,
        db: AsyncSession,
        application: Application,
        actor_id: UUID | None,
        client: DocuSealClient | None = None,
    ):
        self.db = db
        self.application = application
        self.actor_id = actor_id
        self.client = client or DocuSealClient()

    async def call(self) -> Result:
        error = self._validate()
        if error:
            return Result.fail(error)

        try:
            submission = await self.client.create_submission(self._payload())
            await self._store_submission(submission)
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Document signing request failed for application {self.application.id}: {e}",
                exc_info=True,
            )
            return Result.fail(f"Failed to create document signing request: {e}")

        return Result.ok(
            "Document signing request created",
            data={
                "submission_id": self.application.document_signing_submission_id,
                "submitter_id": self.application.document_signing_submitter_id,
            },
        )

    def _validate(self) -> str | None:
        if not self.application.medical_provider_email:
            return "Medical provider email is required"
        if not self.application.medical_provider_name:
            return "Medical provider name is required"
        if self.actor_id is None:
            return "An acting user is required"

        last_sent = self.application.document_signing_requested_at
        if last_sent and datetime.now(UTC) - last_sent < RESEND_THROTTLE:
            return "Request sent too recently. Please wait before sending another."
        return None

    def _payload(self) -> dict[str, Any]:
        application = self.application
        applicant = application.user
        return {
            "template_id": settings.docuseal_template_id,
            "name": f"Medical Certification - App {application.id}",
            "send_email": True,
            "completed_redirect_url": (
                f"{settings.frontend_url.rstrip('/')}{COMPLETED_REDIRECT_PATH}"
            ),
            "submitters": [
                {
                    "role": SUBMITTER_ROLE,
                    "email": application.medical_provider_email,
                    "name": application.medical_provider_name,
                    "external_id": str(application.id),
                    "values": {
                        "Patient Name": applicant.full_name if applicant else "",
                        "Patient Date of Birth": (
                            applicant.date_of_birth.strftime("%m/%d/%Y")
                            if applicant and applicant.date_of_birth
                            else ""
                        ),
                        "Application ID": str(application.id),
                    },
                }
            ],
        }

    async def _store_submission(self, submission: dict[str, Any]) -> None:
        submitters = submission.get("submitters") or []
        submitter_id = submitters[0].get("id") if submitters else None
        now = datetime.now(UTC)

        locked = await application_repository.get_for_update(self.db, self.application.id)
        if locked is None:
            raise ValueError(f"Application {self.application.id} no longer exists")

        locked.document_signing_service = SIGNING_SERVICE
        locked.document_signing_submission_id = str(submission.get("id"))
        locked.document_signing_submitter_id = (
            str(submitter_id) if submitter_id is not None else None
        )
        locked.document_signing_status = DocumentSigningStatus.SENT
        locked.document_signing_requested_at = now
        locked.document_signing_request_count = (locked.document_signing_request_count or 0) + 1
        locked.medical_certification_status = MedicalCertificationStatus.REQUESTED
        locked.medical_certification_requested_at = now
        locked.medical_certification_request_count = (
            locked.medical_certification_request_count or 0
        ) + 1

        await record_event(
            self.db,
            "document_signing_request_sent",
            actor_id=self.actor_id,
            auditable=locked,
            metadata={
                "application_id": str(locked.id),
                "service": SIGNING_SERVICE,
                "submission_id": locked.document_signing_submission_id,
                "provider_email": locked.medical_provider_email,
                "request_count": locked.document_signing_request_count,
            },
        )
        await self.db.commit()
        self.application = locked

        logger.info(
            f"Document signing request {locked.document_signing_submission_id} "
            f"sent for application {locked.id}"
        )
