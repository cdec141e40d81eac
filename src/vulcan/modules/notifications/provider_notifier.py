"""
Medical Provider Notifier

Tells a medical provider that the disability certification form they sent
was rejected. Providers are reached by fax when a fax number is on file
(the channel most offices still use), otherwise by email. A failed fax
falls back to email.

Each notice creates a Notification whose metadata records the channel
used, the fax SID (so the fax status webhook can find it later) and every
method attempted.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.config import settings
from vulcan.core.gateways import GatewayError, TwilioClient
from vulcan.modules.applications.models import Application
from vulcan.modules.audit.repository import record_event
from vulcan.modules.email_templates import mailer
from vulcan.modules.notifications import repository
from vulcan.modules.notifications.fax_document import build_rejection_notice_pdf, store_fax_document
from vulcan.modules.notifications.models import DeliveryStatus, Notification

logger = logging.getLogger(__name__)

ACTION_CERTIFICATION_REJECTED = "medical_certification_rejected"


def remaining_attempts(application: Application) -> int:
    return max(settings.max_proof_rejections - (application.total_rejections or 0), 0)


def fax_status_callback_url() -> str:
    return f"{settings.public_api_url.rstrip('/')}/api/v1/webhooks/twilio/fax-status"


class MedicalProviderNotifier:
    def __init__(
        self,
        db: AsyncSession,
        application: Application,
        twilio: TwilioClient | None = None,
    ):
        self.db = db
        self.application = application
        self.twilio = twilio or TwilioClient()

    def _email_variables(self, reason: str) -> dict[str, Any]:
        applicant = self.application.user
        return {
            "medical_provider_name": self.application.medical_provider_name or "Medical Provider",
            "constituent_full_name": applicant.full_name,
            "constituent_dob_formatted": (
                applicant.date_of_birth.strftime("%m/%d/%Y") if applicant.date_of_birth else ""
            ),
            "application_id": str(self.application.id),
            "rejection_reason": reason,
            "remaining_attempts": remaining_attempts(self.application),
        }

    async def send_rejection_email(self, reason: str) -> bool:
        return await mailer.send_templated_email(
            self.db,
            mailer.PROVIDER_CERTIFICATION_REJECTED,
            self.application.medical_provider_email,
            self._email_variables(reason),
        )

    async def send_rejection_fax(self, reason: str) -> str | None:
        """
        Fax the rejection notice.

        Returns:
            The fax SID, or None if the fax could not be sent
        """
        if not self.application.medical_provider_fax:
            return None
        if not self.twilio.configured:
            logger.warning("Twilio not configured, cannot fax medical provider")
            return None

        applicant = self.application.user
        try:
            pdf = build_rejection_notice_pdf(
                provider_name=self.application.medical_provider_name or "Medical Provider",
                applicant_name=applicant.full_name,
                applicant_dob=applicant.date_of_birth,
                reason=reason,
                remaining_attempts=remaining_attempts(self.application),
            )
            _, media_url = await store_fax_document(pdf)
            response = await self.twilio.send_fax(
                self.application.medical_provider_fax,
                media_url,
                status_callback=fax_status_callback_url(),
            )
        except (GatewayError, OSError) as e:
            logger.error(f"Fax to provider for application {self.application.id} failed: {e}")
            return None

        fax_sid = response.get("sid")
        logger.info(f"Faxed rejection notice for application {self.application.id}: {fax_sid}")
        return fax_sid

    async def notify_certification_rejection(self, reason: str, admin_id: UUID) -> Notification:
        """
        Send the rejection notice by fax or email and record the attempt.

        Delivery failures are recorded on the notification, never raised.
        """
        await record_event(
            self.db,
            ACTION_CERTIFICATION_REJECTED,
            actor_id=admin_id,
            auditable=self.application,
            metadata={
                "application_id": str(self.application.id),
                "rejection_reason": reason,
                "provider_name": self.application.medical_provider_name,
                "remaining_attempts": remaining_attempts(self.application),
            },
        )

        notification = await repository.create(
            self.db,
            action=ACTION_CERTIFICATION_REJECTED,
            recipient_id=self.application.contact_user.id,
            actor_id=admin_id,
            application_id=self.application.id,
            metadata={"reason": reason},
            delivery_status=DeliveryStatus.PENDING,
        )

        methods: list[str] = []
        fax_sid = None
        if self.application.medical_provider_fax:
            methods.append("fax")
            fax_sid = await self.send_rejection_fax(reason)

        email_sent = False
        if fax_sid is None and self.application.medical_provider_email:
            methods.append("email")
            email_sent = await self.send_rejection_email(reason)

        if fax_sid:
            repository.merge_metadata(
                notification,
                delivery_method="fax",
                fax_sid=fax_sid,
                fax_status="queued",
                fax_status_updated_at=datetime.now(UTC).isoformat(),
                notification_methods=methods,
            )
            notification.delivery_status = DeliveryStatus.SENDING
        else:
            repository.merge_metadata(
                notification,
                delivery_method="email" if email_sent else None,
                notification_methods=methods,
            )
            notification.delivery_status = (
                DeliveryStatus.DELIVERED if email_sent else DeliveryStatus.FAILED
            )

        if notification.delivery_status == DeliveryStatus.FAILED:
            logger.warning(
                f"Could not reach medical provider for application {self.application.id} "
                f"(tried: {methods or 'no contact details'})"
            )

        await self.db.commit()
        return notification
