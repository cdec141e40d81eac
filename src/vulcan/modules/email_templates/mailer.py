"""
Templated Mailer

Sends program emails from the database templates. Every outgoing
notification (application updates, provider requests, vouchers) goes
through `send_templated_email`.

Delivery problems never propagate: a missing or disabled template, a
render error or a transport failure is logged and reported as False.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.email import send_email
from vulcan.modules.email_templates import repository
from vulcan.modules.email_templates.models import TemplateFormat
from vulcan.modules.email_templates.service import render_template
from vulcan.modules.email_templates.templating import TemplateRenderError

logger = logging.getLogger(__name__)

# Template names
APPLICATION_SUBMITTED = "application_notifications_application_submitted"
APPLICATION_APPROVED = "application_notifications_application_approved"
PROOF_APPROVED = "application_notifications_proof_approved"
PROOF_REJECTED = "application_notifications_proof_rejected"
MAX_REJECTIONS_REACHED = "application_notifications_max_rejections_reached"
AWAITING_PROOF_REMINDER = "application_notifications_proof_submission_reminder"
PROOF_NEEDS_REVIEW_REMINDER = "application_notifications_proof_needs_review_reminder"
PROVIDER_REQUEST_CERTIFICATION = "medical_provider_request_certification"
PROVIDER_CERTIFICATION_REJECTED = "medical_provider_certification_rejected"
MEDICAL_CERTIFICATION_APPROVED = "medical_provider_notifications_certification_approved"
VOUCHER_ASSIGNED = "voucher_notifications_voucher_assigned"
VOUCHER_REDEEMED = "voucher_notifications_voucher_redeemed"


async def send_templated_email(
    db: AsyncSession,
    name: str,
    to_email: str | None,
    variables: dict[str, Any],
    locale: str = "en",
    format: TemplateFormat = TemplateFormat.TEXT,
) -> bool:
    """
    Render template `name` in `locale` (English fallback) and send it.

    Returns:
        True if the message was handed to the email transport
    """
    if not to_email:
        logger.warning(f"No recipient for email template {name}, skipping")
        return False

    template = await repository.find_with_fallback(db, name, format, locale)
    if template is None:
        logger.error(f"Email template {name} ({format.value}, {locale}) not found")
        return False

    if not template.enabled:
        logger.warning(f"Email template {name} ({template.locale}) is disabled, not sending")
        return False

    try:
        subject, body = render_template(template, variables)
    except TemplateRenderError as e:
        logger.error(str(e))
        return False

    if template.format == TemplateFormat.HTML:
        return await send_email(to_email, subject, html_content=body)
    return await send_email(to_email, subject, text_content=body)
