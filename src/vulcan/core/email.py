"""
Email Delivery using Resend

Low-level transport for every outgoing email. Message content comes from
the database-backed email templates (see modules/email_templates); this
module only wraps plain text in the program's HTML layout and hands the
message to Resend.

When RESEND_API_KEY is not set (development, tests) messages are logged
instead of sent.
"""

import asyncio
import logging
from html import escape

import resend

from vulcan.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        {body}
        <div class="footer">
            <p>Maryland Accessible Telecommunications Program</p>
        </div>
    </div>
</body>
</html>
"""


def text_to_html(text: str) -> str:
    """Render a plain text body inside the HTML layout, escaping user content."""
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    body = "\n".join(
        f"<p>{escape(paragraph).replace(chr(10), '<br>')}</p>" for paragraph in paragraphs
    )
    return _HTML_LAYOUT.format(body=body)


async def send_email(
    to_email: str,
    subject: str,
    html_content: str | None = None,
    text_content: str | None = None,
) -> bool:
    """
    Send an email using Resend.

    At least one of html_content or text_content is required. A text-only
    message also gets an HTML rendition.

    Returns:
        True if the email was sent (or logged in development)
    """
    if html_content is None and text_content is None:
        raise ValueError("send_email requires html_content or text_content")

    if html_content is None:
        html_content = text_to_html(text_content or "")

    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False
