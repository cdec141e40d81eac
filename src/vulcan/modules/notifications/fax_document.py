"""
Fax documents.

Twilio fetches fax media from a URL, so a rejection notice is rendered to
PDF (reportlab), stored under an unguessable key, and its URL handed to
the fax API.
"""

import asyncio
import io
import textwrap
import uuid
from datetime import date

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from vulcan.core.storage import get_storage

FAX_KEY_PREFIX = "fax/"
LINE_WIDTH_CHARS = 90


def build_rejection_notice_pdf(
    *,
    provider_name: str,
    applicant_name: str,
    applicant_dob: date | None,
    reason: str,
    remaining_attempts: int,
) -> bytes:
    """Render the medical certification rejection notice as a one-page PDF."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    _, height = letter
    y = height - 72

    def line(text: str, font: str = "Helvetica", size: int = 11, gap: int = 16) -> None:
        nonlocal y
        pdf.setFont(font, size)
        pdf.drawString(72, y, text)
        y -= gap

    line("Maryland Accessible Telecommunications Program", "Helvetica-Bold", 14, 24)
    line("Disability Certification Form - Additional Information Needed", "Helvetica-Bold", 12, 28)
    line(f"Date: {date.today().strftime('%B %d, %Y')}")
    line(f"To: {provider_name}")
    line(f"Patient: {applicant_name}")
    if applicant_dob:
        line(f"Date of birth: {applicant_dob.strftime('%m/%d/%Y')}")
    y -= 12

    line("The disability certification form we received could not be accepted:", gap=20)
    for paragraph in reason.splitlines() or [""]:
        for wrapped in textwrap.wrap(paragraph, LINE_WIDTH_CHARS) or [""]:
            line(wrapped)
    y -= 12

    line("Please complete and return a corrected form.", gap=20)
    line(f"Remaining submission attempts for this application: {max(remaining_attempts, 0)}")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


async def store_fax_document(pdf_bytes: bytes) -> tuple[str, str]:
    """
    Store a fax PDF.

    Returns:
        (storage key, URL the fax gateway can fetch)
    """
    storage = get_storage()
    key = f"{FAX_KEY_PREFIX}{uuid.uuid4().hex}.pdf"
    await asyncio.to_thread(storage.put_bytes, key, pdf_bytes, content_type="application/pdf")
    url = await asyncio.to_thread(storage.url_for, key)
    return key, url
