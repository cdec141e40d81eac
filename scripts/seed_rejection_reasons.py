"""
Seed Rejection Reasons

Creates the English rejection reasons admins choose from when rejecting an
income proof, a residency proof or a medical certification. Existing
reasons (same code, proof type and locale) are left untouched, so the
script can be re-run safely.

Usage:
    python scripts/seed_rejection_reasons.py
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from vulcan.core.config import settings
from vulcan.modules.rejection_reasons.models import RejectionProofType, RejectionReason

INCOME = RejectionProofType.INCOME
RESIDENCY = RejectionProofType.RESIDENCY
MEDICAL = RejectionProofType.MEDICAL_CERTIFICATION

REASONS: list[tuple[str, RejectionProofType, str]] = [
    # Income
    (
        "address_mismatch",
        INCOME,
        "The address provided on your income documentation does not match the application "
        "address. Please submit documentation that contains the address exactly matching "
        "the one shared in your application: %{address}",
    ),
    (
        "expired",
        INCOME,
        "The income documentation you provided is more than 1 year old or is expired. "
        "Please submit documentation that is less than 1 year old and which is not expired.",
    ),
    (
        "missing_name",
        INCOME,
        "The income documentation you provided does not show your name. Please submit "
        "documentation that clearly displays your full name as it appears on your application.",
    ),
    (
        "wrong_document",
        INCOME,
        "The document you submitted is not an acceptable type of income proof. Please submit "
        "one of the following: recent pay stubs, tax returns, Social Security benefit "
        "statements, or other official documentation that verifies your income.",
    ),
    (
        "missing_amount",
        INCOME,
        "The income documentation you provided does not clearly show your income amount. "
        "Please submit documentation that clearly displays your income figures, such as pay "
        "stubs with earnings clearly visible or benefit statements showing payment amounts.",
    ),
    (
        "exceeds_threshold",
        INCOME,
        "Based on the income documentation you provided, your household income exceeds the "
        "maximum threshold to qualify for the MAT program.",
    ),
    (
        "outdated_ss_award",
        INCOME,
        "Your Social Security benefit award letter is out-of-date. Please submit your most "
        "recent award letter, which should be dated within the last 12 months.",
    ),
    # Residency
    (
        "address_mismatch",
        RESIDENCY,
        "The address provided on your residency documentation does not match the application "
        "address. Please submit documentation that contains the address exactly matching "
        "the one shared in your application: %{address}",
    ),
    (
        "expired",
        RESIDENCY,
        "The residency documentation you provided is more than 1 year old or is expired. "
        "Please submit documentation that is less than 1 year old and which is not expired.",
    ),
    (
        "missing_name",
        RESIDENCY,
        "The residency documentation you provided does not show your name. Please submit "
        "documentation that clearly displays your full name as it appears on your application.",
    ),
    (
        "wrong_document",
        RESIDENCY,
        "The document you submitted is not an acceptable type of residency proof. Please "
        "submit one of the following: utility bill, lease agreement, mortgage statement, or "
        "other official documentation that verifies your Maryland residence.",
    ),
    # Medical certification
    (
        "missing_provider_credentials",
        MEDICAL,
        "The disability certification is missing required provider credentials or license "
        "number. Please ensure the resubmitted form includes the certifying professional's "
        "full credentials and license information.",
    ),
    (
        "incomplete_disability_documentation",
        MEDICAL,
        "The documentation of the disability is incomplete. The certification must include a "
        "complete description of the disability and how it affects major life activities.",
    ),
    (
        "outdated_certification",
        MEDICAL,
        "The disability certification is outdated. Please provide a certification that has "
        "been completed within the last 12 months.",
    ),
    (
        "missing_signature",
        MEDICAL,
        "The disability certification is missing the required signature from the certifying "
        "professional. Please ensure the resubmitted form is properly signed and dated.",
    ),
    (
        "missing_functional_limitations",
        MEDICAL,
        "The disability certification lacks sufficient detail about functional limitations. "
        "Please ensure the resubmitted form includes specific information about how the "
        "disability affects daily activities.",
    ),
    (
        "incorrect_form_used",
        MEDICAL,
        "The wrong certification form was used. Please ensure the certifying professional "
        "completes the official Disability Certification Form for MAT program eligibility.",
    ),
]


async def seed_rejection_reasons() -> None:
    """Create any missing English rejection reasons."""
    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    created = 0
    async with async_session() as db:
        for code, proof_type, body in REASONS:
            result = await db.execute(
                select(RejectionReason).where(
                    RejectionReason.code == code,
                    RejectionReason.proof_type == proof_type,
                    RejectionReason.locale == "en",
                )
            )
            if result.scalar_one_or_none():
                continue
            db.add(RejectionReason(code=code, proof_type=proof_type, locale="en", body=body))
            created += 1

        await db.commit()

    print(f"Rejection reasons seeded: {created} created, {len(REASONS) - created} already present")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_rejection_reasons())
