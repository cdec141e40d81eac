"""
Seed Email Templates

Creates the English text templates every program notification is rendered
from. A template that already exists (same name, format and locale) is
left as is so admin edits survive a re-run.

Usage:
    python scripts/seed_email_templates.py
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from vulcan.core.config import settings
from vulcan.modules.email_templates import mailer, repository
from vulcan.modules.email_templates.models import TemplateFormat

SIGNATURE = "Maryland Accessible Telecommunications Program"

TEMPLATES = [
    {
        "name": mailer.APPLICATION_SUBMITTED,
        "subject": "Your MAT application has been received",
        "description": "Sent to the constituent when an application is submitted.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "We received your application (ID %<application_id>s) on "
            "%<submission_date_formatted>s. We will review your documents and let you "
            "know if we need anything else.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": ["user_first_name", "application_id"],
            "optional": ["submission_date_formatted"],
        },
    },
    {
        "name": mailer.APPLICATION_APPROVED,
        "subject": "Your MAT application has been approved",
        "description": "Sent to the constituent when every requirement has been approved.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "Your application (ID %<application_id>s) has been approved. You will receive "
            "your voucher details in a separate message.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {"required": ["user_first_name", "application_id"], "optional": []},
    },
    {
        "name": mailer.PROOF_APPROVED,
        "subject": "Your %<proof_type_formatted>s proof has been approved",
        "description": "Sent when an income or residency proof is approved.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "We reviewed your %<proof_type_formatted>s documentation for application "
            "%<application_id>s and it has been approved.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": ["user_first_name", "proof_type_formatted"],
            "optional": ["application_id"],
        },
    },
    {
        "name": mailer.PROOF_REJECTED,
        "subject": "Document Review Update",
        "description": "Sent when an income or residency proof is rejected.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "We have reviewed your %<proof_type_formatted>s documentation and it has been "
            "rejected.\n\n"
            "REASON FOR REJECTION: %<rejection_reason>s\n\n"
            "You may resubmit %<remaining_attempts>s more time(s). Please sign in and upload "
            "a new document for application %<application_id>s.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": ["user_first_name", "proof_type_formatted", "rejection_reason"],
            "optional": ["application_id", "remaining_attempts"],
        },
    },
    {
        "name": mailer.MAX_REJECTIONS_REACHED,
        "subject": "Your MAT application has been archived",
        "description": "Sent when the maximum number of proof rejections is reached.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "Your application (ID %<application_id>s) has reached the maximum number of "
            "document resubmissions and has been archived. You may apply again on or after "
            "%<reapply_date_formatted>s.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": ["user_first_name", "reapply_date_formatted"],
            "optional": ["application_id"],
        },
    },
    {
        "name": mailer.AWAITING_PROOF_REMINDER,
        "subject": "Reminder: documents needed for your MAT application",
        "description": "Sent when an application has been waiting on proofs for a week.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "Your application (ID %<application_id>s) has been waiting for documents for "
            "%<days_waiting>s days. Please sign in and upload the requested proof so we can "
            "continue reviewing your application.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": ["user_first_name", "days_waiting"],
            "optional": ["application_id"],
        },
    },
    {
        "name": mailer.PROOF_NEEDS_REVIEW_REMINDER,
        "subject": "%<stale_reviews_count>s proofs are waiting for review",
        "description": "Sent to admins when proofs have waited three or more days for review.",
        "body": (
            "Hello %<admin_full_name>s,\n\n"
            "The following %<stale_reviews_count>s proofs have been waiting for review for "
            "three days or more:\n\n"
            "%<stale_reviews_list>s\n"
        ),
        "variables": {
            "required": ["admin_full_name", "stale_reviews_count", "stale_reviews_list"],
            "optional": [],
        },
    },
    {
        "name": mailer.PROVIDER_REQUEST_CERTIFICATION,
        "subject": "Disability certification request for %<constituent_full_name>s",
        "description": "Sent to the medical provider to request the certification form.",
        "body": (
            "Dear %<medical_provider_name>s,\n\n"
            "Your patient %<constituent_full_name>s (date of birth "
            "%<constituent_dob_formatted>s) has applied to the Maryland Accessible "
            "Telecommunications program and named you as their certifying professional.\n\n"
            "Please complete the Disability Certification Form for application "
            "%<application_id>s. This is request number %<request_count>s.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": [
                "medical_provider_name",
                "constituent_full_name",
                "constituent_dob_formatted",
                "application_id",
            ],
            "optional": ["request_count"],
        },
    },
    {
        "name": mailer.PROVIDER_CERTIFICATION_REJECTED,
        "subject": "Disability certification for %<constituent_full_name>s needs correction",
        "description": "Sent to the medical provider when a certification is rejected.",
        "body": (
            "Dear %<medical_provider_name>s,\n\n"
            "The disability certification for %<constituent_full_name>s (date of birth "
            "%<constituent_dob_formatted>s, application %<application_id>s) could not be "
            "accepted.\n\n"
            "REASON: %<rejection_reason>s\n\n"
            "Remaining resubmissions: %<remaining_attempts>s\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": [
                "medical_provider_name",
                "constituent_full_name",
                "rejection_reason",
            ],
            "optional": ["constituent_dob_formatted", "application_id", "remaining_attempts"],
        },
    },
    {
        "name": mailer.MEDICAL_CERTIFICATION_APPROVED,
        "subject": "Your disability certification has been approved",
        "description": "Sent to the constituent when the medical certification is approved.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "The disability certification for application %<application_id>s has been "
            "reviewed and approved.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {"required": ["user_first_name"], "optional": ["application_id"]},
    },
    {
        "name": mailer.VOUCHER_ASSIGNED,
        "subject": "Your Voucher Has Been Assigned",
        "description": "Sent when a voucher is issued for an approved application.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "Your Maryland Accessible Telecommunications voucher is ready to use.\n\n"
            "Voucher Code: %<voucher_code>s\n"
            "Value: %<initial_value_formatted>s\n"
            "Expiration Date: %<expiration_date_formatted>s\n\n"
            "Your voucher is valid for %<validity_period_months>s months. The minimum "
            "purchase amount is %<minimum_redemption_amount_formatted>s. Give your voucher "
            "code to an authorized vendor; they will ask you to confirm your date of birth.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": [
                "user_first_name",
                "voucher_code",
                "initial_value_formatted",
                "expiration_date_formatted",
                "validity_period_months",
                "minimum_redemption_amount_formatted",
            ],
            "optional": ["application_id"],
        },
    },
    {
        "name": mailer.VOUCHER_REDEEMED,
        "subject": "Voucher %<voucher_code>s was used",
        "description": "Receipt sent after a vendor redeems part or all of a voucher.",
        "body": (
            "Dear %<user_first_name>s,\n\n"
            "%<vendor_business_name>s redeemed %<transaction_amount_formatted>s from your "
            "voucher %<voucher_code>s. Remaining balance: %<remaining_balance_formatted>s.\n\n"
            f"{SIGNATURE}"
        ),
        "variables": {
            "required": [
                "user_first_name",
                "voucher_code",
                "transaction_amount_formatted",
                "remaining_balance_formatted",
                "vendor_business_name",
            ],
            "optional": ["application_id"],
        },
    },
]


async def seed_email_templates() -> None:
    """Create any missing English text templates."""
    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    created = 0
    async with async_session() as db:
        for template in TEMPLATES:
            existing = await repository.get(db, template["name"], TemplateFormat.TEXT, "en")
            if existing:
                continue
            await repository.create(db, format=TemplateFormat.TEXT, locale="en", **template)
            print(f"  Created {template['name']}")
            created += 1

        await db.commit()

    print(f"Email templates seeded: {created} created, {len(TEMPLATES) - created} already present")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_email_templates())
