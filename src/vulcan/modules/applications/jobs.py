"""
Application Background Jobs

Scheduled tasks for the application lifecycle:
1. Remind constituents whose application has waited on proofs for 7 days
2. Remind admins about proofs that have waited for review for 3 days

Design Principles:
- Jobs are idempotent (safe to run multiple times)
- Jobs handle their own database sessions
- Individual application failures don't stop the job
- Email failures are logged; the database update still happens

Schedule:
- Both jobs run daily and can be triggered manually via the debug endpoints
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from vulcan.core.database import async_session_maker
from vulcan.core.scheduler import register_job
from vulcan.modules.applications import emails, repository
from vulcan.modules.applications.models import Application, ApplicationStatus
from vulcan.modules.email_templates import mailer
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Job configuration constants
PROOF_REMINDER_THRESHOLD_DAYS = 7
REVIEW_REMINDER_THRESHOLD_DAYS = 3

# Job IDs for registration and manual triggering
JOB_ID_PROOF_REMINDERS = "applications_send_proof_reminders"
JOB_ID_REVIEW_REMINDERS = "applications_send_review_reminders"


async def _process_proof_reminder(
    application: Application, executed_at: datetime
) -> dict[str, Any]:
    async with async_session_maker() as db:
        locked = await repository.get_for_update(db, application.id)
        if locked is None or locked.status != ApplicationStatus.AWAITING_PROOF:
            await db.commit()
            return {
                "application_id": str(application.id),
                "status": "skipped",
                "reason": "status_changed",
            }

        days_waiting = (executed_at - locked.updated_at).days if locked.updated_at else None
        await repository.update_status(
            db,
            locked,
            ApplicationStatus.REMINDER_SENT,
            notes="Proof submission reminder sent",
            change_type="reminder",
            reminder_sent_at=executed_at,
        )

        email_sent = await emails.send_proof_reminder(
            db, locked, days_waiting or PROOF_REMINDER_THRESHOLD_DAYS
        )
        if not email_sent:
            logger.error(f"Failed to send proof reminder for application {application.id}")

        return {
            "application_id": str(application.id),
            "status": "sent" if email_sent else "marked_sent_email_failed",
        }


async def send_proof_reminders() -> dict[str, Any]:
    """
    Remind constituents to resubmit proofs.

    Applications in awaiting_proof for 7+ days without a reminder move to
    reminder_sent and the constituent gets an email.
    """
    executed_at = datetime.now(UTC)
    threshold = executed_at - timedelta(days=PROOF_REMINDER_THRESHOLD_DAYS)

    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "reminders": [],
        "total_processed": 0,
        "total_errors": 0,
    }

    async with async_session_maker() as db:
        applications = await repository.list_awaiting_proof_since(db, threshold)

    logger.info(f"Found {len(applications)} applications needing a proof reminder")

    for application in applications:
        try:
            results["reminders"].append(await _process_proof_reminder(application, executed_at))
            results["total_processed"] += 1
        except Exception as e:
            logger.error(
                f"Error sending proof reminder for application {application.id}: {e}",
                exc_info=True,
            )
            results["reminders"].append(
                {"application_id": str(application.id), "status": "error", "error": str(e)}
            )
            results["total_errors"] += 1

    logger.info(
        f"Proof reminder job completed. "
        f"Processed: {results['total_processed']}, Errors: {results['total_errors']}"
    )
    return results


async def send_review_reminders() -> dict[str, Any]:
    """Email every active admin the list of proofs waiting 3+ days for review."""
    executed_at = datetime.now(UTC)
    threshold = executed_at - timedelta(days=REVIEW_REMINDER_THRESHOLD_DAYS)

    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "stale_reviews": 0,
        "admins_notified": [],
        "total_errors": 0,
    }

    async with async_session_maker() as db:
        applications = await repository.list_proofs_waiting_review_since(db, threshold)
        results["stale_reviews"] = len(applications)
        if not applications:
            logger.info("No proofs waiting for review past the threshold")
            return results

        stale_list = "\n".join(
            f"- Application {a.id} ({a.user.full_name}), waiting since "
            f"{a.needs_review_since.strftime('%m/%d/%Y')}"
            for a in applications
        )

        for admin in await UserRepository.list_admins(db):
            sent = await mailer.send_templated_email(
                db,
                mailer.PROOF_NEEDS_REVIEW_REMINDER,
                admin.email,
                {
                    "admin_full_name": admin.full_name,
                    "stale_reviews_count": len(applications),
                    "stale_reviews_list": stale_list,
                },
            )
            if sent:
                results["admins_notified"].append(str(admin.id))
            else:
                results["total_errors"] += 1

    logger.info(
        f"Review reminder job completed. Stale reviews: {results['stale_reviews']}, "
        f"admins notified: {len(results['admins_notified'])}"
    )
    return results


def register_application_jobs() -> None:
    """Register application background jobs with the scheduler."""
    logger.info("Registering application background jobs...")

    register_job(
        job_id=JOB_ID_PROOF_REMINDERS,
        func=send_proof_reminders,
        trigger=IntervalTrigger(days=1),
    )
    register_job(
        job_id=JOB_ID_REVIEW_REMINDERS,
        func=send_review_reminders,
        trigger=IntervalTrigger(days=1),
    )

    logger.info("Application background jobs registered successfully")
