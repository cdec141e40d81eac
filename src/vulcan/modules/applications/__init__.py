"""
Applications module - benefit applications and their review workflow.

Status flow:
    draft -> in_progress -> awaiting_proof / reminder_sent -> awaiting_dcf -> approved
    (rejected and archived close an application)

Background Jobs (via APScheduler):
- send_proof_reminders: daily, reminds constituents after 7 days in awaiting_proof
- send_review_reminders: daily, reminds admins of proofs waiting 3+ days
"""

from vulcan.modules.applications.models import (
    Application,
    ApplicationNote,
    ApplicationStatus,
    ApplicationStatusChange,
    ProofReview,
)

__all__ = [
    "Application",
    "ApplicationNote",
    "ApplicationStatus",
    "ApplicationStatusChange",
    "ProofReview",
]
