"""
Application Filters

Builds the admin application list query from request parameters:

- filter: a named queue (see FILTERS)
- status: one application status
- date_range: current_fy, previous_fy, last_30, last_90
  (the program's fiscal year starts July 1)
- q: application id prefix, applicant name or email
- guardian_id / dependent_id: applications managed by a guardian, or for a
  given dependent
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import ColumnElement, Select, String, cast, func, or_, select

from vulcan.modules.applications.models import (
    Application,
    ApplicationStatus,
    DocumentSigningStatus,
    MedicalCertificationStatus,
)
from vulcan.modules.applications.repository import ACTIVE_STATUSES, proofs_pending_review
from vulcan.modules.users.models import User

FISCAL_YEAR_START_MONTH = 7

FILTERS: dict[str, Callable[[], ColumnElement[bool]]] = {
    "active": lambda: Application.status.in_(ACTIVE_STATUSES),
    "in_progress": lambda: Application.status == ApplicationStatus.IN_PROGRESS,
    "approved": lambda: Application.status == ApplicationStatus.APPROVED,
    "rejected": lambda: Application.status == ApplicationStatus.REJECTED,
    "proofs_needing_review": lambda: Application.status.in_(ACTIVE_STATUSES)
    & proofs_pending_review(),
    "awaiting_medical_response": lambda: Application.status == ApplicationStatus.AWAITING_DCF,
    "medical_certs_to_review": lambda: Application.medical_certification_status
    == MedicalCertificationStatus.RECEIVED,
    "digitally_signed_needs_review": lambda: (
        Application.document_signing_status == DocumentSigningStatus.SIGNED
    )
    & (Application.medical_certification_status != MedicalCertificationStatus.APPROVED),
    "dependent_applications": lambda: Application.managing_guardian_id.is_not(None),
}

DATE_RANGES = ("current_fy", "previous_fy", "last_30", "last_90")


def fiscal_year_start(today: date) -> date:
    year = today.year if today.month >= FISCAL_YEAR_START_MONTH else today.year - 1
    return date(year, FISCAL_YEAR_START_MONTH, 1)


def date_range_bounds(name: str, today: date | None = None) -> tuple[datetime, datetime] | None:
    """
    [start, end) datetimes (UTC) for a named range, or None if unknown.
    """
    today = today or date.today()
    tomorrow = today + timedelta(days=1)

    if name == "current_fy":
        start, end = fiscal_year_start(today), tomorrow
    elif name == "previous_fy":
        end = fiscal_year_start(today)
        start = end.replace(year=end.year - 1)
    elif name == "last_30":
        start, end = today - timedelta(days=30), tomorrow
    elif name == "last_90":
        start, end = today - timedelta(days=90), tomorrow
    else:
        return None

    return (
        datetime.combine(start, time.min, tzinfo=UTC),
        datetime.combine(end, time.min, tzinfo=UTC),
    )


@dataclass
class ApplicationFilterParams:
    filter: str | None = None
    status: ApplicationStatus | None = None
    date_range: str | None = None
    q: str | None = None
    guardian_id: UUID | None = None
    dependent_id: UUID | None = None


class ApplicationFilterService:
    """Apply filter parameters to an Application select."""

    def __init__(self, params: ApplicationFilterParams):
        self.params = params

    def apply(self, query: Select) -> Select:
        params = self.params

        if params.filter and params.filter in FILTERS:
            query = query.where(FILTERS[params.filter]())

        if params.status is not None:
            query = query.where(Application.status == params.status)

        if params.date_range:
            bounds = date_range_bounds(params.date_range)
            if bounds:
                query = query.where(
                    Application.created_at >= bounds[0], Application.created_at < bounds[1]
                )

        if params.guardian_id is not None:
            query = query.where(Application.managing_guardian_id == params.guardian_id)
        if params.dependent_id is not None:
            query = query.where(
                Application.user_id == params.dependent_id,
                Application.managing_guardian_id.is_not(None),
            )

        if params.q and params.q.strip():
            query = self._search(query, params.q.strip())

        return query

    def _search(self, query: Select, term: str) -> Select:
        pattern = f"%{term}%"
        applicant_ids = select(User.id).where(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
                func.concat(User.first_name, " ", User.last_name).ilike(pattern),
            )
        )
        return query.where(
            or_(
                cast(Application.id, String).ilike(f"{term}%"),
                Application.user_id.in_(applicant_ids),
            )
        )

    def query(self) -> Select:
        return self.apply(select(Application)).order_by(Application.created_at.desc())
