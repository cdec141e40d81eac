"""
Unit tests for the admin application filters.
"""

from datetime import UTC, date, datetime
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from vulcan.modules.applications.filters import (
    FILTERS,
    ApplicationFilterParams,
    ApplicationFilterService,
    date_range_bounds,
    fiscal_year_start,
)
from vulcan.modules.applications.models import ApplicationStatus


def compiled(params: ApplicationFilterParams) -> str:
    query = ApplicationFilterService(params).query()
    return str(query.compile(dialect=postgresql.dialect()))


class TestFiscalYear:
    def test_after_july(self):
        assert fiscal_year_start(date(2026, 10, 17)) == date(2026, 7, 1)

    def test_before_july(self):
        assert fiscal_year_start(date(2026, 3, 1)) == date(2025, 7, 1)

    def test_july_first(self):
        assert fiscal_year_start(date(2026, 7, 1)) == date(2026, 7, 1)


class TestDateRangeBounds:
    TODAY = date(2026, 10, 17)

    def test_current_fiscal_year(self):
        start, end = date_range_bounds("current_fy", self.TODAY)
        assert start == datetime(2026, 7, 1, tzinfo=UTC)
        assert end == datetime(2026, 10, 18, tzinfo=UTC)

    def test_previous_fiscal_year(self):
        start, end = date_range_bounds("previous_fy", self.TODAY)
        assert start == datetime(2025, 7, 1, tzinfo=UTC)
        assert end == datetime(2026, 7, 1, tzinfo=UTC)

    def test_last_30_days(self):
        start, end = date_range_bounds("last_30", self.TODAY)
        assert start == datetime(2026, 9, 17, tzinfo=UTC)
        assert end == datetime(2026, 10, 18, tzinfo=UTC)

    def test_unknown_range(self):
        assert date_range_bounds("forever", self.TODAY) is None


class TestApplicationFilterService:
    def test_no_params_orders_newest_first(self):
        sql = compiled(ApplicationFilterParams())
        assert "WHERE" not in sql
        assert "ORDER BY applications.created_at DESC" in sql

    def test_unknown_filter_ignored(self):
        assert "WHERE" not in compiled(ApplicationFilterParams(filter="bogus"))

    def test_every_named_filter_builds(self):
        for name in FILTERS:
            assert "WHERE" in compiled(ApplicationFilterParams(filter=name))

    def test_status(self):
        sql = compiled(ApplicationFilterParams(status=ApplicationStatus.AWAITING_DCF))
        assert "applications.status = " in sql

    def test_awaiting_medical_response_is_awaiting_dcf(self):
        clause = FILTERS["awaiting_medical_response"]()
        assert clause.left.key == "status"
        assert clause.right.value == ApplicationStatus.AWAITING_DCF

    def test_dependent_applications(self):
        sql = compiled(ApplicationFilterParams(filter="dependent_applications"))
        assert "applications.managing_guardian_id IS NOT NULL" in sql

    def test_dependent_id_requires_guardian(self):
        sql = compiled(ApplicationFilterParams(dependent_id=uuid4()))
        assert "applications.user_id = " in sql
        assert "applications.managing_guardian_id IS NOT NULL" in sql

    def test_search_matches_id_prefix_and_applicant(self):
        sql = compiled(ApplicationFilterParams(q="  lovelace "))
        assert "CAST(applications.id AS VARCHAR)" in sql
        assert "users.last_name ILIKE" in sql

    def test_date_range(self):
        sql = compiled(ApplicationFilterParams(date_range="last_90"))
        assert "applications.created_at >= " in sql
        assert "applications.created_at < " in sql
