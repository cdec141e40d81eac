"""
Unit tests for application draft lookups.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from tests.modules.applications.conftest import make_application
from vulcan.modules.applications import repository
from vulcan.modules.applications.models import ApplicationStatus


def executed_sql(mock_db) -> str:
    query = mock_db.execute.await_args.args[0]
    return str(query.compile(dialect=postgresql.dialect()))


@pytest.fixture
def draft():
    return make_application(status=ApplicationStatus.DRAFT)


@pytest.fixture
def db_returning(mock_db, draft):
    result = MagicMock()
    result.scalars.return_value.first.return_value = draft
    mock_db.execute.return_value = result
    return mock_db


class TestGetDraftForApplicant:
    @pytest.mark.asyncio
    async def test_own_draft_excludes_guardian_drafts(self, db_returning, draft):
        found = await repository.get_draft_for_applicant(db_returning, draft.user_id)

        assert found is draft
        assert "applications.managing_guardian_id IS NULL" in executed_sql(db_returning)

    @pytest.mark.asyncio
    async def test_dependent_draft_scoped_to_guardian(self, db_returning, draft):
        await repository.get_draft_for_applicant(db_returning, draft.user_id, uuid4())

        sql = executed_sql(db_returning)
        assert "applications.managing_guardian_id = " in sql
        assert "IS NULL" not in sql
