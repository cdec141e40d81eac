"""
Unit tests for the automatic status rules.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vulcan.modules.applications.models import (
    ApplicationStatus,
    MedicalCertificationStatus,
    ProofStatus,
)
from vulcan.modules.applications.status_rules import (
    AUTO_APPROVAL_NOTE,
    apply_status_rules,
    auto_approve_if_eligible,
    eligible_for_auto_approval,
    needs_medical_certification_request,
    request_medical_certification_if_ready,
)

MODULE = "vulcan.modules.applications.status_rules"


@pytest.fixture
def proofs_approved(application):
    application.status = ApplicationStatus.AWAITING_DCF
    application.income_proof_status = ProofStatus.APPROVED
    application.residency_proof_status = ProofStatus.APPROVED
    return application


@pytest.fixture
def fully_approved(proofs_approved):
    proofs_approved.medical_certification_status = MedicalCertificationStatus.APPROVED
    return proofs_approved


class TestNeedsMedicalCertificationRequest:
    def test_proofs_approved_and_waiting(self, proofs_approved):
        assert needs_medical_certification_request(proofs_approved)

    def test_already_requested(self, proofs_approved):
        proofs_approved.medical_certification_status = MedicalCertificationStatus.REQUESTED
        assert not needs_medical_certification_request(proofs_approved)

    def test_proof_still_pending(self, proofs_approved):
        proofs_approved.residency_proof_status = ProofStatus.NOT_REVIEWED
        assert not needs_medical_certification_request(proofs_approved)

    def test_wrong_status(self, proofs_approved):
        proofs_approved.status = ApplicationStatus.IN_PROGRESS
        assert not needs_medical_certification_request(proofs_approved)


class TestEligibleForAutoApproval:
    def test_all_requirements_met(self, fully_approved):
        assert eligible_for_auto_approval(fully_approved)

    @pytest.mark.parametrize(
        "status",
        [
            ApplicationStatus.DRAFT,
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.ARCHIVED,
        ],
    )
    def test_excluded_statuses(self, fully_approved, status):
        fully_approved.status = status
        assert not eligible_for_auto_approval(fully_approved)

    def test_certification_received_is_not_enough(self, fully_approved):
        fully_approved.medical_certification_status = MedicalCertificationStatus.RECEIVED
        assert not eligible_for_auto_approval(fully_approved)


class TestRequestMedicalCertificationIfReady:
    @pytest.mark.asyncio
    async def test_requests_and_emails_provider(self, mock_db, proofs_approved):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.emails") as mock_emails,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=proofs_approved)
            mock_emails.send_certification_request = AsyncMock(return_value=True)

            fired = await request_medical_certification_if_ready(mock_db, proofs_approved.id)

        assert fired is True
        assert proofs_approved.medical_certification_status == MedicalCertificationStatus.REQUESTED
        assert proofs_approved.medical_certification_request_count == 1
        assert proofs_approved.medical_certification_requested_at is not None
        mock_emails.send_certification_request.assert_awaited_once_with(mock_db, proofs_approved)

    @pytest.mark.asyncio
    async def test_not_ready_releases_lock(self, mock_db, application):
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.emails") as mock_emails,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=application)
            mock_emails.send_certification_request = AsyncMock()

            fired = await request_medical_certification_if_ready(mock_db, application.id)

        assert fired is False
        mock_db.commit.assert_awaited_once()
        mock_emails.send_certification_request.assert_not_awaited()


class TestAutoApproveIfEligible:
    @pytest.mark.asyncio
    async def test_approves_and_records_event(self, mock_db, fully_approved):
        actor_id = uuid4()

        async def approve(db, application, status, **kwargs):
            application.status = status
            return application

        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.emails") as mock_emails,
            patch(f"{MODULE}.record_event_safely", new=AsyncMock()) as mock_event,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=fully_approved)
            mock_repo.update_status = AsyncMock(side_effect=approve)
            mock_emails.send_approved = AsyncMock(return_value=True)

            fired = await auto_approve_if_eligible(mock_db, fully_approved.id, actor_id)

        assert fired is True
        assert fully_approved.status == ApplicationStatus.APPROVED
        assert mock_repo.update_status.call_args.kwargs["notes"] == AUTO_APPROVAL_NOTE
        assert mock_repo.update_status.call_args.kwargs["change_type"] == "auto_approval"

        assert mock_event.call_args.args[1] == "application_auto_approved"
        metadata = mock_event.call_args.kwargs["metadata"]
        assert metadata["old_status"] == "awaiting_dcf"
        assert metadata["new_status"] == "approved"
        assert metadata["auto_approval"] is True
        assert metadata["triggered_by_user_id"] == str(actor_id)
        mock_emails.send_approved.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_application(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(return_value=None)

            assert await auto_approve_if_eligible(mock_db, uuid4()) is False

        mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_apply_status_rules_runs_in_order(mock_db):
    application_id = uuid4()
    calls = []

    async def request(db, app_id):
        calls.append("request")
        return True

    async def approve(db, app_id, actor_id):
        calls.append("approve")
        return False

    with (
        patch(f"{MODULE}.request_medical_certification_if_ready", new=request),
        patch(f"{MODULE}.auto_approve_if_eligible", new=approve),
    ):
        result = await apply_status_rules(mock_db, application_id)

    assert calls == ["request", "approve"]
    assert result == {"medical_certification_requested": True, "auto_approved": False}
