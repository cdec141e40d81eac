"""
Unit tests for the applications service layer.

These tests cover:
- Submission validation and the waiting period
- Guardian resolution for dependent applications
- Proof uploads and reviews (approval, rejection, rejection limit)
- Medical certification rejection
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application, make_user
from vulcan.modules.applications.models import (
    ApplicationStatus,
    MedicalCertificationStatus,
    ProofStatus,
    ProofType,
)
from vulcan.modules.applications.service import (
    MAX_REJECTIONS_NOTE,
    InvalidApplicationStateError,
    InvalidProofError,
    NotGuardianError,
    WaitingPeriodError,
    check_waiting_period,
    reject_medical_certification,
    resolve_applicant,
    review_proof,
    upload_proof,
    validate_for_submission,
    years_after,
    years_before,
)

MODULE = "vulcan.modules.applications.service"


async def _set_status(db, application, status, **kwargs):
    for key, value in kwargs.items():
        if key not in ("actor_id", "notes", "change_type", "metadata", "commit"):
            setattr(application, key, value)
    application.status = status
    return application


@pytest.fixture
def mock_repo():
    with patch(f"{MODULE}.repository") as repo:
        repo.update_status = AsyncMock(side_effect=_set_status)
        repo.create_proof_review = AsyncMock()
        repo.save = AsyncMock(side_effect=lambda db, application: application)
        yield repo


@pytest.fixture
def mock_emails():
    with patch(f"{MODULE}.emails") as emails:
        emails.send_proof_approved = AsyncMock(return_value=True)
        emails.send_proof_rejected = AsyncMock(return_value=True)
        emails.send_max_rejections_reached = AsyncMock(return_value=True)
        yield emails


@pytest.fixture
def mock_rules():
    with patch(f"{MODULE}.status_rules") as rules:
        rules.apply_status_rules = AsyncMock(return_value={})
        yield rules


class TestDateHelpers:
    def test_years_after_leap_day(self):
        assert years_after(date(2024, 2, 29), 3) == date(2027, 2, 28)

    def test_years_before(self):
        assert years_before(date(2026, 10, 17), 3) == date(2023, 10, 17)


class TestValidateForSubmission:
    def test_complete_application(self, application):
        assert validate_for_submission(application) == {}

    def test_missing_fields_reported_by_name(self, application):
        application.maryland_resident = False
        application.annual_income = None
        application.medical_provider_email = None
        application.user.hearing_disability = False

        errors = validate_for_submission(application)

        assert set(errors) == {
            "maryland_resident",
            "annual_income",
            "medical_provider_email",
            "disability",
        }


class TestCheckWaitingPeriod:
    @pytest.mark.asyncio
    async def test_recent_application_blocks(self, mock_db, mock_repo):
        last = MagicMock(application_date=date.today().replace(day=1))
        mock_repo.get_last_submitted_for_applicant = AsyncMock(return_value=last)

        with pytest.raises(WaitingPeriodError) as exc_info:
            await check_waiting_period(mock_db, uuid4())

        assert exc_info.value.status_code == 422
        assert exc_info.value.eligible_on == years_after(last.application_date, 3)

    @pytest.mark.asyncio
    async def test_old_application_allowed(self, mock_db, mock_repo):
        last = MagicMock(application_date=date(2015, 1, 1))
        mock_repo.get_last_submitted_for_applicant = AsyncMock(return_value=last)

        await check_waiting_period(mock_db, uuid4())

    @pytest.mark.asyncio
    async def test_no_previous_application(self, mock_db, mock_repo):
        mock_repo.get_last_submitted_for_applicant = AsyncMock(return_value=None)

        await check_waiting_period(mock_db, uuid4())


class TestResolveApplicant:
    @pytest.mark.asyncio
    async def test_self(self, mock_db):
        actor_id = uuid4()
        assert await resolve_applicant(mock_db, actor_id, None) == (actor_id, None)

    @pytest.mark.asyncio
    async def test_dependent_of_guardian(self, mock_db):
        guardian_id, dependent_id = uuid4(), uuid4()
        with patch(f"{MODULE}.guardian_repository") as mock_guardians:
            mock_guardians.get_relationship = AsyncMock(
                return_value=MagicMock(guardian_id=guardian_id)
            )

            result = await resolve_applicant(mock_db, guardian_id, dependent_id)

        assert result == (dependent_id, guardian_id)

    @pytest.mark.asyncio
    async def test_not_a_guardian(self, mock_db):
        with patch(f"{MODULE}.guardian_repository") as mock_guardians:
            mock_guardians.get_relationship = AsyncMock(return_value=None)

            with pytest.raises(NotGuardianError):
                await resolve_applicant(mock_db, uuid4(), uuid4())


class TestUploadProof:
    @pytest.mark.asyncio
    async def test_rejects_unsupported_type(self, mock_db):
        with pytest.raises(InvalidProofError):
            await upload_proof(
                mock_db, uuid4(), uuid4(), ProofType.INCOME, "a.exe", b"data", "application/x-exe"
            )

    @pytest.mark.asyncio
    async def test_rejects_empty_file(self, mock_db):
        with pytest.raises(InvalidProofError):
            await upload_proof(
                mock_db, uuid4(), uuid4(), ProofType.INCOME, "a.pdf", b"", "application/pdf"
            )

    @pytest.mark.asyncio
    async def test_resubmission_returns_to_in_progress(self, mock_db, mock_repo, application):
        application.status = ApplicationStatus.AWAITING_PROOF
        application.income_proof_status = ProofStatus.REJECTED
        mock_repo.get_by_id = AsyncMock(return_value=application)
        mock_repo.get_for_update = AsyncMock(return_value=application)
        storage = MagicMock()

        with (
            patch(f"{MODULE}.get_storage", return_value=storage),
            patch(f"{MODULE}.record_event", new=AsyncMock()) as mock_event,
        ):
            result = await upload_proof(
                mock_db,
                application.id,
                application.user_id,
                ProofType.INCOME,
                "../paystub.pdf",
                b"%PDF-1.4",
                "application/pdf",
            )

        assert result.status == ApplicationStatus.IN_PROGRESS
        assert result.income_proof_status == ProofStatus.NOT_REVIEWED
        assert result.income_proof_key.startswith(f"proofs/{application.id}/income/")
        assert result.income_proof_key.endswith(".pdf")
        assert result.needs_review_since is not None
        storage.put_bytes.assert_called_once()
        assert mock_event.call_args.kwargs["metadata"] == {
            "proof_type": "income",
            "filename": "paystub.pdf",
        }

    @pytest.mark.asyncio
    async def test_approved_proof_cannot_be_replaced(self, mock_db, mock_repo, application):
        application.income_proof_status = ProofStatus.APPROVED
        mock_repo.get_by_id = AsyncMock(return_value=application)

        with pytest.raises(InvalidApplicationStateError):
            await upload_proof(
                mock_db,
                application.id,
                application.user_id,
                ProofType.INCOME,
                "a.pdf",
                b"%PDF",
                "application/pdf",
            )


class TestReviewProof:
    @pytest.mark.asyncio
    async def test_approving_last_proof_moves_to_awaiting_dcf(
        self, mock_db, mock_repo, mock_emails, mock_rules, application
    ):
        application.residency_proof_status = ProofStatus.APPROVED
        mock_repo.get_for_update = AsyncMock(return_value=application)
        admin_id = uuid4()

        result = await review_proof(mock_db, application.id, admin_id, ProofType.INCOME, True)

        assert result.income_proof_status == ProofStatus.APPROVED
        assert result.status == ApplicationStatus.AWAITING_DCF
        assert result.needs_review_since is None
        assert mock_repo.create_proof_review.call_args.kwargs["status"] == ProofStatus.APPROVED
        mock_emails.send_proof_approved.assert_awaited_once_with(
            mock_db, application, ProofType.INCOME
        )
        mock_rules.apply_status_rules.assert_awaited_once_with(mock_db, application.id, admin_id)

    @pytest.mark.asyncio
    async def test_rejection_moves_to_awaiting_proof(
        self, mock_db, mock_repo, mock_emails, mock_rules, application
    ):
        mock_repo.get_for_update = AsyncMock(return_value=application)

        with patch(
            f"{MODULE}.resolve_for_persistence",
            new=AsyncMock(return_value={"text": "Document expired", "code": "expired"}),
        ):
            result = await review_proof(
                mock_db,
                application.id,
                uuid4(),
                ProofType.RESIDENCY,
                False,
                rejection_reason_code="expired",
            )

        assert result.residency_proof_status == ProofStatus.REJECTED
        assert result.status == ApplicationStatus.AWAITING_PROOF
        assert result.total_rejections == 1
        review = mock_repo.create_proof_review.call_args.kwargs
        assert review["rejection_reason"] == "Document expired"
        assert review["rejection_reason_code"] == "expired"
        mock_emails.send_proof_rejected.assert_awaited_once_with(
            mock_db, application, ProofType.RESIDENCY, "Document expired", 7
        )

    @pytest.mark.asyncio
    async def test_rejection_limit_archives(
        self, mock_db, mock_repo, mock_emails, mock_rules, application
    ):
        application.total_rejections = 7
        mock_repo.get_for_update = AsyncMock(return_value=application)

        with patch(
            f"{MODULE}.resolve_for_persistence",
            new=AsyncMock(return_value={"text": "Wrong document", "code": "wrong_document"}),
        ):
            result = await review_proof(
                mock_db, application.id, uuid4(), ProofType.INCOME, False, "wrong_document"
            )

        assert result.status == ApplicationStatus.ARCHIVED
        assert mock_repo.update_status.call_args.kwargs["notes"] == MAX_REJECTIONS_NOTE
        mock_emails.send_max_rejections_reached.assert_awaited_once()
        mock_emails.send_proof_rejected.assert_not_awaited()
        mock_rules.apply_status_rules.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_reviewable_when_approved(self, mock_db, mock_repo, application):
        application.status = ApplicationStatus.APPROVED
        mock_repo.get_for_update = AsyncMock(return_value=application)

        with pytest.raises(InvalidApplicationStateError):
            await review_proof(mock_db, application.id, uuid4(), ProofType.INCOME, True)

        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_proof(self, mock_db, mock_repo, application):
        application.income_proof_key = None
        mock_repo.get_for_update = AsyncMock(return_value=application)

        with pytest.raises(InvalidApplicationStateError) as exc_info:
            await review_proof(mock_db, application.id, uuid4(), ProofType.INCOME, True)

        assert exc_info.value.message == "No income proof has been uploaded."


class TestRejectMedicalCertification:
    @pytest.mark.asyncio
    async def test_rejects_and_notifies_provider_without_counting(self, mock_db, mock_repo):
        application = make_application(
            make_user(),
            status=ApplicationStatus.AWAITING_DCF,
            medical_certification_status=MedicalCertificationStatus.RECEIVED,
            total_rejections=7,
        )
        mock_repo.get_for_update = AsyncMock(return_value=application)
        admin_id = uuid4()

        with (
            patch(
                f"{MODULE}.resolve_for_persistence",
                new=AsyncMock(
                    return_value={"text": "Signature missing", "code": "missing_signature"}
                ),
            ),
            patch(f"{MODULE}.MedicalProviderNotifier") as mock_notifier_cls,
        ):
            notifier = mock_notifier_cls.return_value
            notifier.notify_certification_rejection = AsyncMock()

            result = await reject_medical_certification(
                mock_db, application.id, admin_id, "missing_signature"
            )

        assert result.medical_certification_status == MedicalCertificationStatus.REJECTED
        assert result.medical_certification_rejection_reason == "Signature missing"
        assert result.medical_certification_rejection_reason_code == "missing_signature"
        assert result.medical_certification_verified_by_id == admin_id
        assert result.total_rejections == 7
        assert result.status == ApplicationStatus.AWAITING_DCF
        mock_repo.update_status.assert_not_called()
        notifier.notify_certification_rejection.assert_awaited_once_with(
            "Signature missing", admin_id
        )
