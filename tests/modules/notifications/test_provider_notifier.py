"""
Unit tests for medical provider rejection notices.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application
from vulcan.core.gateways import GatewayError
from vulcan.modules.notifications.fax_document import build_rejection_notice_pdf
from vulcan.modules.notifications.models import DeliveryStatus, Notification
from vulcan.modules.notifications.provider_notifier import (
    ACTION_CERTIFICATION_REJECTED,
    MedicalProviderNotifier,
    remaining_attempts,
)

MODULE = "vulcan.modules.notifications.provider_notifier"


@pytest.fixture
def twilio():
    client = MagicMock()
    client.configured = True
    client.send_fax = AsyncMock(return_value={"sid": "FX123"})
    return client


@pytest.fixture
def mock_repo():
    from vulcan.modules.notifications.repository import merge_metadata

    with patch(f"{MODULE}.repository") as repo:
        repo.create = AsyncMock(
            side_effect=lambda db, **fields: Notification(
                id=uuid4(),
                action=fields["action"],
                recipient_id=fields["recipient_id"],
                application_id=fields["application_id"],
                notification_metadata=fields["metadata"],
                delivery_status=fields["delivery_status"],
            )
        )
        repo.merge_metadata = MagicMock(side_effect=merge_metadata)
        yield repo


@pytest.fixture
def mock_event():
    with patch(f"{MODULE}.record_event", new=AsyncMock()) as event:
        yield event


@pytest.fixture
def mock_mailer():
    with patch(f"{MODULE}.mailer") as mailer:
        mailer.send_templated_email = AsyncMock(return_value=True)
        yield mailer


@pytest.fixture
def fax_storage():
    with patch(
        f"{MODULE}.store_fax_document",
        new=AsyncMock(return_value=("fax/abc.pdf", "https://api.example.org/files/fax/abc.pdf")),
    ) as store:
        yield store


class TestRemainingAttempts:
    def test_counts_down_from_limit(self):
        assert remaining_attempts(make_application(total_rejections=3)) == 5

    def test_never_negative(self):
        assert remaining_attempts(make_application(total_rejections=12)) == 0


class TestNotifyCertificationRejection:
    @pytest.mark.asyncio
    async def test_fax_preferred(
        self, mock_db, twilio, mock_repo, mock_event, mock_mailer, fax_storage
    ):
        application = make_application(medical_provider_fax="410-555-0000")

        notification = await MedicalProviderNotifier(
            mock_db, application, twilio
        ).notify_certification_rejection("Missing signature", uuid4())

        assert notification.delivery_status == DeliveryStatus.SENDING
        assert notification.notification_metadata["fax_sid"] == "FX123"
        assert notification.notification_metadata["delivery_method"] == "fax"
        assert notification.notification_metadata["notification_methods"] == ["fax"]
        assert twilio.send_fax.call_args.args == (
            "410-555-0000",
            "https://api.example.org/files/fax/abc.pdf",
        )
        assert twilio.send_fax.call_args.kwargs["status_callback"].endswith(
            "/api/v1/webhooks/twilio/fax-status"
        )
        mock_mailer.send_templated_email.assert_not_awaited()
        assert mock_event.call_args.args[1] == ACTION_CERTIFICATION_REJECTED
        mock_db.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_email_when_no_fax_number(
        self, mock_db, twilio, mock_repo, mock_event, mock_mailer
    ):
        application = make_application(medical_provider_fax=None)

        notification = await MedicalProviderNotifier(
            mock_db, application, twilio
        ).notify_certification_rejection("Missing signature", uuid4())

        assert notification.delivery_status == DeliveryStatus.DELIVERED
        assert notification.notification_metadata["delivery_method"] == "email"
        assert notification.notification_metadata["notification_methods"] == ["email"]
        variables = mock_mailer.send_templated_email.call_args.args[3]
        assert variables["rejection_reason"] == "Missing signature"
        assert variables["constituent_dob_formatted"] == "05/17/1980"
        twilio.send_fax.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fax_failure_falls_back_to_email(
        self, mock_db, twilio, mock_repo, mock_event, mock_mailer, fax_storage
    ):
        twilio.send_fax = AsyncMock(side_effect=GatewayError("invalid fax number", 400))
        application = make_application(medical_provider_fax="410-555-0000")

        notification = await MedicalProviderNotifier(
            mock_db, application, twilio
        ).notify_certification_rejection("Missing signature", uuid4())

        assert notification.notification_metadata["notification_methods"] == ["fax", "email"]
        assert notification.delivery_status == DeliveryStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_no_channel_reaches_provider(
        self, mock_db, twilio, mock_repo, mock_event, mock_mailer
    ):
        application = make_application(medical_provider_fax=None, medical_provider_email=None)

        notification = await MedicalProviderNotifier(
            mock_db, application, twilio
        ).notify_certification_rejection("Missing signature", uuid4())

        assert notification.delivery_status == DeliveryStatus.FAILED
        assert notification.notification_metadata["notification_methods"] == []


class TestFaxDocument:
    def test_renders_pdf(self):
        pdf = build_rejection_notice_pdf(
            provider_name="Dr. Grace Hopper",
            applicant_name="Ada Lovelace",
            applicant_dob=None,
            reason="Missing signature\n" + "word " * 60,
            remaining_attempts=-2,
        )
        assert pdf.startswith(b"%PDF")
