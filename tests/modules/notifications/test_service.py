"""
Unit tests for fax status handling.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application
from vulcan.modules.notifications.models import DeliveryStatus, Notification
from vulcan.modules.notifications.service import (
    NotificationNotFoundError,
    handle_fax_status,
    map_fax_status,
    mark_read,
)

MODULE = "vulcan.modules.notifications.service"


def make_notification(**overrides) -> Notification:
    fields = {
        "id": uuid4(),
        "recipient_id": uuid4(),
        "application_id": uuid4(),
        "action": "medical_certification_rejected",
        "notification_metadata": {
            "reason": "Missing signature",
            "delivery_method": "fax",
            "fax_sid": "FX123",
            "notification_methods": ["fax"],
        },
        "delivery_status": DeliveryStatus.SENDING,
    }
    fields.update(overrides)
    return Notification(**fields)


@pytest.fixture
def mock_repo():
    # merge_metadata is a plain function; keep the real behaviour
    from vulcan.modules.notifications.repository import merge_metadata

    with patch(f"{MODULE}.repository") as repo:
        repo.merge_metadata = MagicMock(side_effect=merge_metadata)
        yield repo


class TestMapFaxStatus:
    @pytest.mark.parametrize(
        "fax_status,expected",
        [
            ("queued", DeliveryStatus.SENDING),
            ("processing", DeliveryStatus.SENDING),
            ("delivered", DeliveryStatus.DELIVERED),
            ("received", DeliveryStatus.RECEIVED),
            ("no-answer", DeliveryStatus.FAILED),
            ("busy", DeliveryStatus.FAILED),
            ("canceled", DeliveryStatus.FAILED),
            (" Delivered ", DeliveryStatus.DELIVERED),
            ("mystery", DeliveryStatus.UNKNOWN),
            (None, DeliveryStatus.UNKNOWN),
        ],
    )
    def test_mapping(self, fax_status, expected):
        assert map_fax_status(fax_status) == expected


class TestHandleFaxStatus:
    @pytest.mark.asyncio
    async def test_unknown_fax(self, mock_db, mock_repo):
        mock_repo.get_by_fax_sid = AsyncMock(return_value=None)

        assert await handle_fax_status(mock_db, "FX404", "delivered") is None
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivered(self, mock_db, mock_repo):
        notification = make_notification()
        mock_repo.get_by_fax_sid = AsyncMock(return_value=notification)

        result = await handle_fax_status(mock_db, "FX123", "delivered", {"NumPages": "1"})

        assert result.delivery_status == DeliveryStatus.DELIVERED
        metadata = result.notification_metadata
        assert metadata["fax_status"] == "delivered"
        assert metadata["fax_status_details"] == {"NumPages": "1"}
        assert metadata["reason"] == "Missing signature"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_fax_falls_back_to_email(self, mock_db, mock_repo):
        notification = make_notification()
        application = make_application(id=notification.application_id)
        mock_repo.get_by_fax_sid = AsyncMock(return_value=notification)

        with (
            patch(f"{MODULE}.application_repository") as mock_apps,
            patch(f"{MODULE}.MedicalProviderNotifier") as notifier_cls,
        ):
            mock_apps.get_by_id = AsyncMock(return_value=application)
            notifier_cls.return_value.send_rejection_email = AsyncMock(return_value=True)

            result = await handle_fax_status(mock_db, "FX123", "no-answer")

        notifier_cls.return_value.send_rejection_email.assert_awaited_once_with(
            "Missing signature"
        )
        assert result.delivery_status == DeliveryStatus.DELIVERED
        assert result.notification_metadata["notification_methods"] == ["fax", "email"]
        assert result.notification_metadata["delivery_method"] == "email"
        assert result.notification_metadata["email_fallback_sent"] is True

    @pytest.mark.asyncio
    async def test_failed_fallback_without_provider_email(self, mock_db, mock_repo):
        notification = make_notification()
        application = make_application(medical_provider_email=None)
        mock_repo.get_by_fax_sid = AsyncMock(return_value=notification)

        with (
            patch(f"{MODULE}.application_repository") as mock_apps,
            patch(f"{MODULE}.MedicalProviderNotifier") as notifier_cls,
        ):
            mock_apps.get_by_id = AsyncMock(return_value=application)
            result = await handle_fax_status(mock_db, "FX123", "busy")

        notifier_cls.assert_not_called()
        assert result.delivery_status == DeliveryStatus.FAILED

    @pytest.mark.asyncio
    async def test_repeated_failure_does_not_resend(self, mock_db, mock_repo):
        notification = make_notification(delivery_status=DeliveryStatus.FAILED)
        mock_repo.get_by_fax_sid = AsyncMock(return_value=notification)

        with patch(f"{MODULE}.MedicalProviderNotifier") as notifier_cls:
            await handle_fax_status(mock_db, "FX123", "failed")

        notifier_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_after_email_fallback_sends_once(self, mock_db, mock_repo):
        notification = make_notification()
        application = make_application(id=notification.application_id)
        mock_repo.get_by_fax_sid = AsyncMock(return_value=notification)

        with (
            patch(f"{MODULE}.application_repository") as mock_apps,
            patch(f"{MODULE}.MedicalProviderNotifier") as notifier_cls,
        ):
            mock_apps.get_by_id = AsyncMock(return_value=application)
            send = notifier_cls.return_value.send_rejection_email = AsyncMock(return_value=True)

            await handle_fax_status(mock_db, "FX123", "failed")
            result = await handle_fax_status(mock_db, "FX123", "failed")

        assert send.await_count == 1
        assert result.delivery_status == DeliveryStatus.DELIVERED
        assert result.notification_metadata["delivery_method"] == "email"
        assert result.notification_metadata["fax_status"] == "failed"


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_other_users_notification(self, mock_db, mock_repo):
        mock_repo.get_by_id = AsyncMock(return_value=make_notification())

        with pytest.raises(NotificationNotFoundError):
            await mark_read(mock_db, uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_marks_own_notification(self, mock_db, mock_repo):
        notification = make_notification()
        mock_repo.get_by_id = AsyncMock(return_value=notification)
        mock_repo.mark_read = AsyncMock(return_value=notification)

        assert await mark_read(mock_db, notification.id, notification.recipient_id) is notification
