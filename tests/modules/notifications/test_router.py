"""
Tests for the Twilio fax status webhook.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.modules.notifications.test_service import make_notification
from vulcan.core.config import settings
from vulcan.core.database import get_db
from vulcan.core.webhooks import TWILIO_SIGNATURE_HEADER, compute_twilio_signature
from vulcan.modules.notifications.models import DeliveryStatus
from vulcan.modules.notifications.provider_notifier import fax_status_callback_url
from vulcan.modules.notifications.router import webhook_router

MODULE = "vulcan.modules.notifications.router"
URL = "/webhooks/twilio/fax-status"
AUTH_TOKEN = "twilio-test-token"


@pytest.fixture
def client(mock_db):
    app = FastAPI()
    app.include_router(webhook_router, prefix="/webhooks/twilio")

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


class TestFaxStatusPayload:
    @pytest.mark.parametrize(
        "form",
        [
            {"Status": "delivered"},
            {"FaxSid": "FX123"},
            {"FaxSid": "", "Status": "delivered"},
        ],
    )
    def test_missing_fields(self, client, form):
        with patch(f"{MODULE}.service") as mock_service:
            response = client.post(URL, data=form)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_PAYLOAD"
        mock_service.handle_fax_status.assert_not_called()

    def test_unknown_fax(self, client, mock_db):
        with patch(f"{MODULE}.service") as mock_service:
            mock_service.handle_fax_status = AsyncMock(return_value=None)
            response = client.post(URL, data={"FaxSid": "FX404", "Status": "delivered"})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "status": None,
            "error": "Notification not found",
        }

    def test_fax_status_alias_and_details(self, client, mock_db):
        notification = make_notification(delivery_status=DeliveryStatus.DELIVERED)
        with patch(f"{MODULE}.service") as mock_service:
            mock_service.handle_fax_status = AsyncMock(return_value=notification)
            response = client.post(
                URL,
                data={"FaxSid": "FX123", "FaxStatus": "delivered", "NumPages": "2", "Extra": "x"},
            )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["status"] == DeliveryStatus.DELIVERED
        mock_service.handle_fax_status.assert_awaited_once_with(
            mock_db, "FX123", "delivered", {"NumPages": "2"}
        )

    def test_handler_error(self, client):
        with patch(f"{MODULE}.service") as mock_service:
            mock_service.handle_fax_status = AsyncMock(side_effect=RuntimeError("db down"))
            response = client.post(URL, data={"FaxSid": "FX123", "Status": "failed"})

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "INTERNAL_ERROR"


class TestFaxStatusSignature:
    @pytest.fixture(autouse=True)
    def production(self):
        with (
            patch.object(settings, "python_env", "production"),
            patch.object(settings, "twilio_auth_token", AUTH_TOKEN),
        ):
            yield

    def test_missing_signature(self, client):
        with patch(f"{MODULE}.service") as mock_service:
            response = client.post(URL, data={"FaxSid": "FX123", "Status": "delivered"})

        assert response.status_code == 401
        mock_service.handle_fax_status.assert_not_called()

    def test_valid_signature(self, client):
        form = {"FaxSid": "FX123", "Status": "delivered"}
        signature = compute_twilio_signature(AUTH_TOKEN, fax_status_callback_url(), form)
        with patch(f"{MODULE}.service") as mock_service:
            mock_service.handle_fax_status = AsyncMock(return_value=make_notification())
            response = client.post(URL, data=form, headers={TWILIO_SIGNATURE_HEADER: signature})

        assert response.status_code == 200
        assert response.json()["success"] is True
