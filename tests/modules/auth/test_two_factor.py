"""
Unit tests for the two-factor helpers.
"""

from unittest.mock import AsyncMock, patch

import pyotp
import pytest

from vulcan.core.gateways import GatewayError
from vulcan.modules.auth import two_factor

MODULE = "vulcan.modules.auth.two_factor"


class TestTotp:
    def test_current_code_verifies(self):
        secret = two_factor.generate_totp_secret()
        assert two_factor.verify_totp(secret, pyotp.TOTP(secret).now())

    def test_wrong_code_rejected(self):
        secret = two_factor.generate_totp_secret()
        code = pyotp.TOTP(secret).now()
        wrong = f"{(int(code) + 500000) % 1000000:06d}"
        assert not two_factor.verify_totp(secret, wrong)

    def test_missing_secret_or_code(self):
        assert not two_factor.verify_totp(None, "123456")
        assert not two_factor.verify_totp("JBSWY3DPEHPK3PXP", "")

    def test_provisioning_uri_names_issuer(self):
        uri = two_factor.provisioning_uri("JBSWY3DPEHPK3PXP", "ada@example.org")
        assert uri.startswith("otpauth://totp/")
        assert "issuer=MAT%20Vulcan" in uri


class TestPhone:
    def test_valid_format(self):
        assert two_factor.valid_phone_format("410-555-1234")
        assert two_factor.valid_phone_format(" 410-555-1234 ")
        assert not two_factor.valid_phone_format("4105551234")
        assert not two_factor.valid_phone_format("(410) 555-1234")

    def test_normalize_us_number(self):
        assert two_factor.normalize_phone("410-555-1234") == "+14105551234"

    def test_normalize_keeps_country_code(self):
        assert two_factor.normalize_phone("+44 20 7946 0958") == "+442079460958"

    def test_normalize_eleven_digits(self):
        assert two_factor.normalize_phone("1 410 555 1234") == "+14105551234"


class TestSmsTestMode:
    """The test environment accepts the fixed code without calling Twilio."""

    def test_enabled_in_tests(self):
        assert two_factor.sms_test_mode()

    @pytest.mark.asyncio
    async def test_send_does_not_call_twilio(self):
        client = AsyncMock()
        result = await two_factor.send_sms_code("410-555-1234", client)

        assert result == two_factor.SmsVerificationResult(success=True, status="pending")
        client.start_verification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fixed_code_approved(self):
        result = await two_factor.check_sms_code("410-555-1234", " 123456 ")
        assert result.success
        assert result.status == "approved"

    @pytest.mark.asyncio
    async def test_other_code_invalid(self):
        result = await two_factor.check_sms_code("410-555-1234", "654321")
        assert result.status == "invalid"


class TestTwilioVerify:
    @pytest.fixture(autouse=True)
    def live_mode(self):
        with patch(f"{MODULE}.sms_test_mode", return_value=False):
            yield

    @pytest.mark.asyncio
    async def test_approved(self):
        client = AsyncMock()
        client.check_verification = AsyncMock(return_value={"status": "approved"})

        result = await two_factor.check_sms_code("410-555-1234", "111222", client)

        assert result.success
        assert client.check_verification.call_args.args[1:] == ("+14105551234", "111222")

    @pytest.mark.asyncio
    async def test_pending_is_invalid(self):
        client = AsyncMock()
        client.check_verification = AsyncMock(return_value={"status": "pending"})

        result = await two_factor.check_sms_code("410-555-1234", "111222", client)
        assert result.status == "invalid"

    @pytest.mark.asyncio
    async def test_expired_error_code(self):
        client = AsyncMock()
        client.check_verification = AsyncMock(
            side_effect=GatewayError("Verification expired", status_code=404, code=60200)
        )

        result = await two_factor.check_sms_code("410-555-1234", "111222", client)
        assert result.status == "expired"

    @pytest.mark.asyncio
    async def test_max_attempts_error_code(self):
        client = AsyncMock()
        client.check_verification = AsyncMock(
            side_effect=GatewayError("Max check attempts reached", status_code=429, code=60202)
        )

        result = await two_factor.check_sms_code("410-555-1234", "111222", client)
        assert result.status == "max_attempts_reached"

    @pytest.mark.asyncio
    async def test_other_gateway_error(self):
        client = AsyncMock()
        client.check_verification = AsyncMock(side_effect=GatewayError("timeout"))

        result = await two_factor.check_sms_code("410-555-1234", "111222", client)
        assert result == two_factor.SmsVerificationResult(success=False, status="error")

    @pytest.mark.asyncio
    async def test_send_failure(self):
        client = AsyncMock()
        client.start_verification = AsyncMock(side_effect=GatewayError("bad number", 400))

        result = await two_factor.send_sms_code("410-555-1234", client)
        assert not result.success
        assert result.status == "error"
