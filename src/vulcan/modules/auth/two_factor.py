"""
Two-Factor Authentication

Two second factors are supported:

- TOTP (authenticator apps) via pyotp
- SMS one-time codes via Twilio Verify

In the test environment, and in development when Twilio Verify is not
configured, SMS codes are not sent and the fixed code 123456 is accepted.
"""

import logging
import re
from dataclasses import dataclass

import pyotp

from vulcan.core.config import settings
from vulcan.core.gateways import GatewayError, TwilioClient

logger = logging.getLogger(__name__)

TEST_SMS_CODE = "123456"

METHOD_TOTP = "totp"
METHOD_SMS = "sms"

PHONE_FORMAT = re.compile(r"^\d{3}-\d{3}-\d{4}$")

# Twilio Verify error codes with their own outcome
VERIFY_ERROR_STATUSES = {
    60200: "expired",
    60202: "max_attempts_reached",
}


@dataclass(frozen=True)
class SmsVerificationResult:
    success: bool
    status: str


# ============================================
# TOTP
# ============================================


def generate_totp_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.totp_issuer)


def verify_totp(secret: str | None, code: str) -> bool:
    if not secret or not code:
        return False
    # Allow one step of clock drift either way
    return pyotp.TOTP(secret).verify(code.strip(), valid_window=1)


# ============================================
# SMS
# ============================================


def valid_phone_format(phone: str) -> bool:
    return bool(PHONE_FORMAT.match(phone.strip()))


def normalize_phone(phone: str) -> str:
    """
    Convert a US phone number to E.164.

    "410-555-1234" -> "+14105551234". Numbers that already start with "+"
    keep their country code.
    """
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if phone.startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def sms_test_mode() -> bool:
    if settings.is_test:
        return True
    verify_configured = bool(
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and settings.twilio_verify_service_sid
    )
    return settings.is_development and not verify_configured


async def send_sms_code(phone: str, client: TwilioClient | None = None) -> SmsVerificationResult:
    """Start a Twilio Verify SMS verification for the phone number."""
    to = normalize_phone(phone)
    if sms_test_mode():
        logger.info(f"SMS 2FA test mode: not sending a code to {to}")
        return SmsVerificationResult(success=True, status="pending")

    client = client or TwilioClient()
    try:
        response = await client.start_verification(settings.twilio_verify_service_sid, to)
    except GatewayError as e:
        logger.error(f"Failed to send verification code to {to}: {e}")
        return SmsVerificationResult(success=False, status="error")

    return SmsVerificationResult(success=True, status=response.get("status", "pending"))


async def check_sms_code(
    phone: str, code: str, client: TwilioClient | None = None
) -> SmsVerificationResult:
    """
    Check a code the user received by SMS.

    Statuses: approved, invalid, expired, max_attempts_reached, error.
    """
    code = (code or "").strip()
    if sms_test_mode():
        if code == TEST_SMS_CODE:
            return SmsVerificationResult(success=True, status="approved")
        return SmsVerificationResult(success=False, status="invalid")

    to = normalize_phone(phone)
    client = client or TwilioClient()
    try:
        response = await client.check_verification(settings.twilio_verify_service_sid, to, code)
    except GatewayError as e:
        status = VERIFY_ERROR_STATUSES.get(e.code)
        if status:
            return SmsVerificationResult(success=False, status=status)
        logger.error(f"Verification check failed for {to}: {e}")
        return SmsVerificationResult(success=False, status="error")

    if response.get("status") == "approved":
        return SmsVerificationResult(success=True, status="approved")
    return SmsVerificationResult(success=False, status="invalid")


SMS_FAILURE_MESSAGES = {
    "invalid": "The verification code is incorrect.",
    "expired": "The verification code has expired. Request a new code.",
    "max_attempts_reached": "Too many incorrect attempts. Request a new code.",
    "error": "The verification code could not be checked. Please try again.",
}
