"""
Vendor Gateway Clients

Thin async HTTP clients (httpx) for the external services the program relies
on. They only shape requests and normalise responses; delivery, retries and
signing are the vendors' job.

- DocuSealClient: creates e-signature submissions for medical certification
- TwilioClient: SMS, Verify (one-time codes) and Fax
- download_document: fetches a vendor-hosted file (signed PDFs)
"""

import logging
from typing import Any

import httpx

from vulcan.core.config import settings

logger = logging.getLogger(__name__)

DOCUMENT_DOWNLOAD_TIMEOUT_SECONDS = 30.0
DEFAULT_TIMEOUT_SECONDS = 15.0

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
TWILIO_VERIFY_BASE = "https://verify.twilio.com/v2"
TWILIO_FAX_BASE = "https://fax.twilio.com/v1"


class GatewayError(Exception):
    """
    Raised when a vendor API call fails.

    Attributes:
        message: Human readable description
        status_code: HTTP status returned by the vendor (None on transport errors)
        code: Vendor specific error code when the response carried one
    """

    def __init__(self, message: str, status_code: int | None = None, code: int | None = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def _error_from_response(vendor: str, response: httpx.Response) -> GatewayError:
    code = None
    message = response.text
    try:
        body = response.json()
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or body.get("error") or message
    except ValueError:
        pass
    return GatewayError(f"{vendor} API error ({response.status_code}): {message}", response.status_code, code)


class DocuSealClient:
    """Client for the DocuSeal submissions API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key or settings.docuseal_api_key
        self.base_url = (base_url or settings.docuseal_base_url).rstrip("/")
        self.timeout = timeout

    async def create_submission(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create a submission and return the submission id and first submitter id.

        DocuSeal answers with a list of submitters (each carrying
        `submission_id`) or, on some deployments, a submission object with a
        `submitters` array. Both shapes are normalised to
        {"id": ..., "submitters": [...]}.
        """
        if not self.api_key:
            raise GatewayError("DocuSeal API key is not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/submissions",
                    json=payload,
                    headers={"X-Auth-Token": self.api_key},
                )
            except httpx.HTTPError as e:
                raise GatewayError(f"DocuSeal request failed: {e}") from e

        if response.status_code >= 400:
            raise _error_from_response("DocuSeal", response)

        body = response.json()
        if isinstance(body, list):
            if not body:
                raise GatewayError("DocuSeal returned no submitters")
            return {"id": body[0].get("submission_id"), "submitters": body}
        return body


class TwilioClient:
    """Client for Twilio Messaging, Verify and Fax REST APIs."""

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    async def _post(self, url: str, data: dict[str, str]) -> dict[str, Any]:
        if not self.configured:
            raise GatewayError("Twilio credentials are not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url, data=data, auth=(self.account_sid, self.auth_token)
                )
            except httpx.HTTPError as e:
                raise GatewayError(f"Twilio request failed: {e}") from e

        if response.status_code >= 400:
            raise _error_from_response("Twilio", response)
        return response.json()

    async def send_sms(self, to: str, body: str, from_number: str | None = None) -> dict[str, Any]:
        return await self._post(
            f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json",
            {"To": to, "From": from_number or settings.twilio_sms_from or "", "Body": body},
        )

    async def send_fax(
        self,
        to: str,
        media_url: str,
        status_callback: str | None = None,
        from_number: str | None = None,
    ) -> dict[str, Any]:
        data = {
            "To": to,
            "From": from_number or settings.twilio_fax_from or "",
            "MediaUrl": media_url,
        }
        if status_callback:
            data["StatusCallback"] = status_callback
        return await self._post(f"{TWILIO_FAX_BASE}/Faxes", data)

    async def start_verification(self, service_sid: str, to: str, channel: str = "sms") -> dict[str, Any]:
        return await self._post(
            f"{TWILIO_VERIFY_BASE}/Services/{service_sid}/Verifications",
            {"To": to, "Channel": channel},
        )

    async def check_verification(self, service_sid: str, to: str, code: str) -> dict[str, Any]:
        return await self._post(
            f"{TWILIO_VERIFY_BASE}/Services/{service_sid}/VerificationCheck",
            {"To": to, "Code": code},
        )


async def download_document(
    url: str, timeout: float = DOCUMENT_DOWNLOAD_TIMEOUT_SECONDS
) -> httpx.Response:
    """
    GET a vendor hosted document.

    Returns the response without raising on HTTP error status; callers
    decide how to record non-2xx outcomes. Transport errors propagate.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        return await client.get(url)
