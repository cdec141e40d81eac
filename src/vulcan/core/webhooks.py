"""
Webhook Signature Verification

Two vendors call back into the API:

- DocuSeal signs the raw request body with HMAC-SHA256 using the shared
  webhook secret. The hex digest arrives in `X-Webhook-Signature` (or the
  vendor header `X-DocuSeal-Signature`), optionally prefixed with `sha256=`.
- Twilio signs the full callback URL followed by the POST parameters sorted
  by name, using HMAC-SHA1 with the account auth token, base64 encoded in
  `X-Twilio-Signature`.

All comparisons are constant time.
"""

import base64
import hashlib
import hmac
from collections.abc import Mapping

SIGNATURE_HEADERS = ("X-Webhook-Signature", "X-DocuSeal-Signature")
SIGNATURE_PREFIX = "sha256="
TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"


def compute_signature(secret: str, payload: bytes) -> str:
    """Return the hex HMAC-SHA256 of a payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def extract_signature(headers: Mapping[str, str]) -> str | None:
    """
    Pull the signature out of the request headers.

    The primary header wins when both are present. A `sha256=` prefix is
    stripped. Returns None when no signature header was sent.
    """
    for header in SIGNATURE_HEADERS:
        value = headers.get(header)
        if value:
            value = value.strip()
            if value.startswith(SIGNATURE_PREFIX):
                value = value[len(SIGNATURE_PREFIX) :]
            return value
    return None


def verify_signature(secret: str, payload: bytes, signature: str | None) -> bool:
    """Check a hex HMAC-SHA256 signature against the raw payload."""
    if not secret or not signature:
        return False
    expected = compute_signature(secret, payload)
    return hmac.compare_digest(expected, signature.lower())


def compute_twilio_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    """Return Twilio's base64 HMAC-SHA1 signature for a form-encoded callback."""
    data = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_twilio_signature(
    auth_token: str,
    url: str,
    params: Mapping[str, str],
    signature: str | None,
) -> bool:
    if not auth_token or not signature:
        return False
    expected = compute_twilio_signature(auth_token, url, params)
    return hmac.compare_digest(expected, signature)
