"""
SMS delivery.

Without Twilio credentials (development, tests) messages are only logged.
With credentials, gateway errors are logged and re-raised so the caller
can decide whether the SMS was essential.
"""

import logging
from typing import Any

from vulcan.core.gateways import GatewayError, TwilioClient

logger = logging.getLogger(__name__)


class SmsService:
    def __init__(self, client: TwilioClient | None = None):
        self.client = client or TwilioClient()

    async def send(self, to: str, body: str) -> dict[str, Any] | None:
        if not self.client.configured:
            logger.info(f"SMS (not sent, Twilio not configured) to {to}: {body}")
            return None

        try:
            response = await self.client.send_sms(to, body)
        except GatewayError as e:
            logger.error(f"Failed to send SMS to {to}: {e}")
            raise

        logger.info(f"SMS sent to {to}, sid: {response.get('sid')}")
        return response
