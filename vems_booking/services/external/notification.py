"""
Notification service: SMS delivery of one-time codes.
"""

import logging
from typing import Optional

from ...config import ExternalAPIConfig, get_settings
from ...core.exceptions import ExternalAPIError, NotificationAPIError
from ...utils.phone import PhoneNumberParser
from .client import ApiClient

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends SMS messages through the configured gateway.

    With ``sms_backend="log"`` messages are only logged (masked), which is
    the default for local and demo setups.
    """

    def __init__(self, config: Optional[ExternalAPIConfig] = None):
        self.config = config or ExternalAPIConfig.from_settings(get_settings())
        self.client = ApiClient(
            self.config.sms_base_url or "",
            timeout=self.config.sms_timeout,
            headers=self.config.sms_headers(),
        )

    async def send(self, phone: str, message: str) -> None:
        """Send ``message`` to ``phone``; raise NotificationAPIError on failure."""
        to = PhoneNumberParser.normalize_to_international(phone)
        if not to:
            raise NotificationAPIError(f"Invalid recipient number {PhoneNumberParser.mask(phone)}")

        if self.config.sms_backend == "log":
            logger.info("SMS to %s (log backend, %d chars)", PhoneNumberParser.mask(to), len(message))
            return

        if not self.config.is_sms_configured():
            raise NotificationAPIError("SMS gateway is not configured")
        url = self.config.get_sms_url()

        payload = {"to": to, "message": message, "sender_id": self.config.sms_sender_id}
        try:
            result = await self.client._make_request("POST", url, json=payload)
        except ExternalAPIError as e:
            raise NotificationAPIError(str(e)) from e

        if isinstance(result, dict) and result.get("status") is False:
            raise NotificationAPIError(f"Gateway rejected message: {result.get('message')}")
        logger.info("SMS to %s accepted by gateway", PhoneNumberParser.mask(to))
