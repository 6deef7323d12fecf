"""
Outbound email and SMS delivery.

Messages go through a gateway that fronts the actual email/SMS providers.
Without a configured gateway, messages are only logged.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import (
    EMAIL_FROM_ADDRESS,
    NOTIFICATION_GATEWAY_TOKEN,
    NOTIFICATION_GATEWAY_URL,
    NOTIFICATION_TIMEOUT_SECONDS,
)
from ..shared.errors import ValidationError
from ..shared.validators import validate_au_phone
from ..utils.sanitization import text_to_html

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    delivery_id: Optional[str] = None
    error: Optional[str] = None


class NotificationSender(ABC):
    """Recipient + rendered message in, delivery id or failure out"""

    @abstractmethod
    def send_email(self, to: str, subject: str, body: str) -> DeliveryResult:
        """Deliver an email. Failures are returned, not raised."""

    @abstractmethod
    def send_sms(self, to: str, body: str) -> DeliveryResult:
        """Deliver an SMS. Failures are returned, not raised."""


class LoggingNotificationSender(NotificationSender):
    """Logs messages instead of sending them. Used when no gateway is configured."""

    def __init__(self):
        self.sent: list[dict] = []

    def send_email(self, to: str, subject: str, body: str) -> DeliveryResult:
        delivery_id = f"log-email-{len(self.sent) + 1}"
        self.sent.append({"channel": "email", "to": to, "subject": subject, "body": body})
        logger.info(f"📧 [no gateway] Email to {to}: {subject}")
        return DeliveryResult(success=True, delivery_id=delivery_id)

    def send_sms(self, to: str, body: str) -> DeliveryResult:
        delivery_id = f"log-sms-{len(self.sent) + 1}"
        self.sent.append({"channel": "sms", "to": to, "body": body})
        logger.info(f"📱 [no gateway] SMS to {to}: {body[:60]}")
        return DeliveryResult(success=True, delivery_id=delivery_id)


class HttpNotificationSender(NotificationSender):
    """Posts messages to the notification gateway"""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _post(self, path: str, payload: dict, channel: str, to: str) -> DeliveryResult:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = self._client.post(url, json=payload, headers=self._headers())
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"❌ Notification gateway error sending {channel} to {to}: {e}")
            return DeliveryResult(success=False, error=str(e))

        if response.status_code not in (200, 201, 202):
            try:
                error_message = response.json().get("message", response.text)
            except ValueError:
                error_message = response.text
            logger.error(
                f"❌ Notification gateway rejected {channel} to {to} "
                f"[{response.status_code}]: {error_message}"
            )
            return DeliveryResult(success=False, error=f"[{response.status_code}] {error_message}")

        try:
            delivery_id = response.json().get("id")
        except ValueError:
            delivery_id = None
        logger.info(f"✅ {channel.upper()} sent to {to} (id: {delivery_id})")
        return DeliveryResult(success=True, delivery_id=delivery_id)

    def send_email(self, to: str, subject: str, body: str) -> DeliveryResult:
        payload = {
            "from": EMAIL_FROM_ADDRESS,
            "to": to,
            "subject": subject,
            "text": body,
            "html": text_to_html(body),
        }
        return self._post("/email", payload, "email", to)

    def send_sms(self, to: str, body: str) -> DeliveryResult:
        try:
            phone = validate_au_phone(to)
        except ValidationError as e:
            logger.warning(f"⚠️ Invalid phone number for SMS: {to}")
            return DeliveryResult(success=False, error=str(e))
        return self._post("/sms", {"to": phone, "body": body}, "sms", phone)


def get_notification_sender() -> NotificationSender:
    if NOTIFICATION_GATEWAY_URL:
        return HttpNotificationSender(NOTIFICATION_GATEWAY_URL, NOTIFICATION_GATEWAY_TOKEN)
    logger.warning("⚠️ NOTIFICATION_GATEWAY_URL not set - messages will only be logged")
    return LoggingNotificationSender()
