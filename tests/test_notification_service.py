"""
Tests for outbound email and SMS delivery
"""

import httpx
import pytest

from app.services.notification_service import (
    DeliveryResult,
    HttpNotificationSender,
    LoggingNotificationSender,
    NotificationSender,
)


class TestSenderContract:
    def test_base_sender_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            NotificationSender()

    def test_sender_missing_a_channel_cannot_be_instantiated(self):
        class EmailOnlySender(NotificationSender):
            def send_email(self, to, subject, body):
                return DeliveryResult(success=True)

        with pytest.raises(TypeError):
            EmailOnlySender()

    def test_logging_sender_records_messages(self):
        sender = LoggingNotificationSender()

        result = sender.send_sms("+61412345678", "Your tradie is on the way")

        assert result.success and result.delivery_id == "log-sms-1"
        assert sender.sent == [{"channel": "sms", "to": "+61412345678", "body": "Your tradie is on the way"}]


def gateway(handler):
    return HttpNotificationSender(
        "https://gateway.test/", token="secret", client=httpx.Client(transport=httpx.MockTransport(handler))
    )


class TestHttpSender:
    def test_email_is_posted_with_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(202, json={"id": "msg_1"})

        result = gateway(handler).send_email("karen@example.com", "Quote Q-1", "Hi Karen")

        assert result == DeliveryResult(success=True, delivery_id="msg_1")
        assert str(seen[0].url) == "https://gateway.test/email"
        assert seen[0].headers["Authorization"] == "Bearer secret"

    def test_gateway_rejection_is_returned_not_raised(self):
        def handler(request):
            return httpx.Response(500, json={"message": "provider down"})

        result = gateway(handler).send_email("karen@example.com", "Quote Q-1", "Hi Karen")

        assert result.success is False
        assert result.error == "[500] provider down"

    def test_invalid_phone_never_reaches_gateway(self):
        def handler(request):
            raise AssertionError("gateway should not be called")

        result = gateway(handler).send_sms("not a phone", "Hi")

        assert result.success is False
