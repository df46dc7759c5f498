"""Brevo email adapter — transactional email over the Brevo v3 SMTP API."""

import httpx
import structlog

from notifications.channel.email_port import DeliveryReceipt, EmailMessage, EmailPort
from shared.config import EMAIL_TIMEOUT, EmailSettings
from shared.errors import ServiceNotConfiguredError

logger = structlog.get_logger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoEmailAdapter(EmailPort):
    def __init__(self, settings: EmailSettings, transport: httpx.BaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _payload(self, message: EmailMessage) -> dict:
        sender = {"name": self.settings.sender_name, "email": self.settings.sender_email}
        payload = {
            "sender": sender,
            "to": [{"email": message.to}],
            "subject": message.subject,
            "textContent": message.body,
            "replyTo": sender,
            "headers": {"List-Unsubscribe": f"<mailto:{self.settings.sender_email}?subject=unsubscribe>"},
        }
        if message.html_body:
            payload["htmlContent"] = message.html_body
        if message.template:
            payload["tags"] = [message.template]
        return payload

    def send(self, message: EmailMessage) -> DeliveryReceipt:
        if not self.settings.api_key or not self.settings.sender_email:
            raise ServiceNotConfiguredError("Email provider")

        try:
            with httpx.Client(timeout=EMAIL_TIMEOUT, transport=self._transport) as client:
                response = client.post(
                    BREVO_API_URL,
                    json=self._payload(message),
                    headers={"api-key": self.settings.api_key, "accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            return DeliveryReceipt(status="failed", error=f"Brevo unreachable: {exc}")

        if response.is_error:
            return DeliveryReceipt(status="failed", error=f"Brevo API error: {response.status_code} - {response.text}")
        return DeliveryReceipt(status="sent", message_id=response.json().get("messageId"))
