"""Configurable fake payment gateway for development and testing.

This adapter simulates the payment provider without any external calls.
Intents live in memory and can be pushed to any status, refunds can be
configured to fail, and webhooks are signed with the same
``t=<timestamp>,v1=<hmac>`` scheme the real provider uses, so the webhook
route is exercised end to end.
"""

import hashlib
import hmac
import json
import time
from dataclasses import replace
from uuid import uuid4

from payments.gateway.port import (
    DEFAULT_REFUND_REASON,
    PaymentGateway,
    PaymentIntent,
    RefundResult,
    WebhookEvent,
)
from shared.errors import PaymentProviderError, SignatureInvalidError


def _signature(secret: str, timestamp: int, raw_body: bytes) -> str:
    signed = f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntent] = {}
        self.refunds: list[RefundResult] = []
        self.calls: list[dict] = []
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.client_error: bool = True

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Card declined",
        client_error: bool = True,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.client_error = client_error

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason, client_error=self.client_error)

    # -------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------
    def add_intent(
        self,
        intent_id: str,
        amount: int,
        status: str = "succeeded",
        metadata: dict | None = None,
        currency: str = "usd",
        latest_charge: str | None = "auto",
    ) -> PaymentIntent:
        if latest_charge == "auto":
            latest_charge = f"ch_{intent_id}" if status == "succeeded" else None
        intent = PaymentIntent(
            id=intent_id,
            status=status,
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata or {}),
            latest_charge=latest_charge,
        )
        self.intents[intent_id] = intent
        return intent

    def complete(self, intent_id: str) -> PaymentIntent:
        """Simulate the browser confirming the payment."""
        intent = replace(self.intents[intent_id], status="succeeded", latest_charge=f"ch_{intent_id}")
        self.intents[intent_id] = intent
        return intent

    @staticmethod
    def sign(raw_body: bytes, secret: str, timestamp: int | None = None) -> str:
        timestamp = int(time.time()) if timestamp is None else timestamp
        return f"t={timestamp},v1={_signature(secret, timestamp, raw_body)}"

    # -------------------------------------------------------------------
    # Port
    # -------------------------------------------------------------------
    def create_intent(self, amount_minor: int, currency: str, metadata: dict) -> PaymentIntent:
        self.calls.append(
            {"method": "create_intent", "amount": amount_minor, "currency": currency, "metadata": metadata}
        )
        self._fail_if_configured()
        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        return self.add_intent(intent_id, amount_minor, "requires_payment_method", metadata, currency)

    def get_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "get_intent", "intent_id": intent_id})
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentProviderError(f"No such payment_intent: '{intent_id}'", client_error=True)
        return intent

    def refund(
        self,
        charge_id: str,
        amount_minor: int | None = None,
        reason: str = DEFAULT_REFUND_REASON,
    ) -> RefundResult:
        self.calls.append({"method": "refund", "charge_id": charge_id, "amount": amount_minor, "reason": reason})
        self._fail_if_configured()
        charged = next((i.amount for i in self.intents.values() if i.latest_charge == charge_id), 0)
        result = RefundResult(
            id=f"re_fake_{uuid4().hex[:12]}",
            status="succeeded",
            amount=amount_minor if amount_minor is not None else charged,
            charge_id=charge_id,
        )
        self.refunds.append(result)
        return result

    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        self.calls.append({"method": "verify_webhook"})
        parts = dict(
            part.split("=", 1) for part in (signature_header or "").split(",") if "=" in part
        )
        timestamp, provided = parts.get("t"), parts.get("v1")
        if not timestamp or not provided or not timestamp.isdigit():
            raise SignatureInvalidError("Unable to extract timestamp and signatures from header")
        expected = _signature(secret, int(timestamp), raw_body)
        if not hmac.compare_digest(expected, provided):
            raise SignatureInvalidError()

        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise SignatureInvalidError("Invalid payload") from exc
        return WebhookEvent(
            id=payload.get("id", ""),
            type=payload.get("type", ""),
            data=(payload.get("data") or {}).get("object") or {},
        )

    def reset(self) -> None:
        self.intents.clear()
        self.refunds.clear()
        self.calls.clear()
        self.should_succeed = True
        self.failure_reason = "Card declined"
        self.client_error = True
