"""Stripe payment gateway adapter.

Wraps the stripe-python SDK. The HTTP transport (with its hard timeout) is
installed on first use under a lock, so concurrent first calls configure
it exactly once. Webhook bodies are verified with
``stripe.Webhook.construct_event`` over the raw bytes before anything
reads them.
"""

import json
import threading

import stripe
import structlog

from payments.gateway.port import (
    DEFAULT_REFUND_REASON,
    PaymentGateway,
    PaymentIntent,
    RefundResult,
    WebhookEvent,
)
from shared.config import PAYMENT_TIMEOUT
from shared.errors import PaymentProviderError, ServiceNotConfiguredError, SignatureInvalidError

logger = structlog.get_logger(__name__)

_transport_lock = threading.Lock()
_transport_ready = False


def _ensure_transport(timeout: float) -> None:
    global _transport_ready
    if _transport_ready:
        return
    with _transport_lock:
        if not _transport_ready:
            stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
            stripe.max_network_retries = 1
            _transport_ready = True


def _plain(value) -> dict:
    if value is None:
        return {}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)


def _translate(exc: stripe.StripeError) -> PaymentProviderError:
    client_error = isinstance(exc, (stripe.CardError, stripe.InvalidRequestError))
    message = getattr(exc, "user_message", None) or str(exc)
    return PaymentProviderError(message, client_error=client_error, provider_code=getattr(exc, "code", None))


def _to_intent(intent) -> PaymentIntent:
    charge = intent.latest_charge
    if charge is not None and not isinstance(charge, str):
        charge = charge.id
    return PaymentIntent(
        id=intent.id,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency,
        client_secret=intent.client_secret,
        metadata=_plain(intent.metadata),
        latest_charge=charge,
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str | None, timeout: float = PAYMENT_TIMEOUT) -> None:
        self.api_key = api_key
        self.timeout = timeout

    def _key(self) -> str:
        if not self.api_key:
            raise ServiceNotConfiguredError("Payment provider")
        _ensure_transport(self.timeout)
        return self.api_key

    def create_intent(self, amount_minor: int, currency: str, metadata: dict) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._key(),
                amount=amount_minor,
                currency=currency,
                metadata={k: str(v) for k, v in metadata.items() if v is not None},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as exc:
            logger.warning("stripe_create_intent_failed", error=str(exc), code=getattr(exc, "code", None))
            raise _translate(exc) from exc
        return _to_intent(intent)

    def get_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._key())
        except stripe.StripeError as exc:
            logger.warning("stripe_retrieve_intent_failed", intent_id=intent_id, error=str(exc))
            raise _translate(exc) from exc
        return _to_intent(intent)

    def refund(
        self,
        charge_id: str,
        amount_minor: int | None = None,
        reason: str = DEFAULT_REFUND_REASON,
    ) -> RefundResult:
        params = {"charge": charge_id, "reason": reason}
        if amount_minor is not None:
            params["amount"] = amount_minor
        try:
            refund = stripe.Refund.create(api_key=self._key(), **params)
        except stripe.StripeError as exc:
            logger.warning("stripe_refund_failed", charge_id=charge_id, error=str(exc))
            raise _translate(exc) from exc
        return RefundResult(id=refund.id, status=refund.status, amount=refund.amount, charge_id=charge_id)

    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        try:
            stripe.Webhook.construct_event(raw_body, signature_header, secret)
        except stripe.SignatureVerificationError as exc:
            raise SignatureInvalidError() from exc
        except ValueError as exc:
            raise SignatureInvalidError("Invalid payload") from exc

        payload = json.loads(raw_body)
        return WebhookEvent(
            id=payload.get("id", ""),
            type=payload.get("type", ""),
            data=(payload.get("data") or {}).get("object") or {},
        )
