"""FastAPI routes for the Payments domain — intents, verification and webhooks."""

import structlog
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from identity.auth import Principal, current_principal
from ordering.order.coordinator import get_coordinator
from payments.api.schemas import CreateIntentRequest, IntentResponse, VerifyResponse, WebhookAck

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payment", tags=["payments"])


@payment_router.post("/intent", response_model=IntentResponse)
def create_intent(body: CreateIntentRequest, principal: Principal = Depends(current_principal)) -> IntentResponse:
    """Create a payment intent for the authenticated customer."""
    intent = get_coordinator().create_payment_intent(principal, body.amount, body.currency, body.metadata)
    return IntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        amount=intent.amount,
        currency=intent.currency,
        status=intent.status,
    )


@payment_router.get("/verify/{intent_id}", response_model=VerifyResponse)
def verify_payment(intent_id: str, principal: Principal = Depends(current_principal)) -> VerifyResponse:
    """Report the provider-side state of one of the caller's intents."""
    intent = get_coordinator().verify_payment(principal, intent_id)
    return VerifyResponse(
        payment_intent_id=intent.id,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency,
        metadata=intent.metadata,
    )


@payment_router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(request: Request, stripe_signature: str | None = Header(default=None)) -> WebhookAck:
    """Provider callback. Authenticated by signature over the raw body, not by bearer token."""
    raw_body = await request.body()
    outcome = await run_in_threadpool(get_coordinator().reconcile_webhook, raw_body, stripe_signature)
    logger.info("webhook_processed", event_type=outcome.event_type, action=outcome.action, order_id=outcome.order_id)
    return WebhookAck()
