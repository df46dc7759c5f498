"""FastAPI routes for the Ordering domain — customer orders and admin order management."""

from fastapi import APIRouter, Depends

from fulfillment.carrier.port import Address, LabelOptions
from identity.auth import Principal, current_principal, require_admin
from ordering.api.schemas import (
    CreateOrderRequest,
    GenerateLabelRequest,
    RecordTrackingRequest,
    RefundRequest,
    UpdateStatusRequest,
)
from ordering.order.coordinator import get_coordinator


def _address(schema) -> Address | None:
    if schema is None:
        return None
    return Address.from_dict(schema.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Order Router (customers)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
def create_order(body: CreateOrderRequest, principal: Principal = Depends(current_principal)) -> dict:
    """Place an order for the authenticated customer, reserving stock for every line."""
    result = get_coordinator().create_order(
        principal,
        [line.model_dump() for line in body.cart_list],
        body.amount_paid,
        payment_intent_id=body.payment_intent_id,
        payment_status=body.payment_status,
        shipping_address=body.shipping_address.model_dump(exclude_none=True) if body.shipping_address else None,
    )
    return result.order.to_public()


@order_router.get("")
def list_my_orders(principal: Principal = Depends(current_principal)) -> list[dict]:
    """The caller's own orders, newest first. Admins see only their own here too."""
    return [order.to_public() for order in get_coordinator().list_orders_for_user(principal.id)]


# ---------------------------------------------------------------------------
# Admin Order Router
# ---------------------------------------------------------------------------
admin_order_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_order_router.get("")
def list_orders(status: str | None = None, _: Principal = Depends(require_admin)) -> list[dict]:
    return [order.to_public() for order in get_coordinator().list_orders(status)]


@admin_order_router.get("/{order_id}")
def get_order(order_id: str, _: Principal = Depends(require_admin)) -> dict:
    return get_coordinator().get_order(order_id).to_public()


@admin_order_router.put("/{order_id}/status")
def update_status(order_id: str, body: UpdateStatusRequest, admin: Principal = Depends(require_admin)) -> dict:
    """Move an order along its status machine. Cancelling restores stock."""
    result = get_coordinator().update_order_status(order_id, body.status, actor=admin)
    return {
        "order": result.order.to_public(),
        "previousStatus": result.previous_status.value,
        "stockRestored": [o.to_dict() for o in result.stock_restorations],
    }


@admin_order_router.post("/{order_id}/tracking")
def record_tracking(order_id: str, body: RecordTrackingRequest, admin: Principal = Depends(require_admin)) -> dict:
    result = get_coordinator().record_tracking(
        order_id,
        body.tracking_number,
        carrier=body.tracking_carrier,
        label_url=body.label_url,
        tracking_url=body.tracking_url,
        status=body.status,
        actor=admin,
    )
    return result.order.to_public()


@admin_order_router.post("/{order_id}/generate-label")
def generate_label(
    order_id: str,
    body: GenerateLabelRequest | None = None,
    admin: Principal = Depends(require_admin),
) -> dict:
    """Buy a shipping label and mark the order shipped."""
    body = body or GenerateLabelRequest()
    options = LabelOptions(
        carrier=body.carrier,
        service=body.service,
        length=body.length,
        width=body.width,
        height=body.height,
        weight=body.weight,
        from_address=_address(body.from_address),
        to_address=_address(body.to_address),
    )
    result = get_coordinator().generate_shipping_label(order_id, options, actor=admin)
    return {
        "order": result.order.to_public(),
        "trackingNumber": result.label.tracking_number,
        "carrier": result.label.carrier,
        "labelUrl": result.label.label_url,
        "trackingUrl": result.label.tracking_url,
        "transactionId": result.label.transaction_id,
    }


@admin_order_router.post("/{order_id}/refund")
def refund_order(order_id: str, body: RefundRequest | None = None, admin: Principal = Depends(require_admin)) -> dict:
    """Refund through the payment provider, then restore stock unless the order was already cancelled."""
    body = body or RefundRequest()
    outcome = get_coordinator().refund_order(order_id, body.amount, body.reason, actor=admin)
    return {
        "order": outcome.order.to_public(),
        "refundId": outcome.refund.id,
        "refundAmount": outcome.refund.amount,
        "refundStatus": outcome.refund.status,
        "stockRestored": outcome.stock_restored,
    }
