"""Order record — status machine, line items and persistence mapping.

State Machine:
    pending → processing → shipped → delivered
    pending/processing → cancelled
    any paid order → refunded (only through the refund flow)

Line items are snapshots taken at checkout: later product edits never
rewrite historical orders, and item quantities never change after
creation. Webhook-created placeholder orders are the only orders allowed
to carry no items.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import NAMESPACE_URL, uuid4, uuid5

from protean.exceptions import ValidationError

from shared.clock import utc_now
from shared.money import CENT, display, to_decimal, to_minor


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


# State machine transition map for admin status updates.
# REFUNDED is absent on purpose: it is only reachable through the refund flow.
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal (refund aside)
    OrderStatus.REFUNDED: set(),  # Terminal
}

# States that require a tracking number on the order
_TRACKED_STATES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}

# Amount paid may differ from the line total by at most one cent
AMOUNT_TOLERANCE = CENT


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(str(value).lower())
    except ValueError as exc:
        valid = ", ".join(s.value for s in OrderStatus)
        raise ValidationError({"status": [f"Invalid status '{value}'. Must be one of: {valid}"]}) from exc


def placeholder_order_id(payment_intent_id: str) -> str:
    """Deterministic order id for the webhook placeholder of a payment intent."""
    return str(uuid5(NAMESPACE_URL, f"payment-intent:{payment_intent_id}"))


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LineItem:
    product_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_cart_line(cls, line: dict, position: int) -> "LineItem":
        product_id = line.get("id") or line.get("productId")
        quantity = line.get("quantity")
        if not product_id:
            raise ValidationError({f"cartList[{position}].id": ["Product id is required"]})
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({f"cartList[{position}].quantity": ["Quantity must be a positive integer"]})
        price = to_decimal(line.get("price", 0), f"cartList[{position}].price")
        if price < 0:
            raise ValidationError({f"cartList[{position}].price": ["Price cannot be negative"]})
        return cls(
            product_id=str(product_id),
            name=line.get("name") or line.get("productName") or "Product",
            price=price,
            quantity=quantity,
        )

    def to_item(self) -> dict:
        return {"id": self.product_id, "name": self.name, "price": self.price, "quantity": self.quantity}

    @classmethod
    def from_item(cls, item: dict) -> "LineItem":
        return cls(
            product_id=item["id"],
            name=item.get("name", "Product"),
            price=Decimal(str(item.get("price", 0))),
            quantity=int(item["quantity"]),
        )


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    items: tuple[LineItem, ...]
    amount_paid: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_intent_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    shipping_address: dict | None = None
    tracking_number: str | None = None
    tracking_carrier: str | None = None
    tracking_url: str | None = None
    label_url: str | None = None
    refund_id: str | None = None
    refund_amount: int | None = None
    refunded_at: str | None = None
    placeholder: bool = False
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    # -------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user,
        cart_list: list[dict],
        amount_paid,
        payment_intent_id: str | None = None,
        payment_status: str | None = None,
        shipping_address: dict | None = None,
    ) -> "Order":
        """Validate a checkout and build a new pending order. Nothing is persisted."""
        if not cart_list:
            raise ValidationError({"cartList": ["Cart list is required and must not be empty"]})
        items = tuple(LineItem.from_cart_line(line, i) for i, line in enumerate(cart_list))
        amount = to_decimal(amount_paid, "amountPaid")
        expected = sum((item.subtotal for item in items), Decimal("0"))
        if abs(expected - amount) > AMOUNT_TOLERANCE:
            raise ValidationError(
                {"amountPaid": [f"Amount paid {display(amount)} does not match order total {display(expected)}"]}
            )

        if payment_status is None:
            status = PaymentStatus.PAID if payment_intent_id else PaymentStatus.UNPAID
        else:
            try:
                status = PaymentStatus(payment_status)
            except ValueError as exc:
                raise ValidationError({"paymentStatus": [f"Invalid payment status '{payment_status}'"]}) from exc
            if status == PaymentStatus.REFUNDED:
                raise ValidationError({"paymentStatus": ["A new order cannot be refunded"]})

        now = utc_now()
        return cls(
            id=str(uuid4()),
            user_id=user.id,
            items=items,
            amount_paid=amount,
            payment_status=status,
            payment_intent_id=payment_intent_id,
            customer_name=getattr(user, "name", None),
            customer_email=getattr(user, "email", None),
            shipping_address=shipping_address,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def placeholder_for(cls, payment_intent_id: str, user_id: str, amount_minor: int, metadata: dict) -> "Order":
        """Minimal paid order that keeps a confirmed payment linked to its user."""
        now = utc_now()
        return cls(
            id=placeholder_order_id(payment_intent_id),
            user_id=user_id,
            items=(),
            amount_paid=(Decimal(amount_minor) / 100).quantize(CENT),
            payment_status=PaymentStatus.PAID,
            payment_intent_id=payment_intent_id,
            customer_name=metadata.get("userName"),
            customer_email=metadata.get("userEmail"),
            placeholder=True,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def amount_paid_minor(self) -> int:
        return to_minor(self.amount_paid)

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def assert_can_transition(self, target: OrderStatus) -> None:
        if target == OrderStatus.REFUNDED:
            raise ValidationError({"status": ["Orders can only be refunded through the refund endpoint"]})
        if target not in _VALID_TRANSITIONS.get(self.status, set()):
            raise ValidationError({"status": [f"Cannot transition from {self.status.value} to {target.value}"]})

    def assert_can_ship(self, tracking_number: str | None, target: OrderStatus) -> None:
        if target in _TRACKED_STATES and not (tracking_number or self.tracking_number):
            raise ValidationError({"trackingNumber": [f"A tracking number is required before marking {target.value}"]})

    # -------------------------------------------------------------------
    # Persistence mapping
    # -------------------------------------------------------------------
    def to_item(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "items": [item.to_item() for item in self.items],
            "quantity": self.quantity,
            "amountPaid": self.amount_paid,
            "status": self.status.value,
            "paymentStatus": self.payment_status.value,
            "paymentIntentId": self.payment_intent_id,
            "user": {"id": self.user_id, "name": self.customer_name, "email": self.customer_email},
            "shippingAddress": self.shipping_address,
            "trackingNumber": self.tracking_number,
            "trackingCarrier": self.tracking_carrier,
            "trackingUrl": self.tracking_url,
            "labelUrl": self.label_url,
            "refundId": self.refund_id,
            "refundAmount": self.refund_amount,
            "refundedAt": self.refunded_at,
            "placeholder": self.placeholder,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_item(cls, item: dict) -> "Order":
        user = item.get("user") or {}
        return cls(
            id=item["id"],
            user_id=item["userId"],
            items=tuple(LineItem.from_item(line) for line in item.get("items", [])),
            amount_paid=Decimal(str(item.get("amountPaid", 0))).quantize(CENT),
            status=OrderStatus(item.get("status", OrderStatus.PENDING.value)),
            payment_status=PaymentStatus(item.get("paymentStatus", PaymentStatus.UNPAID.value)),
            payment_intent_id=item.get("paymentIntentId"),
            customer_name=user.get("name"),
            customer_email=user.get("email"),
            shipping_address=item.get("shippingAddress"),
            tracking_number=item.get("trackingNumber"),
            tracking_carrier=item.get("trackingCarrier"),
            tracking_url=item.get("trackingUrl"),
            label_url=item.get("labelUrl"),
            refund_id=item.get("refundId"),
            refund_amount=item.get("refundAmount"),
            refunded_at=item.get("refundedAt"),
            placeholder=bool(item.get("placeholder", False)),
            created_at=item.get("createdAt", ""),
            updated_at=item.get("updatedAt", ""),
        )

    def to_public(self) -> dict:
        """JSON-safe representation for HTTP responses."""
        data = self.to_item()
        data["amountPaid"] = float(self.amount_paid)
        data["items"] = [
            {"id": item.product_id, "name": item.name, "price": float(item.price), "quantity": item.quantity}
            for item in self.items
        ]
        return {k: v for k, v in data.items() if v is not None}
