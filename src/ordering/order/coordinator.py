"""Order coordinator — keeps orders, stock and payments consistent.

The store only offers single-item conditional writes, so every multi-step
operation here is made safe by compensation rather than transactions:

- Checkout decrements stock line by line and, on any failure, returns the
  already-taken units in reverse order before surfacing the original error.
- Cancellation and refund restore stock only after their own conditional
  write on the order has won, so a repeated or concurrent request can
  never restore twice. A refund of an already-cancelled order restores
  nothing, because the cancellation already did.
- Webhook reconciliation writes a deterministic placeholder with a
  conditional put, so duplicate deliveries create at most one order.

Compensation outcomes are collected per step and returned (or attached to
the raised error as ``rollback``) instead of being dropped.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from fulfillment.carrier.port import CarrierPort, LabelOptions, ShippingLabel
from inventory.service import InventoryService, StockUpdateRecord
from notifications.notifier import Notifier
from notifications.templates.names import EmailTemplate
from ordering.order.order import Order, OrderStatus, PaymentStatus, parse_status, placeholder_order_id
from payments.gateway.port import DEFAULT_REFUND_REASON, PaymentGateway, PaymentIntent, RefundResult
from shared.clock import utc_now
from shared.config import Settings
from shared.errors import (
    AlreadyRefundedError,
    ConcurrentModificationError,
    ForbiddenError,
    ServiceNotConfiguredError,
    StorageFailure,
)
from shared.money import from_minor
from storage.port import Condition, ItemNotFound, PreconditionFailed, Store, Table

logger = structlog.get_logger(__name__)

MIN_INTENT_AMOUNT = 50

_STATUS_EMAILS = {
    OrderStatus.SHIPPED: EmailTemplate.SHIPPING_NOTIFICATION,
    OrderStatus.DELIVERED: EmailTemplate.DELIVERY_CONFIRMATION,
    OrderStatus.CANCELLED: EmailTemplate.ORDER_CANCELED,
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CompensationOutcome:
    """One stock rollback or restoration attempt."""

    product_id: str
    quantity: int
    success: bool
    new_stock: int | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "requestedDelta": self.quantity,
            "success": self.success,
            "newStock": self.new_stock,
            "error": self.error,
        }


@dataclass(frozen=True)
class OrderCreationResult:
    order: Order
    stock_updates: tuple[StockUpdateRecord, ...] = ()

    @property
    def low_stock_alerts(self) -> tuple[StockUpdateRecord, ...]:
        return tuple(r for r in self.stock_updates if r.success and r.should_trigger_low_stock_alert)

    @property
    def sold_out(self) -> tuple[StockUpdateRecord, ...]:
        return tuple(r for r in self.stock_updates if r.sold_out)


@dataclass(frozen=True)
class StatusChangeResult:
    order: Order
    previous_status: OrderStatus
    changed: bool
    stock_restorations: tuple[CompensationOutcome, ...] = ()

    @property
    def restoration_failures(self) -> tuple[CompensationOutcome, ...]:
        return tuple(o for o in self.stock_restorations if not o.success)


@dataclass(frozen=True)
class LabelResult:
    order: Order
    label: ShippingLabel
    previous_status: OrderStatus


@dataclass(frozen=True)
class RefundOutcome:
    order: Order
    refund: RefundResult
    previous_status: OrderStatus
    stock_restorations: tuple[CompensationOutcome, ...] = ()

    @property
    def stock_restored(self) -> bool:
        return self.previous_status != OrderStatus.CANCELLED


@dataclass(frozen=True)
class WebhookOutcome:
    event_type: str
    action: str
    intent_id: str | None = None
    order_id: str | None = None


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------
class OrderCoordinator:
    def __init__(
        self,
        store: Store,
        inventory: InventoryService,
        gateway: PaymentGateway,
        carrier: CarrierPort,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self.store = store
        self.inventory = inventory
        self.gateway = gateway
        self.carrier = carrier
        self.notifier = notifier
        self.settings = settings

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def get_order(self, order_id: str) -> Order:
        return Order.from_item(self.store.get(Table.ORDERS, order_id))

    def list_orders_for_user(self, user_id: str) -> list[Order]:
        orders = [Order.from_item(item) for item in self.store.query_by_index(Table.ORDERS, "userId", user_id)]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def list_orders(self, status: str | None = None) -> list[Order]:
        filters = {"status": parse_status(status).value} if status else None
        orders = [Order.from_item(item) for item in self.store.scan(Table.ORDERS, filters)]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def _write(self, order: Order, changes: dict) -> Order:
        """Conditionally update ``order``; loses to any write since it was read."""
        try:
            item = self.store.update(
                Table.ORDERS,
                order.id,
                changes={**changes, "updatedAt": utc_now()},
                condition=Condition.equals("updatedAt", order.updated_at),
            )
        except PreconditionFailed as exc:
            logger.info("order_write_conflict", order_id=order.id, changes=sorted(changes))
            raise ConcurrentModificationError(
                {"order": [f"Order {order.id} was modified concurrently. Reload and try again."]}
            ) from exc
        return Order.from_item(item)

    def _compensate(self, order_id: str, lines: list[tuple[str, int]], reason: str) -> tuple[CompensationOutcome, ...]:
        """Return stock for each (product, quantity). Every line is attempted; failures are collected."""
        outcomes = []
        for product_id, quantity in lines:
            try:
                update = self.inventory.increment(product_id, quantity)
            except Exception as exc:
                logger.error(
                    "stock_compensation_failed",
                    order_id=order_id,
                    product_id=product_id,
                    quantity=quantity,
                    reason=reason,
                    error=str(exc),
                )
                outcomes.append(CompensationOutcome(product_id, quantity, success=False, error=str(exc)))
            else:
                outcomes.append(
                    CompensationOutcome(product_id, quantity, success=True, new_stock=update.record.new_stock)
                )
        return tuple(outcomes)

    def _roll_back(self, order_id: str, taken: list[tuple[str, int]], reason: str) -> tuple[CompensationOutcome, ...]:
        """Undo checkout decrements, newest first."""
        outcomes = self._compensate(order_id, list(reversed(taken)), reason)
        logger.warning(
            "checkout_rolled_back",
            order_id=order_id,
            reason=reason,
            rollback=[o.to_dict() for o in outcomes],
        )
        return outcomes

    def _restore_stock(self, order: Order, reason: str) -> tuple[CompensationOutcome, ...]:
        outcomes = self._compensate(order.id, [(i.product_id, i.quantity) for i in order.items], reason)
        failures = [o.to_dict() for o in outcomes if not o.success]
        if failures:
            self.notifier.notify_admin(
                EmailTemplate.ADMIN_STOCK_RESTORATION_FAILED.value,
                {"order_id": order.id, "status": order.status.value, "failures": failures},
            )
        return outcomes

    def _order_context(self, order: Order) -> dict:
        return {
            "order_id": order.id,
            "customer_name": order.customer_name,
            "customer_email": order.customer_email,
            "items": [item.to_item() for item in order.items],
            "item_count": order.quantity,
            "amount_paid": order.amount_paid,
            "order_url": f"{self.settings.runtime.base_url}/order-summary/{order.id}",
            "tracking_number": order.tracking_number,
            "carrier": order.tracking_carrier,
            "tracking_url": order.tracking_url,
        }

    # -------------------------------------------------------------------
    # Payment intents
    # -------------------------------------------------------------------
    def create_payment_intent(
        self,
        user,
        amount_minor: int,
        currency: str = "usd",
        metadata: dict | None = None,
    ) -> PaymentIntent:
        if isinstance(amount_minor, bool) or not isinstance(amount_minor, int) or amount_minor < MIN_INTENT_AMOUNT:
            message = f"Amount must be an integer of at least {MIN_INTENT_AMOUNT} minor units"
            raise ValidationError({"amount": [message]})
        currency = (currency or "usd").lower()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError({"currency": ["Currency must be a three-letter ISO code"]})

        intent_metadata = {
            **(metadata or {}),
            "userId": user.id,
            "userEmail": user.email,
            "userName": user.name,
        }
        intent = self.gateway.create_intent(amount_minor, currency, intent_metadata)
        logger.info("payment_intent_created", intent_id=intent.id, user_id=user.id, amount=amount_minor)
        return intent

    def verify_payment(self, user, intent_id: str) -> PaymentIntent:
        intent = self.gateway.get_intent(intent_id)
        if intent.metadata.get("userId") != user.id:
            logger.warning("payment_verify_foreign_intent", intent_id=intent_id, user_id=user.id)
            raise ForbiddenError({"paymentIntentId": ["Payment intent does not belong to this user"]})
        return intent

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def create_order(
        self,
        user,
        cart_list: list[dict],
        amount_paid,
        payment_intent_id: str | None = None,
        payment_status: str | None = None,
        shipping_address: dict | None = None,
    ) -> OrderCreationResult:
        order = Order.create(user, cart_list, amount_paid, payment_intent_id, payment_status, shipping_address)
        log = logger.bind(order_id=order.id, user_id=user.id)

        records: list[StockUpdateRecord] = []
        taken: list[tuple[str, int]] = []
        for item in order.items:
            try:
                update = self.inventory.decrement(item.product_id, item.quantity)
            except Exception as exc:
                log.warning("checkout_stock_failed", product_id=item.product_id, error=str(exc))
                exc.rollback = self._roll_back(order.id, taken, "checkout_stock_failed")
                raise
            records.append(update.record)
            if update.record.tracked:
                taken.append((item.product_id, item.quantity))

        try:
            self.store.put(Table.ORDERS, order.to_item(), if_not_exists=True)
        except Exception as exc:
            log.error("checkout_order_write_failed", error=str(exc))
            rollback = self._roll_back(order.id, taken, "checkout_order_write_failed")
            failure = StorageFailure("Order could not be saved", {"orderId": order.id})
            failure.rollback = rollback
            raise failure from exc

        result = OrderCreationResult(order=order, stock_updates=tuple(records))
        log.info(
            "order_created",
            items=len(order.items),
            amount_paid=str(order.amount_paid),
            low_stock_alerts=len(result.low_stock_alerts),
        )

        if payment_intent_id:
            self._discard_placeholder(payment_intent_id)

        context = self._order_context(order)
        self.notifier.send_email(EmailTemplate.ORDER_CONFIRMATION.value, order.customer_email, context)
        self.notifier.notify_admin(EmailTemplate.ADMIN_NEW_ORDER.value, context)
        for record in result.sold_out:
            self.notifier.notify_admin(
                EmailTemplate.ADMIN_OUT_OF_STOCK.value,
                {"product_id": record.product_id, "product_name": record.product_name, "order_id": order.id},
            )
        for record in result.low_stock_alerts:
            self.notifier.notify_admin(
                EmailTemplate.ADMIN_LOW_STOCK.value,
                {
                    "product_id": record.product_id,
                    "product_name": record.product_name,
                    "stock": record.new_stock,
                    "threshold": record.low_stock_threshold,
                },
            )
        self.notifier.log_activity(
            user,
            "create",
            "order",
            order.id,
            {"amountPaid": str(order.amount_paid), "items": len(order.items), "paymentIntentId": payment_intent_id},
        )
        return result

    def _discard_placeholder(self, payment_intent_id: str) -> None:
        placeholder_id = placeholder_order_id(payment_intent_id)
        try:
            seen = self.store.find(Table.ORDERS, placeholder_id)
            if not seen or not seen.get("placeholder"):
                return
            # A refunded or cancelled placeholder is the payment's audit record.
            if seen.get("paymentStatus") != PaymentStatus.PAID.value or seen.get("status") != OrderStatus.PENDING.value:
                logger.warning(
                    "placeholder_kept",
                    placeholder_id=placeholder_id,
                    payment_intent_id=payment_intent_id,
                    status=seen.get("status"),
                    payment_status=seen.get("paymentStatus"),
                    refund_id=seen.get("refundId"),
                )
                return
            self.store.delete(Table.ORDERS, placeholder_id, condition=Condition.equals("updatedAt", seen["updatedAt"]))
        except PreconditionFailed:
            logger.warning("placeholder_changed_during_checkout", placeholder_id=placeholder_id)
            return
        except StorageFailure as exc:
            logger.warning("placeholder_cleanup_failed", placeholder_id=placeholder_id, error=str(exc))
            return
        logger.info("placeholder_superseded", placeholder_id=placeholder_id, payment_intent_id=payment_intent_id)

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def update_order_status(self, order_id: str, new_status: str, actor=None) -> StatusChangeResult:
        target = parse_status(new_status)
        order = self.get_order(order_id)
        previous = order.status

        if target == previous:
            return StatusChangeResult(order=order, previous_status=previous, changed=False)

        order.assert_can_transition(target)
        order.assert_can_ship(None, target)
        updated = self._write(order, {"status": target.value})

        restorations: tuple[CompensationOutcome, ...] = ()
        if target == OrderStatus.CANCELLED and previous not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            restorations = self._restore_stock(updated, "cancelled")

        result = StatusChangeResult(
            order=updated, previous_status=previous, changed=True, stock_restorations=restorations
        )
        logger.info(
            "order_status_changed",
            order_id=order_id,
            previous_status=previous.value,
            new_status=target.value,
            restoration_failures=len(result.restoration_failures),
        )

        self.notifier.log_activity(
            actor,
            "status_change",
            "order",
            order_id,
            {
                "previousStatus": previous.value,
                "newStatus": target.value,
                "stockRestored": [o.to_dict() for o in restorations],
            },
        )
        template = _STATUS_EMAILS.get(target)
        if template is not None:
            self.notifier.send_email(template.value, updated.customer_email, self._order_context(updated))
        return result

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    def record_tracking(
        self,
        order_id: str,
        tracking_number: str,
        carrier: str | None = None,
        label_url: str | None = None,
        tracking_url: str | None = None,
        status: str | None = None,
        actor=None,
    ) -> StatusChangeResult:
        return self._apply_tracking(
            self.get_order(order_id), tracking_number, carrier, label_url, tracking_url, status, actor
        )

    def _apply_tracking(
        self,
        order: Order,
        tracking_number: str,
        carrier: str | None,
        label_url: str | None,
        tracking_url: str | None,
        status: str | None,
        actor,
        details: dict | None = None,
    ) -> StatusChangeResult:
        if not tracking_number or not str(tracking_number).strip():
            raise ValidationError({"trackingNumber": ["Tracking number is required"]})
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ValidationError({"status": [f"Cannot add tracking to a {order.status.value} order"]})

        previous = order.status
        target = parse_status(status) if status else previous
        if target not in (previous, OrderStatus.SHIPPED):
            raise ValidationError({"status": ["Only 'shipped' can be set together with tracking"]})
        if target != previous:
            order.assert_can_transition(target)

        changes = {"trackingNumber": str(tracking_number).strip()}
        if carrier:
            changes["trackingCarrier"] = carrier.lower()
        if label_url:
            changes["labelUrl"] = label_url
        if tracking_url:
            changes["trackingUrl"] = tracking_url
        if target != previous:
            changes["status"] = target.value
        updated = self._write(order, changes)

        logger.info(
            "order_tracking_recorded",
            order_id=order.id,
            tracking_number=updated.tracking_number,
            carrier=updated.tracking_carrier,
            previous_status=previous.value,
            new_status=updated.status.value,
        )
        self.notifier.log_activity(
            actor,
            "status_change" if target != previous else "update",
            "order",
            order.id,
            {
                "previousStatus": previous.value,
                "newStatus": updated.status.value,
                "trackingNumber": updated.tracking_number,
                "trackingCarrier": updated.tracking_carrier,
                **(details or {}),
            },
        )
        if updated.status == OrderStatus.SHIPPED and updated.tracking_number != order.tracking_number:
            self.notifier.send_email(
                EmailTemplate.SHIPPING_NOTIFICATION.value, updated.customer_email, self._order_context(updated)
            )
        return StatusChangeResult(order=updated, previous_status=previous, changed=target != previous)

    # -------------------------------------------------------------------
    # Shipping labels
    # -------------------------------------------------------------------
    def generate_shipping_label(self, order_id: str, options: LabelOptions | None = None, actor=None) -> LabelResult:
        options = options or LabelOptions()
        order = self.get_order(order_id)
        if order.placeholder or not order.items:
            raise ValidationError({"items": ["Order has no items to ship"]})
        if order.status != OrderStatus.SHIPPED:
            order.assert_can_transition(OrderStatus.SHIPPED)

        label = self.carrier.purchase_label(order, options)
        try:
            result = self._apply_tracking(
                order,
                label.tracking_number,
                label.carrier,
                label.label_url,
                label.tracking_url,
                OrderStatus.SHIPPED.value,
                actor,
                details={"labelGenerated": True, "transactionId": label.transaction_id},
            )
        except Exception:
            logger.critical(
                "label_purchased_but_order_not_updated",
                order_id=order_id,
                tracking_number=label.tracking_number,
                transaction_id=label.transaction_id,
                label_url=label.label_url,
            )
            raise
        return LabelResult(order=result.order, label=label, previous_status=order.status)

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    def refund_order(
        self,
        order_id: str,
        amount_minor: int | None = None,
        reason: str | None = None,
        actor=None,
    ) -> RefundOutcome:
        order = self.get_order(order_id)
        if order.payment_status == PaymentStatus.REFUNDED:
            raise AlreadyRefundedError(order_id)
        if not order.payment_intent_id:
            raise ValidationError({"paymentIntentId": ["Order has no payment to refund"]})
        if amount_minor is not None:
            if isinstance(amount_minor, bool) or not isinstance(amount_minor, int) or amount_minor <= 0:
                raise ValidationError({"amount": ["Refund amount must be a positive integer in minor units"]})
            if amount_minor > order.amount_paid_minor:
                raise ValidationError(
                    {"amount": [f"Refund amount {amount_minor} exceeds amount paid {order.amount_paid_minor}"]}
                )

        previous = order.status
        intent = self.gateway.get_intent(order.payment_intent_id)
        if not intent.latest_charge:
            raise ValidationError({"paymentIntentId": ["No charge found for this payment"]})
        refund = self.gateway.refund(intent.latest_charge, amount_minor, reason or DEFAULT_REFUND_REASON)
        logger.info("refund_issued", order_id=order_id, refund_id=refund.id, amount=refund.amount)

        try:
            updated = self._write(
                order,
                {
                    "status": OrderStatus.REFUNDED.value,
                    "paymentStatus": PaymentStatus.REFUNDED.value,
                    "refundId": refund.id,
                    "refundAmount": refund.amount,
                    "refundedAt": utc_now(),
                },
            )
        except Exception as exc:
            # The provider refund is terminal; only a human can reconcile from here.
            logger.critical(
                "refund_not_recorded",
                order_id=order_id,
                refund_id=refund.id,
                refund_amount=refund.amount,
                payment_intent_id=order.payment_intent_id,
                error=str(exc),
            )
            raise StorageFailure(
                "Refund was issued but the order could not be updated",
                {"orderId": order_id, "refundId": refund.id},
            ) from exc

        restorations: tuple[CompensationOutcome, ...] = ()
        if previous != OrderStatus.CANCELLED:
            restorations = self._restore_stock(updated, "refunded")

        outcome = RefundOutcome(order=updated, refund=refund, previous_status=previous, stock_restorations=restorations)
        context = {
            **self._order_context(updated),
            "refund_id": refund.id,
            "refund_amount": from_minor(refund.amount),
            "reason": reason or DEFAULT_REFUND_REASON,
            "admin_email": getattr(actor, "email", None),
            "stock_restored": outcome.stock_restored,
        }
        self.notifier.log_activity(
            actor,
            "refund",
            "order",
            order_id,
            {
                "previousStatus": previous.value,
                "refundId": refund.id,
                "refundAmount": refund.amount,
                "reason": context["reason"],
                "stockRestored": outcome.stock_restored,
            },
        )
        self.notifier.send_email(EmailTemplate.ORDER_REFUNDED.value, updated.customer_email, context)
        self.notifier.notify_admin(EmailTemplate.ADMIN_REFUND_PROCESSED.value, context)
        return outcome

    # -------------------------------------------------------------------
    # Webhook reconciliation
    # -------------------------------------------------------------------
    def reconcile_webhook(self, raw_body: bytes, signature_header: str | None) -> WebhookOutcome:
        secret = self.settings.payment.webhook_secret
        if not secret:
            raise ServiceNotConfiguredError("Payment webhook")
        event = self.gateway.verify_webhook(raw_body, signature_header or "", secret)

        if event.type == "payment_intent.succeeded":
            return self._record_successful_payment(event)
        if event.type in ("payment_intent.payment_failed", "payment_intent.canceled"):
            logger.warning(
                "payment_not_completed",
                event_type=event.type,
                intent_id=event.intent_id,
                user_id=event.metadata.get("userId"),
                error=(event.data.get("last_payment_error") or {}).get("message"),
            )
            return WebhookOutcome(event_type=event.type, action="logged", intent_id=event.intent_id)

        logger.info("webhook_event_ignored", event_type=event.type, event_id=event.id)
        return WebhookOutcome(event_type=event.type, action="ignored", intent_id=event.intent_id)

    def _record_successful_payment(self, event) -> WebhookOutcome:
        intent_id = event.intent_id
        user_id = event.metadata.get("userId")
        if not intent_id or not user_id:
            logger.warning("payment_succeeded_without_user", intent_id=intent_id)
            return WebhookOutcome(event_type=event.type, action="ignored", intent_id=intent_id)

        for item in self.store.query_by_index(Table.ORDERS, "userId", user_id):
            if item.get("paymentIntentId") == intent_id:
                logger.info("payment_already_recorded", intent_id=intent_id, order_id=item["id"])
                return WebhookOutcome(
                    event_type=event.type, action="order_exists", intent_id=intent_id, order_id=item["id"]
                )

        placeholder = Order.placeholder_for(intent_id, user_id, int(event.data.get("amount") or 0), event.metadata)
        try:
            self.store.put(Table.ORDERS, placeholder.to_item(), if_not_exists=True)
        except PreconditionFailed:
            logger.info("placeholder_already_exists", intent_id=intent_id, order_id=placeholder.id)
            return WebhookOutcome(
                event_type=event.type, action="order_exists", intent_id=intent_id, order_id=placeholder.id
            )

        logger.warning(
            "placeholder_order_created",
            intent_id=intent_id,
            order_id=placeholder.id,
            user_id=user_id,
            amount_paid=str(placeholder.amount_paid),
        )
        return WebhookOutcome(
            event_type=event.type, action="placeholder_created", intent_id=intent_id, order_id=placeholder.id
        )


def get_coordinator() -> OrderCoordinator:
    """Assemble a coordinator from the currently configured adapters."""
    from fulfillment.carrier import get_carrier
    from notifications.notifier import get_notifier
    from payments.gateway import get_gateway
    from shared.config import get_settings
    from storage import get_store

    store = get_store()
    return OrderCoordinator(
        store=store,
        inventory=InventoryService(store),
        gateway=get_gateway(),
        carrier=get_carrier(),
        notifier=get_notifier(),
        settings=get_settings(),
    )


__all__ = [
    "CompensationOutcome",
    "ItemNotFound",
    "LabelResult",
    "OrderCoordinator",
    "OrderCreationResult",
    "RefundOutcome",
    "StatusChangeResult",
    "WebhookOutcome",
    "get_coordinator",
]
