"""Tests for OrderCoordinator — checkout, status changes, tracking, labels and refunds."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from ordering.order.coordinator import OrderCoordinator
from ordering.order.order import OrderStatus, PaymentStatus, placeholder_order_id
from shared.errors import (
    AlreadyRefundedError,
    ConcurrentModificationError,
    ForbiddenError,
    InsufficientStockError,
    PaymentProviderError,
    ShippingUnavailableError,
    StockContentionError,
    StorageFailure,
    http_status_for,
)
from storage.memory import MemoryStore
from storage.port import BackendError, ItemNotFound, PreconditionFailed, Table

ADMIN_EMAIL = "admin@codebook.test"


class OrderWriteFailingStore(MemoryStore):
    """Rejects whole-item order writes (puts), as a backend outage would."""

    def put(self, table, item, if_not_exists=False):
        if table is Table.ORDERS:
            raise BackendError("Storage backend unreachable")
        return super().put(table, item, if_not_exists)


class ContendedProductStore(MemoryStore):
    """Every conditional stock write on p-2 loses to a concurrent writer."""

    def update(self, table, key, changes=None, increments=None, removals=(), condition=None):
        if table is Table.PRODUCTS and key == "p-2" and condition is not None and condition.attribute == "stock":
            raise PreconditionFailed(table, key, condition)
        return super().update(table, key, changes, increments, removals, condition)


class OrderUpdateFailingStore(MemoryStore):
    """Accepts order creation but fails any later order update."""

    def update(self, table, key, changes=None, increments=None, removals=(), condition=None):
        if table is Table.ORDERS and condition is not None:
            raise BackendError("Storage backend unreachable")
        return super().update(table, key, changes, increments, removals, condition)


def _coordinator_with(store_cls, inventory_cls, gateway, carrier, notifier, settings):
    store = store_cls()
    return OrderCoordinator(store, inventory_cls(store), gateway, carrier, notifier, settings)


# ---------------------------------------------------------------------------
# Payment intents
# ---------------------------------------------------------------------------
class TestPaymentIntents:
    def test_metadata_carries_caller_identity(self, coordinator, customer, gateway):
        intent = coordinator.create_payment_intent(customer, 5998, metadata={"cartSize": "2", "userId": "spoof"})
        assert intent.metadata == {
            "cartSize": "2",
            "userId": "user-1",
            "userEmail": "ada@example.com",
            "userName": "Ada Lovelace",
        }
        assert gateway.calls[-1]["currency"] == "usd"

    @pytest.mark.parametrize("amount", [0, 49, -100, 12.5, "5998"])
    def test_rejects_bad_amount(self, coordinator, customer, amount):
        with pytest.raises(ValidationError):
            coordinator.create_payment_intent(customer, amount)

    def test_verify_own_intent(self, coordinator, customer, gateway):
        gateway.add_intent("pi_1", 5998, metadata={"userId": customer.id})
        assert coordinator.verify_payment(customer, "pi_1").status == "succeeded"

    def test_verify_foreign_intent_is_forbidden(self, coordinator, customer, gateway):
        gateway.add_intent("pi_1", 5998, metadata={"userId": "someone-else"})
        with pytest.raises(ForbiddenError) as exc:
            coordinator.verify_payment(customer, "pi_1")
        assert exc.value.status_code == 403


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class TestCreateOrder:
    def test_happy_path(self, coordinator, customer, seed_product, stock_of, cart_line):
        seed_product(stock=10)
        result = coordinator.create_order(customer, [cart_line(quantity=2)], 59.98, payment_intent_id="pi_1")

        order = coordinator.get_order(result.order.id)
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PAID
        assert order.amount_paid == Decimal("59.98")
        assert order.quantity == 2
        assert order.customer_email == "ada@example.com"
        assert stock_of("p-1") == 8

    def test_snapshot_is_persisted(self, coordinator, customer, seed_product, store, cart_line):
        seed_product(stock=10)
        result = coordinator.create_order(customer, [cart_line(quantity=1)], 29.99)
        item = store.get(Table.ORDERS, result.order.id)
        assert item["user"] == {"id": "user-1", "name": "Ada Lovelace", "email": "ada@example.com"}
        assert item["paymentStatus"] == "unpaid"
        assert item["placeholder"] is False
        assert item["items"][0]["name"] == "Python Basics"

    def test_sends_confirmation_and_admin_alert(self, coordinator, customer, seed_product, email, cart_line):
        seed_product(stock=10)
        coordinator.create_order(customer, [cart_line()], 59.98)
        assert [m.template for m in email.sent_to("ada@example.com")] == ["order-confirmation"]
        assert [m.template for m in email.sent_to(ADMIN_EMAIL)] == ["admin-new-order"]

    def test_logs_activity(self, coordinator, customer, seed_product, store, cart_line):
        seed_product(stock=10)
        result = coordinator.create_order(customer, [cart_line()], 59.98)
        [entry] = store.scan(Table.ACTIVITY_LOG)
        assert entry["action"] == "create"
        assert entry["entityType"] == "order"
        assert entry["entityId"] == result.order.id
        assert entry["userId"] == customer.id

    def test_rolls_back_earlier_lines_in_reverse(self, coordinator, customer, seed_product, stock_of, store, cart_line):
        seed_product("p-1", stock=5)
        seed_product("p-2", stock=5)
        seed_product("p-3", stock=1)
        cart = [cart_line("p-1", 2), cart_line("p-2", 3), cart_line("p-3", 2)]

        with pytest.raises(InsufficientStockError) as exc:
            coordinator.create_order(customer, cart, round(29.99 * 7, 2))

        assert [o.product_id for o in exc.value.rollback] == ["p-2", "p-1"]
        assert all(o.success for o in exc.value.rollback)
        assert (stock_of("p-1"), stock_of("p-2"), stock_of("p-3")) == (5, 5, 1)
        assert store.scan(Table.ORDERS) == []

    def test_contention_on_later_line_rolls_back(self, gateway, carrier, notifier, settings, customer, cart_line):
        from inventory.service import InventoryService

        coordinator = _coordinator_with(ContendedProductStore, InventoryService, gateway, carrier, notifier, settings)
        coordinator.store.put(Table.PRODUCTS, {"id": "p-1", "name": "Python Basics", "stock": 5})
        coordinator.store.put(Table.PRODUCTS, {"id": "p-2", "name": "Fluent Python", "stock": 5})

        with pytest.raises(StockContentionError) as exc:
            coordinator.create_order(customer, [cart_line("p-1", 2), cart_line("p-2", 1)], round(29.99 * 3, 2))

        assert exc.value.product_id == "p-2"
        assert http_status_for(exc.value) == 503
        assert [(o.product_id, o.success) for o in exc.value.rollback] == [("p-1", True)]
        assert coordinator.store.get(Table.PRODUCTS, "p-1")["stock"] == 5
        assert coordinator.store.get(Table.PRODUCTS, "p-2")["stock"] == 5
        assert coordinator.store.scan(Table.ORDERS) == []

    def test_missing_product_rolls_back(self, coordinator, customer, seed_product, stock_of, cart_line):
        seed_product("p-1", stock=5)
        with pytest.raises(ItemNotFound):
            coordinator.create_order(customer, [cart_line("p-1", 1), cart_line("ghost", 1)], 59.98)
        assert stock_of("p-1") == 5

    def test_amount_mismatch_touches_nothing(self, coordinator, customer, seed_product, stock_of, cart_line):
        seed_product(stock=10)
        with pytest.raises(ValidationError) as exc:
            coordinator.create_order(customer, [cart_line(quantity=2)], 10.00)
        assert "amountPaid" in exc.value.messages
        assert stock_of("p-1") == 10

    def test_amount_within_one_cent_is_accepted(self, coordinator, customer, seed_product, cart_line):
        seed_product(stock=10)
        result = coordinator.create_order(customer, [cart_line(quantity=2)], 59.99)
        assert result.order.amount_paid == Decimal("59.99")

    def test_empty_cart(self, coordinator, customer):
        with pytest.raises(ValidationError):
            coordinator.create_order(customer, [], 0)

    def test_order_write_failure_restores_stock(self, gateway, carrier, notifier, settings, customer, cart_line):
        from inventory.service import InventoryService

        coordinator = _coordinator_with(OrderWriteFailingStore, InventoryService, gateway, carrier, notifier, settings)
        coordinator.store.put(Table.PRODUCTS, {"id": "p-1", "name": "Python Basics", "stock": 4})

        with pytest.raises(StorageFailure) as exc:
            coordinator.create_order(customer, [cart_line(quantity=2)], 59.98)

        assert exc.value.status_code == 500
        assert [o.to_dict()["success"] for o in exc.value.rollback] == [True]
        assert coordinator.store.get(Table.PRODUCTS, "p-1")["stock"] == 4

    def test_untracked_products_are_not_rolled_back(self, coordinator, customer, seed_product, cart_line):
        seed_product("p-1", stock=None)
        seed_product("p-2", stock=0)
        with pytest.raises(InsufficientStockError) as exc:
            coordinator.create_order(customer, [cart_line("p-1", 1), cart_line("p-2", 1)], 59.98)
        assert exc.value.rollback == ()

    def test_low_stock_alert(self, coordinator, customer, seed_product, email, cart_line):
        seed_product(stock=6, threshold=5)
        result = coordinator.create_order(customer, [cart_line(quantity=2)], 59.98)
        assert len(result.low_stock_alerts) == 1
        assert "admin-low-stock" in email.sent_templates()

    def test_out_of_stock_alert(self, coordinator, customer, seed_product, email, store, cart_line):
        seed_product(stock=2)
        coordinator.create_order(customer, [cart_line(quantity=2)], 59.98)
        assert "admin-out-of-stock" in email.sent_templates()
        assert store.get(Table.PRODUCTS, "p-1")["inStock"] is False

    def test_email_failure_does_not_fail_checkout(self, coordinator, customer, seed_product, email, cart_line):
        seed_product(stock=10)
        email.configure(should_succeed=False)
        result = coordinator.create_order(customer, [cart_line()], 59.98)
        assert result.order.status == OrderStatus.PENDING

    def test_supersedes_webhook_placeholder(self, coordinator, customer, seed_product, store, cart_line):
        from ordering.order.order import Order

        placeholder = Order.placeholder_for("pi_1", customer.id, 5998, {})
        store.put(Table.ORDERS, placeholder.to_item())
        seed_product(stock=10)

        coordinator.create_order(customer, [cart_line()], 59.98, payment_intent_id="pi_1")

        assert store.find(Table.ORDERS, placeholder_order_id("pi_1")) is None
        assert len(store.scan(Table.ORDERS)) == 1

    def test_refunded_placeholder_survives_checkout(
        self, coordinator, customer, seed_product, store, gateway, cart_line
    ):
        from ordering.order.order import Order

        placeholder = Order.placeholder_for("pi_7", customer.id, 5998, {})
        store.put(Table.ORDERS, placeholder.to_item())
        gateway.add_intent("pi_7", 5998, metadata={"userId": customer.id})
        refund = coordinator.refund_order(placeholder.id).refund
        seed_product(stock=10)

        coordinator.create_order(customer, [cart_line()], 59.98, payment_intent_id="pi_7")

        kept = store.get(Table.ORDERS, placeholder.id)
        assert kept["paymentStatus"] == "refunded"
        assert kept["refundId"] == refund.id
        assert len(store.scan(Table.ORDERS)) == 2

    def test_cancelled_placeholder_survives_checkout(self, coordinator, customer, seed_product, store, cart_line):
        from ordering.order.order import Order

        placeholder = Order.placeholder_for("pi_8", customer.id, 5998, {})
        store.put(Table.ORDERS, placeholder.to_item())
        coordinator.update_order_status(placeholder.id, "cancelled")
        seed_product(stock=10)

        coordinator.create_order(customer, [cart_line()], 59.98, payment_intent_id="pi_8")

        assert store.get(Table.ORDERS, placeholder.id)["status"] == "cancelled"


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------
class TestUpdateOrderStatus:
    def test_pending_to_processing(self, coordinator, place_order, admin):
        order = place_order()
        result = coordinator.update_order_status(order.id, "processing", actor=admin)
        assert result.changed is True
        assert result.previous_status == OrderStatus.PENDING
        assert coordinator.get_order(order.id).status == OrderStatus.PROCESSING

    def test_cancel_restores_stock(self, coordinator, place_order, stock_of, email, admin):
        order = place_order(quantity=3, stock=10)
        assert stock_of("p-1") == 7
        email.reset()

        result = coordinator.update_order_status(order.id, "cancelled", actor=admin)

        assert stock_of("p-1") == 10
        assert [o.success for o in result.stock_restorations] == [True]
        assert email.sent_templates() == ["order-canceled"]

    def test_repeat_cancel_is_a_no_op(self, coordinator, place_order, stock_of, admin):
        order = place_order(quantity=3, stock=10)
        coordinator.update_order_status(order.id, "cancelled", actor=admin)
        result = coordinator.update_order_status(order.id, "cancelled", actor=admin)
        assert result.changed is False
        assert stock_of("p-1") == 10

    def test_restoration_failure_alerts_admin(self, coordinator, place_order, store, email, admin):
        order = place_order()
        store.delete(Table.PRODUCTS, "p-1")
        email.reset()

        result = coordinator.update_order_status(order.id, "cancelled", actor=admin)

        assert coordinator.get_order(order.id).status == OrderStatus.CANCELLED
        assert len(result.restoration_failures) == 1
        assert "admin-stock-restoration-failed" in email.sent_templates()

    @pytest.mark.parametrize(
        "current,target",
        [("pending", "shipped"), ("pending", "delivered"), ("delivered", "pending"), ("cancelled", "processing")],
    )
    def test_invalid_transitions(self, coordinator, place_order, force_status, current, target):
        order = place_order()
        force_status(order.id, current, trackingNumber="9400")
        with pytest.raises(ValidationError):
            coordinator.update_order_status(order.id, target)

    def test_refunded_only_through_refund_flow(self, coordinator, place_order):
        order = place_order()
        with pytest.raises(ValidationError):
            coordinator.update_order_status(order.id, "refunded")

    def test_unknown_status(self, coordinator, place_order):
        order = place_order()
        with pytest.raises(ValidationError) as exc:
            coordinator.update_order_status(order.id, "teleported")
        assert "status" in exc.value.messages

    def test_shipping_requires_tracking(self, coordinator, place_order, force_status):
        order = place_order()
        force_status(order.id, "processing")
        with pytest.raises(ValidationError) as exc:
            coordinator.update_order_status(order.id, "shipped")
        assert "trackingNumber" in exc.value.messages

    def test_delivered_sends_email(self, coordinator, place_order, force_status, email):
        order = place_order()
        force_status(order.id, "shipped", trackingNumber="9400111")
        email.reset()
        coordinator.update_order_status(order.id, "delivered")
        assert email.sent_templates() == ["delivery-confirmation"]

    def test_missing_order(self, coordinator):
        with pytest.raises(ItemNotFound):
            coordinator.update_order_status("nope", "processing")

    def test_lost_race_is_a_conflict(self, coordinator, place_order, store, stock_of, monkeypatch):
        order = place_order(quantity=2, stock=10)
        stale = coordinator.get_order(order.id)
        store.update(Table.ORDERS, order.id, changes={"updatedAt": "2099-01-01T00:00:00.000Z"})
        monkeypatch.setattr(coordinator, "get_order", lambda _id: stale)

        with pytest.raises(ConcurrentModificationError) as exc:
            coordinator.update_order_status(order.id, "cancelled")

        assert exc.value.status_code == 409
        assert stock_of("p-1") == 8


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
class TestRecordTracking:
    def test_tracking_with_shipped_status(self, coordinator, place_order, force_status, email, stock_of):
        order = place_order(quantity=2, stock=10)
        force_status(order.id, "processing")
        email.reset()

        result = coordinator.record_tracking(order.id, "9400111", carrier="USPS", status="shipped")

        assert result.order.status == OrderStatus.SHIPPED
        assert result.order.tracking_carrier == "usps"
        assert email.sent_templates() == ["shipping-notification"]
        assert stock_of("p-1") == 8

    def test_tracking_without_status_keeps_status(self, coordinator, place_order, email):
        order = place_order()
        email.reset()
        result = coordinator.record_tracking(order.id, "9400111")
        assert result.order.status == OrderStatus.PENDING
        assert result.changed is False
        assert email.sent_templates() == []

    def test_partial_update_keeps_other_fields(self, coordinator, place_order):
        order = place_order()
        coordinator.record_tracking(order.id, "9400111", carrier="usps", label_url="https://labels/1.pdf")
        updated = coordinator.record_tracking(order.id, "9400222").order
        assert updated.tracking_number == "9400222"
        assert updated.tracking_carrier == "usps"
        assert updated.label_url == "https://labels/1.pdf"

    @pytest.mark.parametrize("status", ["cancelled", "refunded"])
    def test_refused_on_closed_orders(self, coordinator, place_order, force_status, status):
        order = place_order()
        force_status(order.id, status)
        with pytest.raises(ValidationError):
            coordinator.record_tracking(order.id, "9400111")

    def test_only_shipped_status_allowed(self, coordinator, place_order, force_status):
        order = place_order()
        force_status(order.id, "processing")
        with pytest.raises(ValidationError):
            coordinator.record_tracking(order.id, "9400111", status="delivered")

    def test_blank_tracking_number(self, coordinator, place_order):
        order = place_order()
        with pytest.raises(ValidationError):
            coordinator.record_tracking(order.id, "   ")


# ---------------------------------------------------------------------------
# Shipping labels
# ---------------------------------------------------------------------------
class TestGenerateShippingLabel:
    def test_label_ships_the_order(self, coordinator, place_order, force_status, carrier, store, admin):
        order = place_order()
        force_status(order.id, "processing")

        result = coordinator.generate_shipping_label(order.id, actor=admin)

        assert result.order.status == OrderStatus.SHIPPED
        assert result.order.tracking_number == result.label.tracking_number
        assert result.order.tracking_number.startswith("9400")
        assert result.order.tracking_carrier == "usps"
        assert result.order.label_url.endswith(".pdf")
        assert len(carrier.calls) == 1
        [entry] = [e for e in store.scan(Table.ACTIVITY_LOG) if e["action"] == "status_change"]
        assert entry["details"]["labelGenerated"] is True

    def test_carrier_failure_leaves_order_untouched(self, coordinator, place_order, force_status, carrier):
        order = place_order()
        force_status(order.id, "processing")
        carrier.configure(should_succeed=False, failure_reason="Shippo API error: HTTP 502")

        with pytest.raises(ShippingUnavailableError) as exc:
            coordinator.generate_shipping_label(order.id)

        assert exc.value.status_code == 503
        assert "manual tracking" in exc.value.message
        reloaded = coordinator.get_order(order.id)
        assert reloaded.status == OrderStatus.PROCESSING
        assert reloaded.tracking_number is None

    def test_pending_order_cannot_ship(self, coordinator, place_order, carrier):
        order = place_order()
        with pytest.raises(ValidationError):
            coordinator.generate_shipping_label(order.id)
        assert carrier.calls == []

    def test_placeholder_cannot_ship(self, coordinator, customer, store, carrier):
        from ordering.order.order import Order

        placeholder = Order.placeholder_for("pi_9", customer.id, 5998, {})
        store.put(Table.ORDERS, placeholder.to_item())
        with pytest.raises(ValidationError):
            coordinator.generate_shipping_label(placeholder.id)
        assert carrier.calls == []


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------
class TestRefundOrder:
    def test_full_refund_restores_stock(self, coordinator, place_order, force_status, gateway, stock_of, email, admin):
        order = place_order(quantity=2, stock=10)
        force_status(order.id, "processing")
        email.reset()

        outcome = coordinator.refund_order(order.id, reason="damaged", actor=admin)

        assert gateway.calls[-1] == {"method": "refund", "charge_id": "ch_pi_1", "amount": None, "reason": "damaged"}
        assert outcome.order.status == OrderStatus.REFUNDED
        assert outcome.order.payment_status == PaymentStatus.REFUNDED
        assert outcome.order.refund_amount == 5998
        assert outcome.order.refund_id == outcome.refund.id
        assert outcome.stock_restored is True
        assert stock_of("p-1") == 10
        assert sorted(email.sent_templates()) == ["admin-refund-processed", "order-refunded"]

    def test_partial_refund(self, coordinator, place_order):
        order = place_order()
        outcome = coordinator.refund_order(order.id, amount_minor=1000)
        assert outcome.refund.amount == 1000
        assert outcome.order.refund_amount == 1000

    def test_refund_after_cancel_does_not_restore_twice(self, coordinator, place_order, stock_of, admin):
        order = place_order(quantity=2, stock=10)
        coordinator.update_order_status(order.id, "cancelled", actor=admin)
        assert stock_of("p-1") == 10

        outcome = coordinator.refund_order(order.id, actor=admin)

        assert outcome.stock_restored is False
        assert outcome.stock_restorations == ()
        assert stock_of("p-1") == 10

    def test_already_refunded(self, coordinator, place_order, gateway):
        order = place_order()
        coordinator.refund_order(order.id)
        refunds = len(gateway.refunds)
        with pytest.raises(AlreadyRefundedError) as exc:
            coordinator.refund_order(order.id)
        assert exc.value.status_code == 400
        assert len(gateway.refunds) == refunds

    def test_amount_above_paid(self, coordinator, place_order, gateway):
        order = place_order()
        with pytest.raises(ValidationError):
            coordinator.refund_order(order.id, amount_minor=5999)
        assert gateway.refunds == []

    def test_unpaid_order(self, coordinator, place_order):
        order = place_order(intent_id=None)
        with pytest.raises(ValidationError):
            coordinator.refund_order(order.id)

    def test_intent_without_charge(self, coordinator, place_order, gateway):
        order = place_order()
        gateway.add_intent("pi_1", 5998, status="processing")
        with pytest.raises(ValidationError) as exc:
            coordinator.refund_order(order.id)
        assert "No charge found" in exc.value.messages["paymentIntentId"][0]

    def test_provider_failure_leaves_order(self, coordinator, place_order, gateway, stock_of):
        order = place_order(quantity=2, stock=10)
        gateway.configure(should_succeed=False, failure_reason="Charge already refunded")
        with pytest.raises(PaymentProviderError):
            coordinator.refund_order(order.id)
        assert coordinator.get_order(order.id).payment_status == PaymentStatus.PAID
        assert stock_of("p-1") == 8

    def test_order_write_failure_after_refund(self, gateway, carrier, notifier, settings, customer, cart_line):
        from inventory.service import InventoryService

        coordinator = _coordinator_with(OrderUpdateFailingStore, InventoryService, gateway, carrier, notifier, settings)
        coordinator.store.put(Table.PRODUCTS, {"id": "p-1", "name": "Python Basics", "stock": 10})
        gateway.add_intent("pi_1", 5998)
        order = coordinator.create_order(customer, [cart_line()], 59.98, payment_intent_id="pi_1").order

        with pytest.raises(StorageFailure) as exc:
            coordinator.refund_order(order.id)

        assert exc.value.details["refundId"] == gateway.refunds[0].id
        assert coordinator.store.get(Table.PRODUCTS, "p-1")["stock"] == 8


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------
class TestListing:
    def test_user_orders_newest_first(self, coordinator, customer, seed_product, store, cart_line):
        seed_product(stock=10)
        first = coordinator.create_order(customer, [cart_line(quantity=1)], 29.99).order
        second = coordinator.create_order(customer, [cart_line(quantity=1)], 29.99).order
        store.update(Table.ORDERS, first.id, changes={"createdAt": "2020-01-01T00:00:00.000Z"})
        store.update(Table.ORDERS, second.id, changes={"createdAt": "2021-01-01T00:00:00.000Z"})
        assert [o.id for o in coordinator.list_orders_for_user(customer.id)] == [second.id, first.id]

    def test_user_orders_are_scoped(self, coordinator, customer, admin, seed_product, cart_line):
        seed_product(stock=10)
        coordinator.create_order(customer, [cart_line(quantity=1)], 29.99)
        assert coordinator.list_orders_for_user(admin.id) == []

    def test_admin_status_filter(self, coordinator, place_order, force_status):
        first = place_order(intent_id="pi_1")
        second = place_order(intent_id="pi_2")
        force_status(second.id, "processing")
        assert [o.id for o in coordinator.list_orders("processing")] == [second.id]
        assert {o.id for o in coordinator.list_orders()} == {first.id, second.id}
