"""Shared fixtures for the Ordering tests."""

import pytest

from storage.port import Table

PRICE = 29.99


@pytest.fixture()
def cart_line():
    def _line(product_id="p-1", quantity=2, price=PRICE, name="Python Basics"):
        return {"id": product_id, "name": name, "price": price, "quantity": quantity}

    return _line


@pytest.fixture()
def place_order(coordinator, customer, seed_product, gateway, cart_line):
    """Seed a product, register a paid intent and place an order for it."""

    def _place(quantity=2, stock=10, threshold=None, intent_id="pi_1", status=None):
        seed_product(stock=stock, threshold=threshold)
        amount_minor = round(PRICE * 100) * quantity
        if intent_id:
            gateway.add_intent(intent_id, amount_minor, metadata={"userId": customer.id})
        result = coordinator.create_order(
            customer,
            [cart_line(quantity=quantity)],
            round(PRICE * quantity, 2),
            payment_intent_id=intent_id,
        )
        if status is not None:
            _force_status(coordinator.store, result.order.id, status)
        return coordinator.get_order(result.order.id)

    return _place


def _force_status(store, order_id, status, **extra):
    store.update(Table.ORDERS, order_id, changes={"status": status, **extra})


@pytest.fixture()
def force_status(store):
    """Move an order to a status directly in the store, bypassing the status machine."""

    def _force(order_id, status, **extra):
        _force_status(store, order_id, status, **extra)

    return _force
