"""Shared BDD fixtures and step definitions for the Ordering scenarios."""

from decimal import Decimal

from pytest_bdd import given, parsers, then

from shared.money import to_minor
from storage.port import Table


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price:f} with {stock:d} in stock'))
def _(seed_product, product_id, price, stock):
    seed_product(product_id, name=f"Book {product_id}", price=price, stock=stock)


@given(
    parsers.cfparse(
        'a product "{product_id}" priced {price:f} with {stock:d} in stock and a low-stock threshold of {threshold:d}'
    )
)
def _(seed_product, product_id, price, stock, threshold):
    seed_product(product_id, name=f"Book {product_id}", price=price, stock=stock, threshold=threshold)


@given(
    parsers.cfparse('the customer has a paid order for {quantity:d} of "{product_id}" with payment "{intent_id}"'),
    target_fixture="order_id",
)
def _(coordinator, gateway, customer, store, quantity, product_id, intent_id):
    product = store.get(Table.PRODUCTS, product_id)
    price = Decimal(str(product["price"]))
    total = price * quantity
    gateway.add_intent(intent_id, to_minor(total), metadata={"userId": customer.id})
    line = {"id": product_id, "name": product["name"], "price": str(price), "quantity": quantity}
    return coordinator.create_order(customer, [line], total, payment_intent_id=intent_id).order.id


@given("the order is processing")
def _(coordinator, admin, order_id):
    coordinator.update_order_status(order_id, "processing", actor=admin)


@given(parsers.cfparse('the carrier will issue tracking number "{tracking_number}"'))
def _(carrier, tracking_number):
    carrier.next_tracking_number = tracking_number


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" has {stock:d} in stock and is {availability}'))
@then(parsers.cfparse('product "{product_id}" has {stock:d} in stock and is {availability}'))
def _(store, product_id, stock, availability):
    product = store.get(Table.PRODUCTS, product_id)
    assert product["stock"] == stock
    assert product["inStock"] is (availability == "in stock")


@then("the request succeeds")
def _(response):
    assert response.status_code == 200, response.text


@then(parsers.cfparse('the request fails with status {status:d} and error "{code}"'))
def _(response, status, code):
    assert response.status_code == status
    assert response.json()["error"] == code


@then("no orders are saved")
def _(store):
    assert store.scan(Table.ORDERS) == []


@then("the order is refunded")
def _(store, order_id):
    order = store.get(Table.ORDERS, order_id)
    assert order["status"] == "refunded"
    assert order["paymentStatus"] == "refunded"
    assert order["refundId"]


@then(parsers.cfparse('the order is shipped with tracking number "{tracking_number}" via "{carrier_code}"'))
def _(store, order_id, tracking_number, carrier_code):
    order = store.get(Table.ORDERS, order_id)
    assert order["status"] == "shipped"
    assert order["trackingNumber"] == tracking_number
    assert order["trackingCarrier"] == carrier_code


@then("the order has a label URL")
def _(store, order_id):
    assert store.get(Table.ORDERS, order_id)["labelUrl"].startswith("https://")
