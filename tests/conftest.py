import os
from pathlib import Path

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_TO_FILE", "0")

ADMIN_EMAIL = "admin@codebook.test"
WEBHOOK_SECRET = "whsec_test_secret"


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture()
def settings():
    from shared.config import AuthSettings, EmailSettings, PaymentSettings, Settings

    return Settings(
        payment=PaymentSettings(webhook_secret=WEBHOOK_SECRET),
        email=EmailSettings(sender_email="shop@codebook.test", admin_email=ADMIN_EMAIL),
        auth=AuthSettings(secret="test-jwt-secret", ttl_seconds=3600),
    )


@pytest.fixture()
def store():
    from storage.memory import MemoryStore

    return MemoryStore()


@pytest.fixture()
def gateway():
    from payments.gateway.fake_adapter import FakeGateway

    return FakeGateway()


@pytest.fixture()
def carrier():
    from fulfillment.carrier.fake_adapter import FakeCarrier

    return FakeCarrier()


@pytest.fixture()
def email():
    from notifications.channel.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture()
def notifier(email, store, settings):
    from notifications.notifier import InlineExecutor, Notifier

    return Notifier(email, store, settings.email, executor=InlineExecutor())


@pytest.fixture()
def inventory(store):
    from inventory.service import InventoryService

    return InventoryService(store)


@pytest.fixture()
def coordinator(store, inventory, gateway, carrier, notifier, settings):
    from ordering.order.coordinator import OrderCoordinator

    return OrderCoordinator(store, inventory, gateway, carrier, notifier, settings)


@pytest.fixture(autouse=True)
def wire_adapters(settings, store, gateway, carrier, email, notifier):
    """Install fresh fakes into every module-level factory for the duration of a test."""
    from fulfillment.carrier import reset_carrier, set_carrier
    from notifications.channel import reset_email_adapter, set_email_adapter
    from notifications.notifier import reset_notifier, set_notifier
    from payments.gateway import reset_gateway, set_gateway
    from shared.config import reset_settings, set_settings
    from storage import reset_store, set_store

    set_settings(settings)
    set_store(store)
    set_gateway(gateway)
    set_carrier(carrier)
    set_email_adapter(email)
    set_notifier(notifier)
    yield
    reset_notifier()
    reset_email_adapter()
    reset_carrier()
    reset_gateway()
    reset_store()
    reset_settings()


@pytest.fixture()
def customer():
    from identity.auth import Principal

    return Principal(id="user-1", email="ada@example.com", name="Ada Lovelace")


@pytest.fixture()
def admin():
    from identity.auth import Principal

    return Principal(id="admin-1", email=ADMIN_EMAIL, name="Store Admin", role="admin")


@pytest.fixture()
def seed_product(store):
    from storage.port import Table

    def _seed(product_id="p-1", name="Python Basics", price=29.99, stock=10, threshold=None, **extra):
        item = {"id": product_id, "name": name, "price": price, "inStock": bool(stock), **extra}
        if stock is not None:
            item["stock"] = stock
        if threshold is not None:
            item["lowStockThreshold"] = threshold
        return store.put(Table.PRODUCTS, item)

    return _seed


@pytest.fixture()
def stock_of(store):
    from storage.port import Table

    def _stock(product_id):
        return store.get(Table.PRODUCTS, product_id).get("stock")

    return _stock


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from app import app

    return TestClient(app)


@pytest.fixture()
def auth_headers(settings):
    """Build an ``Authorization`` header for a principal, signed with the test secret."""
    from identity.auth import issue_token

    def _headers(principal):
        return {"Authorization": f"Bearer {issue_token(principal, settings.auth)}"}

    return _headers
