"""Carrier adapter abstraction — pluggable shipping-label integration."""

import threading

from shared.config import get_settings

_carrier_instance = None
_lock = threading.Lock()


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. In production, configure via the
    CARRIER_ADAPTER environment variable (``shippo``).
    """
    global _carrier_instance
    if _carrier_instance is None:
        with _lock:
            if _carrier_instance is None:
                settings = get_settings()
                adapter = settings.adapters.carrier
                if adapter == "fake":
                    from fulfillment.carrier.fake_adapter import FakeCarrier

                    _carrier_instance = FakeCarrier()
                elif adapter == "shippo":
                    from fulfillment.carrier.shippo_adapter import ShippoCarrier

                    _carrier_instance = ShippoCarrier(settings.shipping)
                else:
                    raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier) -> None:
    """Override the active carrier adapter (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
