"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway for production (PAYMENT_GATEWAY=stripe)
"""

import threading

from payments.gateway.port import PaymentGateway
from shared.config import get_settings

_current_gateway: PaymentGateway | None = None
_lock = threading.Lock()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        with _lock:
            if _current_gateway is None:
                settings = get_settings()
                adapter = settings.adapters.payment
                if adapter == "fake":
                    from payments.gateway.fake_adapter import FakeGateway

                    _current_gateway = FakeGateway()
                elif adapter == "stripe":
                    from payments.gateway.stripe_adapter import StripeGateway

                    _current_gateway = StripeGateway(settings.payment.secret_key)
                else:
                    raise ValueError(f"Unknown payment gateway: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
