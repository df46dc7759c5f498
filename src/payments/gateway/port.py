"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
Amounts crossing this port are integer minor units (cents). The raw
webhook body is handed over untouched; only the adapter decides how it
is parsed, and only after the signature has been checked.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

DEFAULT_REFUND_REASON = "requested_by_customer"


@dataclass(frozen=True)
class PaymentIntent:
    """Provider-side payment intent, as seen by the storefront."""

    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)
    latest_charge: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund issued against a charge."""

    id: str
    status: str
    amount: int
    charge_id: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """A verified provider event. ``data`` is the event's ``data.object``."""

    id: str
    type: str
    data: dict = field(default_factory=dict)

    @property
    def intent_id(self) -> str | None:
        return self.data.get("id")

    @property
    def metadata(self) -> dict:
        return self.data.get("metadata") or {}


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(self, amount_minor: int, currency: str, metadata: dict) -> PaymentIntent:
        """Create a payment intent the browser can confirm with the client secret."""
        ...

    @abstractmethod
    def get_intent(self, intent_id: str) -> PaymentIntent:
        """Retrieve an existing payment intent."""
        ...

    @abstractmethod
    def refund(
        self,
        charge_id: str,
        amount_minor: int | None = None,
        reason: str = DEFAULT_REFUND_REASON,
    ) -> RefundResult:
        """Refund a charge in full, or partially when ``amount_minor`` is given."""
        ...

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        """Check the provider signature over the byte-exact body and return the event.

        Raises ``SignatureInvalidError`` when the signature does not match.
        """
        ...
