"""Carrier port — abstract interface for shipping-label providers.

All carrier adapters must implement this interface. The ordering context
programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

DEFAULT_PARCEL = {"length": 10.0, "width": 8.0, "height": 4.0}
WEIGHT_PER_UNIT_LB = 0.5
MIN_WEIGHT_LB = 1.0


@dataclass(frozen=True)
class Address:
    name: str | None = None
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str = "US"
    phone: str | None = None
    email: str | None = None

    @property
    def is_complete(self) -> bool:
        return all([self.street1, self.city, self.state, self.zip])

    @classmethod
    def from_dict(cls, data: dict | None) -> "Address":
        data = data or {}
        return cls(
            name=data.get("name"),
            street1=data.get("street1") or data.get("street") or data.get("address"),
            street2=data.get("street2") or data.get("address2"),
            city=data.get("city"),
            state=data.get("state"),
            zip=data.get("zip") or data.get("postalCode") or data.get("zipCode"),
            country=data.get("country") or "US",
            phone=data.get("phone"),
            email=data.get("email"),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "street1": self.street1,
            "street2": self.street2 or "",
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
            "phone": self.phone,
            "email": self.email,
        }


@dataclass(frozen=True)
class LabelOptions:
    """Caller overrides for label generation. Unset values fall back to defaults."""

    carrier: str | None = None
    service: str | None = None
    length: float | None = None
    width: float | None = None
    height: float | None = None
    weight: float | None = None
    from_address: Address | None = None
    to_address: Address | None = None


@dataclass(frozen=True)
class ShippingLabel:
    tracking_number: str
    carrier: str
    label_url: str | None = None
    tracking_url: str | None = None
    transaction_id: str | None = None
    service: str | None = None
    rate_amount: str | None = None


def parcel_weight(quantities: list[int]) -> float:
    """Half a pound per unit, never below one pound."""
    return max(sum(quantities) * WEIGHT_PER_UNIT_LB, MIN_WEIGHT_LB)


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def purchase_label(self, order, options: LabelOptions) -> ShippingLabel:
        """Buy a shipping label for ``order``.

        ``order`` exposes ``id``, ``items`` (each with ``quantity``),
        ``shipping_address`` (a mapping or ``None``), ``customer_name`` and
        ``customer_email``.

        Raises ``AddressIncompleteError`` or ``NoRatesError`` for problems the
        admin can fix, ``ShippingUnavailableError`` for provider failures.
        """
        ...
