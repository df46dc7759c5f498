"""Fake carrier adapter — deterministic labels for testing and development."""

import hashlib

from fulfillment.carrier.port import CarrierPort, LabelOptions, ShippingLabel
from shared.errors import ShippingUnavailableError


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.calls: list[dict] = []
        self.next_tracking_number: str | None = None

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def purchase_label(self, order, options: LabelOptions) -> ShippingLabel:
        self.calls.append({"method": "purchase_label", "order_id": order.id, "options": options})
        if not self.should_succeed:
            raise ShippingUnavailableError(self.failure_reason)

        digest = hashlib.sha256(order.id.encode()).hexdigest()
        tracking_number = self.next_tracking_number or "9400" + str(int(digest[:16], 16))[:18].zfill(18)
        carrier = (options.carrier or "usps").lower()
        return ShippingLabel(
            tracking_number=tracking_number,
            carrier=carrier,
            label_url=f"https://labels.example.com/{digest[:12]}.pdf",
            tracking_url=f"https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking_number}",
            transaction_id=f"fake_txn_{digest[:12]}",
            service=options.service or "usps_priority",
        )

    def reset(self):
        self.calls.clear()
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.next_tracking_number = None
