"""Shippo carrier adapter.

Creates a shipment with synchronous rating, picks a rate and buys the
label in one call chain. With a ``shippo_test_`` key the adapter runs in
sandbox mode: rates are narrowed to USPS (no carrier registration needed),
an incomplete recipient address is replaced by a known-good one, and a
missing tracking number is synthesised from the transaction id.
"""

import re
from decimal import Decimal, InvalidOperation

import httpx
import structlog

from fulfillment.carrier.port import (
    DEFAULT_PARCEL,
    Address,
    CarrierPort,
    LabelOptions,
    ShippingLabel,
    parcel_weight,
)
from shared.config import SHIPPING_TIMEOUT, ShippingSettings
from shared.errors import AddressIncompleteError, NoRatesError, ServiceNotConfiguredError, ShippingUnavailableError

logger = structlog.get_logger(__name__)

SHIPPO_API_URL = "https://api.goshippo.com"
SANDBOX_CARRIER = "usps"
SANDBOX_RECIPIENT = Address(
    name="Test Customer",
    street1="965 Mission St",
    city="San Francisco",
    state="CA",
    zip="94103",
    country="US",
)
FALLBACK_PHONE = "+1 555 123 4567"

_TRACKING_URLS = {
    "usps": "https://tools.usps.com/go/TrackConfirmAction?tLabels={}",
    "ups": "https://www.ups.com/track?tracknum={}",
    "fedex": "https://www.fedex.com/fedextrack/?trknbr={}",
    "dhl_express": "https://www.dhl.com/en/express/tracking.html?AWB={}",
}


def sandbox_tracking_number(transaction_id: str) -> str:
    """``TEST-`` followed by the last 12 alphanumerics of the transaction id, upper-cased."""
    source = re.sub(r"[^a-zA-Z0-9]", "", transaction_id or "")
    return f"TEST-{source[-12:].upper()}"


def _rate_carrier(rate: dict) -> str:
    servicelevel = rate.get("servicelevel") or {}
    return (rate.get("carrier") or rate.get("provider") or servicelevel.get("carrier") or "").lower()


def _rate_amount(rate: dict) -> Decimal:
    try:
        return Decimal(str(rate.get("amount")))
    except (InvalidOperation, TypeError):
        return Decimal("Infinity")


def select_rate(rates: list[dict], service: str | None = None, carrier: str | None = None) -> dict | None:
    """Rate whose service token matches ``service``, otherwise the cheapest."""
    candidates = rates
    if carrier:
        matching = [rate for rate in rates if carrier.lower() in _rate_carrier(rate)]
        candidates = matching or rates
    if service:
        for rate in candidates:
            if (rate.get("servicelevel") or {}).get("token") == service:
                return rate
    if not candidates:
        return None
    return min(candidates, key=_rate_amount)


class ShippoCarrier(CarrierPort):
    def __init__(self, settings: ShippingSettings, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    @property
    def sandbox(self) -> bool:
        return self.settings.sandbox

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=SHIPPO_API_URL,
            timeout=SHIPPING_TIMEOUT,
            transport=self._transport,
            headers={
                "Authorization": f"ShippoToken {self.settings.api_key}",
                "Content-Type": "application/json",
            },
        )

    # -------------------------------------------------------------------
    # Addresses
    # -------------------------------------------------------------------
    def sender_address(self, options: LabelOptions) -> Address:
        if options.from_address is not None:
            sender = options.from_address
        else:
            configured = self.settings.sender
            sender = Address(
                name=configured.name,
                street1=configured.street,
                city=configured.city,
                state=configured.state,
                zip=configured.zip,
                country=configured.country,
                phone=configured.phone,
                email=configured.email,
            )
        if not sender.email or not sender.phone:
            raise AddressIncompleteError(
                {"fromAddress": ["Sender address must include both email and phone number"]}
            )
        if not sender.is_complete:
            raise AddressIncompleteError({"fromAddress": ["Sender address is incomplete"]})
        return sender

    def recipient_address(self, order, options: LabelOptions) -> Address:
        if options.to_address is not None:
            recipient = options.to_address
        else:
            recipient = Address.from_dict(order.shipping_address)
            if not recipient.is_complete:
                if not self.sandbox:
                    raise AddressIncompleteError(
                        {
                            "shippingAddress": [
                                "Incomplete shipping address. Please ensure street, city, state, and zip are provided."
                            ]
                        }
                    )
                logger.warning("recipient_address_incomplete_using_sandbox_address", order_id=order.id)
                recipient = SANDBOX_RECIPIENT

        if not recipient.is_complete:
            raise AddressIncompleteError(
                {"toAddress": ["Recipient address is incomplete. Required fields: street1, city, state, zip"]}
            )
        return Address(
            name=recipient.name or order.customer_name or "Customer",
            street1=recipient.street1,
            street2=recipient.street2,
            city=recipient.city,
            state=recipient.state,
            zip=recipient.zip,
            country=recipient.country,
            phone=recipient.phone or FALLBACK_PHONE,
            email=recipient.email or order.customer_email or "customer@example.com",
        )

    # -------------------------------------------------------------------
    # Provider calls
    # -------------------------------------------------------------------
    def _post(self, client: httpx.Client, path: str, payload: dict) -> dict:
        try:
            response = client.post(path, json=payload)
        except httpx.HTTPError as exc:
            logger.error("shippo_request_failed", path=path, error=str(exc))
            raise ShippingUnavailableError(f"Shippo API unreachable: {exc}") from exc
        if response.is_error:
            detail = _error_detail(response)
            logger.error("shippo_api_error", path=path, status=response.status_code, detail=detail)
            raise ShippingUnavailableError(f"Shippo API error: {detail}")
        return response.json()

    def _fetch_rates(self, client: httpx.Client, shipment: dict) -> list[dict]:
        rates = shipment.get("rates") or []
        if rates:
            return rates
        try:
            response = client.get(f"/shipments/{shipment.get('object_id')}/rates")
        except httpx.HTTPError as exc:
            logger.warning("shippo_rates_fetch_failed", error=str(exc))
            return []
        if response.is_error:
            logger.warning("shippo_rates_fetch_failed", status=response.status_code)
            return []
        data = response.json()
        return data.get("results", []) if isinstance(data, dict) else data

    def purchase_label(self, order, options: LabelOptions) -> ShippingLabel:
        if not self.settings.api_key:
            raise ServiceNotConfiguredError("Shipping provider")

        sender = self.sender_address(options)
        recipient = self.recipient_address(order, options)
        weight = options.weight or parcel_weight([item.quantity for item in order.items])

        shipment_request = {
            "address_from": sender.to_dict(),
            "address_to": recipient.to_dict(),
            "parcels": [
                {
                    "length": str(options.length or DEFAULT_PARCEL["length"]),
                    "width": str(options.width or DEFAULT_PARCEL["width"]),
                    "height": str(options.height or DEFAULT_PARCEL["height"]),
                    "distance_unit": "in",
                    "weight": str(weight),
                    "mass_unit": "lb",
                }
            ],
            "async": False,
        }

        with self._client() as client:
            shipment = self._post(client, "/shipments/", shipment_request)
            rates = self._fetch_rates(client, shipment)
            if self.sandbox:
                rates = [rate for rate in rates if SANDBOX_CARRIER in _rate_carrier(rate)]
            logger.info(
                "shippo_shipment_created",
                order_id=order.id,
                shipment_id=shipment.get("object_id"),
                rates=len(rates),
                sandbox=self.sandbox,
            )
            rate = select_rate(rates, options.service, None if self.sandbox else options.carrier)
            if rate is None:
                raise NoRatesError(
                    {"rates": ["No shipping rates available. Please check address and parcel dimensions."]}
                )

            transaction = self._post(client, "/transactions/", {"rate": rate.get("object_id"), "async": False})

        if transaction.get("status") == "ERROR":
            messages = transaction.get("messages") or []
            diagnostic = messages[0].get("text") if messages else "Label purchase failed"
            logger.error("shippo_label_purchase_failed", order_id=order.id, diagnostic=diagnostic)
            raise ShippingUnavailableError(diagnostic)

        tracking_status = transaction.get("tracking_status") or {}
        tracking_number = transaction.get("tracking_number") or tracking_status.get("tracking_number")
        transaction_id = transaction.get("object_id") or ""
        if not tracking_number:
            if not self.sandbox:
                raise ShippingUnavailableError("Provider returned no tracking number")
            tracking_number = sandbox_tracking_number(transaction_id)

        carrier = (_rate_carrier(rate) or transaction.get("carrier") or SANDBOX_CARRIER).lower()
        tracking_url = transaction.get("tracking_url_provider")
        if not tracking_url and carrier in _TRACKING_URLS:
            tracking_url = _TRACKING_URLS[carrier].format(tracking_number)

        label = ShippingLabel(
            tracking_number=tracking_number,
            carrier=carrier,
            label_url=transaction.get("label_url") or transaction.get("label_url_pdf"),
            tracking_url=tracking_url,
            transaction_id=transaction_id or None,
            service=(rate.get("servicelevel") or {}).get("token"),
            rate_amount=rate.get("amount"),
        )
        logger.info(
            "shippo_label_purchased",
            order_id=order.id,
            tracking_number=label.tracking_number,
            carrier=label.carrier,
            transaction_id=label.transaction_id,
        )
        return label


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"
