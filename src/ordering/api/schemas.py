"""Pydantic request schemas for the Ordering API.

These are external contracts, separate from the ``Order`` record. Field
names are camelCase on the wire; models accept either spelling. Prices
and amounts are kept as given so the order model does the decimal
conversion and the cent tolerance check in one place.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartLineSchema(_CamelModel):
    id: str
    name: str | None = None
    price: float | str
    quantity: int = Field(ge=1)


class AddressSchema(_CamelModel):
    name: str | None = None
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = "US"
    phone: str | None = None
    email: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(_CamelModel):
    cart_list: list[CartLineSchema] = Field(min_length=1)
    amount_paid: float | str
    payment_intent_id: str | None = None
    payment_status: str | None = None
    shipping_address: AddressSchema | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "cartList": [{"id": "p-1", "name": "Python Basics", "price": 29.99, "quantity": 2}],
                    "amountPaid": 59.98,
                    "paymentIntentId": "pi_123",
                }
            ]
        },
    )


class UpdateStatusRequest(_CamelModel):
    status: str


class RecordTrackingRequest(_CamelModel):
    tracking_number: str = Field(min_length=1)
    tracking_carrier: str | None = None
    label_url: str | None = None
    tracking_url: str | None = None
    status: str | None = None


class GenerateLabelRequest(_CamelModel):
    carrier: str | None = None
    service: str | None = None
    length: float | None = Field(default=None, gt=0)
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    weight: float | None = Field(default=None, gt=0)
    from_address: AddressSchema | None = None
    to_address: AddressSchema | None = None


class RefundRequest(_CamelModel):
    amount: int | None = Field(default=None, gt=0, description="Refund amount in minor units; full refund if omitted")
    reason: str | None = None
