"""Pydantic request/response schemas for the Payments API.

Field names are camelCase on the wire; models accept either spelling.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateIntentRequest(_CamelModel):
    amount: int = Field(ge=50, description="Amount in minor units (cents)")
    currency: str = Field(default="usd", min_length=3, max_length=3)
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"amount": 5998, "currency": "usd", "metadata": {"cartSize": "2"}}]},
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class IntentResponse(_CamelModel):
    client_secret: str | None = None
    payment_intent_id: str
    amount: int
    currency: str
    status: str


class VerifyResponse(_CamelModel):
    payment_intent_id: str
    status: str
    amount: int
    currency: str
    metadata: dict = Field(default_factory=dict)


class WebhookAck(BaseModel):
    received: bool = True
