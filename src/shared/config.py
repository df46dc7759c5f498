"""Runtime configuration read from the environment.

Settings are grouped per external collaborator. A missing secret never
crashes the process at import time; the dependent feature reports itself
as not configured (HTTP 503) when first used.
"""

import os
import threading
from dataclasses import dataclass, field

# Hard upper bounds (seconds) for every external call.
STORE_TIMEOUT = 3.0
PAYMENT_TIMEOUT = 10.0
SHIPPING_TIMEOUT = 15.0
EMAIL_TIMEOUT = 5.0

SHIPPO_SANDBOX_PREFIX = "shippo_test_"


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class PaymentSettings:
    secret_key: str | None = None
    webhook_secret: str | None = None


@dataclass(frozen=True)
class SenderAddress:
    name: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str = "US"
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class ShippingSettings:
    api_key: str | None = None
    sender: SenderAddress = field(default_factory=SenderAddress)

    @property
    def sandbox(self) -> bool:
        return bool(self.api_key) and self.api_key.startswith(SHIPPO_SANDBOX_PREFIX)


@dataclass(frozen=True)
class EmailSettings:
    api_key: str | None = None
    sender_email: str | None = None
    sender_name: str = "Codebook"
    admin_email: str | None = None


@dataclass(frozen=True)
class RuntimeSettings:
    region: str = "eu-north-1"
    table_prefix: str = "codebook"
    base_url: str = "http://localhost:3000"


@dataclass(frozen=True)
class AuthSettings:
    secret: str | None = None
    ttl_seconds: int = 7 * 24 * 3600


@dataclass(frozen=True)
class AdapterSettings:
    store: str = "memory"
    payment: str = "fake"
    carrier: str = "fake"
    email: str = "fake"


@dataclass(frozen=True)
class Settings:
    payment: PaymentSettings = field(default_factory=PaymentSettings)
    shipping: ShippingSettings = field(default_factory=ShippingSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    adapters: AdapterSettings = field(default_factory=AdapterSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            payment=PaymentSettings(
                secret_key=_env("STRIPE_SECRET_KEY") or _env("STRIPE_API_KEY"),
                webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            ),
            shipping=ShippingSettings(
                api_key=_env("SHIPPO_API_KEY"),
                sender=SenderAddress(
                    name=_env("SHIPPO_FROM_NAME"),
                    street=_env("SHIPPO_FROM_STREET1") or _env("SHIPPO_FROM_STREET"),
                    city=_env("SHIPPO_FROM_CITY"),
                    state=_env("SHIPPO_FROM_STATE"),
                    zip=_env("SHIPPO_FROM_ZIP"),
                    country=_env("SHIPPO_FROM_COUNTRY", "US"),
                    email=_env("SHIPPO_FROM_EMAIL"),
                    phone=_env("SHIPPO_FROM_PHONE"),
                ),
            ),
            email=EmailSettings(
                api_key=_env("BREVO_API_KEY"),
                sender_email=_env("BREVO_SENDER_EMAIL"),
                sender_name=_env("BREVO_SENDER_NAME", "Codebook"),
                admin_email=_env("BREVO_ADMIN_EMAIL"),
            ),
            runtime=RuntimeSettings(
                region=_env("AWS_REGION", "eu-north-1"),
                table_prefix=_env("TABLE_PREFIX", "codebook"),
                base_url=_env("BASE_URL", "http://localhost:3000"),
            ),
            auth=AuthSettings(
                secret=_env("JWT_SECRET"),
                ttl_seconds=int(_env("JWT_TTL_SECONDS", str(7 * 24 * 3600))),
            ),
            adapters=AdapterSettings(
                store=_env("STORE_BACKEND", "memory"),
                payment=_env("PAYMENT_GATEWAY", "fake"),
                carrier=_env("CARRIER_ADAPTER", "fake"),
                email=_env("EMAIL_ADAPTER", "fake"),
            ),
        )


_settings: Settings | None = None
_lock = threading.Lock()


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment once."""
    global _settings
    if _settings is None:
        with _lock:
            if _settings is None:
                _settings = Settings.from_env()
    return _settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
