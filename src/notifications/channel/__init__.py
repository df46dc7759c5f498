"""Email channel registry — pluggable transactional email transport.

Uses the fake adapter by default; the Brevo adapter is selected with
EMAIL_ADAPTER=brevo.
"""

import threading

from shared.config import get_settings

_email_instance = None
_lock = threading.Lock()


def get_email_adapter():
    """Return the configured email adapter (singleton)."""
    global _email_instance
    if _email_instance is None:
        with _lock:
            if _email_instance is None:
                settings = get_settings()
                adapter = settings.adapters.email
                if adapter == "fake":
                    from notifications.channel.fake_email import FakeEmailAdapter

                    _email_instance = FakeEmailAdapter()
                elif adapter == "brevo":
                    from notifications.channel.brevo_email import BrevoEmailAdapter

                    _email_instance = BrevoEmailAdapter(settings.email)
                else:
                    raise ValueError(f"Unknown email adapter: {adapter}")
    return _email_instance


def set_email_adapter(adapter) -> None:
    global _email_instance
    _email_instance = adapter


def reset_email_adapter():
    """Reset the email adapter singleton (useful for testing)."""
    global _email_instance
    _email_instance = None
