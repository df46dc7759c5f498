"""Error taxonomy shared by every bounded context.

Domain rule violations reuse protean's exception types (a dict of field ->
messages); failures of external collaborators derive from
``ExternalServiceError``. Each kind carries the HTTP status it maps to, so
the HTTP layer needs a single handler.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


# ---------------------------------------------------------------------------
# Domain rule violations (4xx)
# ---------------------------------------------------------------------------
class InsufficientStockError(ValidationError):
    status_code = 400
    code = "insufficient_stock"

    def __init__(self, product_id: str, requested: int, available: int, product_name: str | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        label = product_name or product_id
        super().__init__({"stock": [f"Insufficient stock for {label}: requested {requested}, available {available}"]})


class AlreadyRefundedError(InvalidOperationError):
    status_code = 400
    code = "already_refunded"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__({"paymentStatus": [f"Order {order_id} has already been refunded"]})


class ConcurrentModificationError(InvalidOperationError):
    status_code = 409
    code = "conflict"


class ForbiddenError(InvalidOperationError):
    status_code = 403
    code = "forbidden"


class AddressIncompleteError(ValidationError):
    status_code = 400
    code = "address_incomplete"


class NoRatesError(ValidationError):
    status_code = 400
    code = "no_rates"


class SignatureInvalidError(ValidationError):
    status_code = 400
    code = "signature_invalid"

    def __init__(self, reason: str = "Webhook signature verification failed"):
        super().__init__({"signature": [reason]})


# ---------------------------------------------------------------------------
# External collaborator failures (5xx unless stated otherwise)
# ---------------------------------------------------------------------------
class ExternalServiceError(Exception):
    """Base for failures that originate outside the process."""

    status_code = 503
    code = "service_unavailable"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def messages(self) -> dict:
        return {"_service": [self.message], **self.details}


class ServiceNotConfiguredError(ExternalServiceError):
    code = "not_configured"

    def __init__(self, service: str):
        super().__init__(f"{service} is not configured")


class StockContentionError(ExternalServiceError):
    code = "stock_contended"

    def __init__(self, product_id: str, attempts: int):
        self.product_id = product_id
        super().__init__(
            "Stock for this product is being updated concurrently. Please try again.",
            {"productId": product_id, "attempts": attempts},
        )


class PaymentProviderError(ExternalServiceError):
    """Provider rejected or failed a call. Card and request errors are the caller's to fix."""

    code = "payment_provider_error"

    def __init__(self, message: str, client_error: bool = False, provider_code: str | None = None):
        self.client_error = client_error
        self.status_code = 400 if client_error else 500
        details = {"providerCode": provider_code} if provider_code else None
        super().__init__(message, details)


class ShippingUnavailableError(ExternalServiceError):
    code = "shipping_unavailable"

    def __init__(self, diagnostic: str | None = None):
        self.diagnostic = diagnostic
        super().__init__("Shipping service temporarily unavailable. Please try again or use manual tracking.")


class StorageFailure(ExternalServiceError):
    status_code = 500
    code = "storage_error"


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------
def http_status_for(exc: Exception) -> int:
    status = getattr(exc, "status_code", None)
    if status:
        return status
    if isinstance(exc, ObjectNotFoundError):
        return 404
    if isinstance(exc, InvalidOperationError):
        return 409
    if isinstance(exc, ValidationError):
        return 400
    return 500


def error_code_for(exc: Exception) -> str:
    code = getattr(exc, "code", None)
    if code:
        return code
    if isinstance(exc, ObjectNotFoundError):
        return "not_found"
    if isinstance(exc, InvalidOperationError):
        return "conflict"
    if isinstance(exc, ValidationError):
        return "validation_error"
    return "internal_error"


def first_message(messages) -> str:
    """Pull the first human-readable message out of a protean-style messages dict."""
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, (list, tuple)) and value:
                return str(value[0])
            if isinstance(value, str):
                return value
        return "Request failed"
    return str(messages)


def error_body(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None)
    if isinstance(exc, ExternalServiceError):
        message = exc.message
    else:
        message = first_message(messages) if messages is not None else str(exc)
    details = dict(messages) if isinstance(messages, dict) else {}
    # Compensation outcomes attached by multi-step operations travel with the error.
    rollback = getattr(exc, "rollback", None)
    if rollback is not None:
        details["rollback"] = [outcome.to_dict() for outcome in rollback]
    return {
        "message": message,
        "error": error_code_for(exc),
        "details": details,
    }
