"""Codebook storefront FastAPI application.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ordering.api.routes import admin_order_router, order_router
from payments.api.routes import payment_router
from shared.errors import ExternalServiceError, error_body, http_status_for
from shared.logging import bind_request, configure_logging

logger = structlog.get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, Stripe-Signature",
}

_HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("storefront_started")
    yield
    logger.info("storefront_stopped")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Codebook Storefront API",
    description="Orders, stock, payments and shipping for the Codebook store",
    lifespan=lifespan,
)


def allowed_methods(path: str) -> list[str]:
    """Verbs registered for ``path`` across all routes, plus OPTIONS."""
    methods = set()
    for route in app.routes:
        regex = getattr(route, "path_regex", None)
        if regex is not None and regex.match(path):
            methods.update(getattr(route, "methods", None) or ())
    methods.discard("HEAD")
    return sorted(methods) + ["OPTIONS"]


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Bind a request id for logging, answer preflights, and tag every response for CORS."""
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    bind_request(request_id, method=request.method, path=request.url.path)

    if request.method == "OPTIONS":
        headers = {**CORS_HEADERS, "Access-Control-Allow-Methods": ", ".join(allowed_methods(request.url.path))}
        return Response(status_code=204, headers=headers)

    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = CORS_HEADERS["Access-Control-Allow-Origin"]
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def _error_response(exc: Exception) -> JSONResponse:
    status = http_status_for(exc)
    if status >= 500:
        logger.error("request_failed", error=type(exc).__name__, detail=str(exc))
    else:
        logger.info("request_rejected", status=status, error=type(exc).__name__)
    return JSONResponse(status_code=status, content=error_body(exc))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(exc)


@app.exception_handler(ObjectNotFoundError)
async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    return _error_response(exc)


@app.exception_handler(InvalidOperationError)
async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
    return _error_response(exc)


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        details.setdefault(location, []).append(error.get("msg", "Invalid value"))
    first = next(iter(details.items()), ("body", ["Invalid request"]))
    return JSONResponse(
        status_code=400,
        content={"message": f"{first[0]}: {first[1][0]}", "error": "validation_error", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "error": _HTTP_ERROR_CODES.get(exc.status_code, "http_error"), "details": {}},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "error": "internal_error", "details": {}},
        headers={"Access-Control-Allow-Origin": "*"},
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(payment_router)
app.include_router(order_router)
app.include_router(admin_order_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}
