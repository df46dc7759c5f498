"""Bearer-token authentication.

Tokens are HS256 JWTs carrying ``{id, email, name, role, iat, exp}``. The
claim set is trusted as-is: no datastore lookup happens per request, so
role changes take effect when the token expires.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
import structlog
from fastapi import Depends, HTTPException, Request

from shared.config import AuthSettings, get_settings
from shared.errors import ServiceNotConfiguredError

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Principal:
    id: str
    email: str | None = None
    name: str | None = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def _signing_secret(settings: AuthSettings) -> str:
    if not settings.secret:
        raise ServiceNotConfiguredError("Authentication")
    return settings.secret


def issue_token(principal: Principal, settings: AuthSettings | None = None) -> str:
    settings = settings or get_settings().auth
    secret = _signing_secret(settings)
    now = datetime.now(UTC)
    claims = {
        "id": principal.id,
        "email": principal.email,
        "name": principal.name,
        "role": principal.role,
        "iat": now,
        "exp": now + timedelta(seconds=settings.ttl_seconds),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_token(token: str, settings: AuthSettings | None = None) -> Principal:
    """Verify a token and return its principal. Raises ``jwt.InvalidTokenError``."""
    settings = settings or get_settings().auth
    claims = jwt.decode(token, _signing_secret(settings), algorithms=[ALGORITHM], options={"require": ["exp", "id"]})
    return Principal(
        id=str(claims["id"]),
        email=claims.get("email"),
        name=claims.get("name"),
        role=claims.get("role") or "user",
    )


def current_principal(request: Request) -> Principal:
    """FastAPI dependency: the authenticated caller, or 401."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return decode_token(token.strip())
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("invalid_bearer_token", error=str(exc))
        raise HTTPException(status_code=401, detail="Invalid token") from exc


def require_admin(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal
