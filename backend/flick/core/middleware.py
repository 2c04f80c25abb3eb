"""
Request middleware.

- CorrelationIDMiddleware: per-request ID for log correlation
- JWTValidationMiddleware: Supabase token -> request.state.user
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from flick.core.auth import AuthOptionalUser, get_signing_key

logger = logging.getLogger(__name__)

REQUEST_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return correlation_id_var.get()


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Reuse the client's request ID (or mint one) and echo it as X-Request-ID."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = next(
            (request.headers.get(name) for name in REQUEST_ID_HEADERS if request.headers.get(name)),
            None,
        )
        request_id = incoming or str(uuid.uuid4())
        request.state.correlation_id = request_id

        token = correlation_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token


class JWTValidationMiddleware(BaseHTTPMiddleware):
    """
    Authenticate the caller if a Bearer token is present.

    Never rejects a request itself: bad or missing tokens leave an
    anonymous AuthOptionalUser plus token_error on request.state, and
    require_auth_from_state turns that into a 401 where needed.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.user = AuthOptionalUser()
        request.state.token_error = None

        token = _bearer_token(request)
        if token is not None:
            try:
                claims = await self._validate_token(token)
            except JWTError as e:
                request.state.token_error = str(e)
            except Exception as e:
                # JWKS unavailable and similar
                request.state.token_error = f"Auth error: {e}"
            else:
                if claims and claims.get("sub"):
                    request.state.user = AuthOptionalUser(
                        auth_id=claims["sub"], is_authenticated=True
                    )

        return await call_next(request)

    async def _validate_token(self, token: str) -> Optional[dict]:
        """Verified claims; None once exp has passed. Raises JWTError on bad tokens."""
        key = await get_signing_key(token)
        claims = jwt.decode(token, key, algorithms=["RS256", "ES256"], audience="authenticated")

        if claims.get("exp") and time.time() > claims["exp"]:
            return None
        return claims
