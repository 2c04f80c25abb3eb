"""
Caller identity for Flick requests.

Players join an event through Supabase anonymous sign-in, so every app
request carries a Supabase access token. JWTValidationMiddleware checks
it against the project's published signing keys and leaves the outcome
on request.state; routes that act for a player depend on
require_auth_from_state and then check the player row belongs to the
caller (ReactionService.authorize).
"""

import asyncio
import logging
import time
from typing import Optional

import httpx
from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel

from flick.core.config import get_settings

logger = logging.getLogger(__name__)

JWKS_PATH = "/auth/v1/.well-known/jwks.json"


class AuthUser(BaseModel):
    """Signed-in caller; auth_id is Supabase auth.uid()."""

    auth_id: str


class AuthOptionalUser(BaseModel):
    auth_id: Optional[str] = None
    is_authenticated: bool = False


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWKSCache:
    """Signing keys fetched from Supabase, reused for TTL seconds."""

    TTL: int = 3600

    def __init__(self) -> None:
        self._jwks: Optional[dict] = None
        self._expires_at = 0.0
        self._lock: Optional[asyncio.Lock] = None

    async def get_keys(self) -> dict:
        if self._jwks is not None and time.time() < self._expires_at:
            return self._jwks

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            # A concurrent request may have refreshed while this one waited
            if self._jwks is None or time.time() >= self._expires_at:
                self._jwks = await self._fetch_keys()
                self._expires_at = time.time() + self.TTL
                logger.info("Loaded %d JWKS signing keys", len(self._jwks.get("keys", [])))
        return self._jwks

    async def _fetch_keys(self) -> dict:
        url = get_settings().supabase_url + JWKS_PATH
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, timeout=10.0)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error("JWKS fetch from %s failed: %s", url, e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to fetch JWKS: {e}",
            )

    def invalidate(self) -> None:
        self._jwks = None
        self._expires_at = 0.0


_jwks_cache = JWKSCache()


async def get_signing_key(token: str) -> dict:
    """Pick the JWKS entry named by the token's kid, else the first published key."""
    keys = (await _jwks_cache.get_keys()).get("keys", [])

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError:
        raise _unauthorized("Invalid token header")

    if not keys:
        raise _unauthorized("No matching signing key found")

    return next((key for key in keys if key.get("kid") == kid), keys[0])


async def require_auth_from_state(request: Request) -> AuthUser:
    """Dependency: the caller JWTValidationMiddleware authenticated, or 401."""
    user: Optional[AuthOptionalUser] = getattr(request.state, "user", None)
    if user is not None and user.is_authenticated and user.auth_id:
        return AuthUser(auth_id=user.auth_id)

    token_error = getattr(request.state, "token_error", None)
    raise _unauthorized(
        f"Authentication failed: {token_error}" if token_error else "Authentication required"
    )
