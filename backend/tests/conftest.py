"""Shared pytest fixtures: player tokens, mocked Supabase, simulated time."""

import asyncio
import base64
import os
import time
from typing import Callable, Optional
from unittest.mock import MagicMock

# Settings validate required secrets on first import of flick modules
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("POSTHOG_ENABLED", "false")

import pytest  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from fastapi import Request  # noqa: E402
from jose import jwt  # noqa: E402

PLAYER_AUTH_ID = "auth-player-uuid-12345"


# =============================================================================
# Player tokens (RS256, shaped like Supabase anonymous sign-in)
# =============================================================================


def _new_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _to_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def sign_player_token(claims: dict, private_key_pem: bytes, kid: str) -> str:
    return jwt.encode(claims, private_key_pem, algorithm="RS256", headers={"kid": kid})


@pytest.fixture(scope="session")
def rsa_key_pair():
    # Session scope: key generation is slow
    private_key = _new_rsa_key()
    return private_key, private_key.public_key()


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_key_pair):
    return _to_pem(rsa_key_pair[0])


@pytest.fixture(scope="session")
def jwks_key_id() -> str:
    return "flick-test-key-001"


@pytest.fixture(scope="session")
def test_jwks(rsa_key_pair, jwks_key_id):
    """The body Supabase serves at /auth/v1/.well-known/jwks.json."""
    numbers = rsa_key_pair[1].public_numbers()
    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": jwks_key_id,
                "n": _b64url_uint(numbers.n),
                "e": _b64url_uint(numbers.e),
            }
        ]
    }


@pytest.fixture
def valid_jwt_claims():
    now = int(time.time())
    return {
        "sub": PLAYER_AUTH_ID,
        "aud": "authenticated",
        "role": "authenticated",
        "is_anonymous": True,
        "iat": now,
        "exp": now + 3600,
    }


@pytest.fixture
def valid_jwt_token(valid_jwt_claims, rsa_private_key_pem, jwks_key_id):
    return sign_player_token(valid_jwt_claims, rsa_private_key_pem, jwks_key_id)


@pytest.fixture
def expired_jwt_token(valid_jwt_claims, rsa_private_key_pem, jwks_key_id):
    now = int(time.time())
    claims = {**valid_jwt_claims, "iat": now - 7200, "exp": now - 3600}
    return sign_player_token(claims, rsa_private_key_pem, jwks_key_id)


@pytest.fixture
def wrong_signature_jwt_token(valid_jwt_claims, jwks_key_id):
    """Right kid, wrong key."""
    return sign_player_token(valid_jwt_claims, _to_pem(_new_rsa_key()), jwks_key_id)


@pytest.fixture(autouse=True)
def reset_jwks_cache():
    from flick.core.auth import _jwks_cache

    _jwks_cache.invalidate()
    yield
    _jwks_cache.invalidate()


# =============================================================================
# Requests as seen by route handlers (after JWTValidationMiddleware)
# =============================================================================


def _with_caller(request: MagicMock, auth_id: Optional[str]) -> MagicMock:
    from flick.core.auth import AuthOptionalUser

    request.state.user = AuthOptionalUser(auth_id=auth_id, is_authenticated=auth_id is not None)
    request.state.token_error = None
    return request


@pytest.fixture
def mock_request():
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    request.headers = {}
    return request


@pytest.fixture
def mock_request_authenticated(mock_request):
    return _with_caller(mock_request, PLAYER_AUTH_ID)


@pytest.fixture
def mock_request_unauthenticated(mock_request):
    return _with_caller(mock_request, None)


# =============================================================================
# Mock Supabase Client
# =============================================================================


POSTGREST_CHAIN = ("table", "select", "eq", "in_", "order", "single", "insert", "update", "delete")


@pytest.fixture
def mock_supabase():
    """Supabase client whose query builder chains back to itself."""
    mock = MagicMock()
    for method in POSTGREST_CHAIN:
        getattr(mock, method).return_value = mock
    mock.execute.return_value = MagicMock(data=None, count=None)
    return mock


# =============================================================================
# Simulated Time
# =============================================================================


class FakeTimerHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Timers driven by advance(); callbacks run synchronously in due order."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[FakeTimerHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target

    @property
    def active(self) -> list[FakeTimerHandle]:
        return [h for h in self._handles if not h.cancelled]


class FakeClock:
    """Millisecond clock for RateLimiter."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class MemoryStorage:
    """Dict-backed KeyValueStorage."""

    def __init__(
        self, initial: Optional[dict[str, str]] = None, read_delay: float = 0.0
    ) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.read_delay = read_delay
        self.get_calls = 0
        self.set_calls = 0

    async def get_item(self, key: str) -> Optional[str]:
        self.get_calls += 1
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.set_calls += 1
        self.data[key] = value

    async def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def fake_timers():
    return FakeTimers()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_storage():
    return MemoryStorage()
