"""
Pytest fixtures for the test suite.

Keys are generated once per session (RSA generation is slow). Network access
is replaced by a ``MagicMock`` session whose ``get`` returns canned JWKS
responses, and cache time is driven by ``FakeClock`` so TTL tests never sleep.
"""
from __future__ import annotations

import time
from unittest.mock import MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from crm_service.jwks_auth import JwksFetcher, KeyCache, TokenVerifier

JWKS_URI = "https://idp.example.test/auth/v1/.well-known/jwks.json"


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def jwks_response(keys: list[dict] | None = None, status_code: int = 200, body: object = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = {"keys": keys or []} if body is None else body
    return resp


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_2():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def rsa_jwk(rsa_private_key) -> dict:
    jwk = RSAAlgorithm.to_jwk(rsa_private_key.public_key(), as_dict=True)
    jwk["kid"] = "rsa-1"
    return jwk


@pytest.fixture
def rsa_jwk_2(rsa_private_key_2) -> dict:
    jwk = RSAAlgorithm.to_jwk(rsa_private_key_2.public_key(), as_dict=True)
    jwk["kid"] = "rsa-2"
    return jwk


@pytest.fixture
def ec_jwk(ec_private_key) -> dict:
    jwk = ECAlgorithm.to_jwk(ec_private_key.public_key(), as_dict=True)
    jwk["kid"] = "ec-1"
    return jwk


@pytest.fixture
def make_token():
    """Factory: sign a token with ``key`` under ``kid``; claims override defaults."""

    def _make(key, kid: str | None, algorithm: str = "RS256", **claims) -> str:
        payload = {"sub": "user-1", "exp": int(time.time()) + 300}
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"kid": kid} if kid is not None else {}
        return jwt.encode(payload, key, algorithm=algorithm, headers=headers)

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> KeyCache:
    return KeyCache(ttl_seconds=3600, clock=clock)


@pytest.fixture
def session(rsa_jwk, ec_jwk) -> MagicMock:
    """HTTP session whose GET returns a JWKS with one RSA and one EC key."""
    s = MagicMock()
    s.get.return_value = jwks_response([rsa_jwk, ec_jwk])
    return s


@pytest.fixture
def fetcher(cache, session) -> JwksFetcher:
    return JwksFetcher(JWKS_URI, cache, timeout_seconds=5, min_refresh_interval_seconds=0, session=session)


@pytest.fixture
def verifier(cache, fetcher) -> TokenVerifier:
    return TokenVerifier(cache, fetcher)
