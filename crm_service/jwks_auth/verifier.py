"""
Verify provider-signed bearer tokens and extract the caller's identity.

Background for newcomers:
    When a client sends ``Authorization: Bearer <token>``, the token is a JWT:
    three base64url segments ``header.payload.signature``. Before we trust
    **anything** in the payload we must:

    1. Read the ``kid`` (Key ID) from the *unverified* header. It only tells us
       which published key to try; it proves nothing by itself.
    2. Find that key in the JWKS cache, refreshing the cache once if the key is
       unknown or the cache is older than its TTL.
    3. Check that the token's declared ``alg`` belongs to the key's family and
       verify the **signature** over ``header.payload``.
    4. Check it hasn't **expired** (``exp``) and isn't used before its start
       time (``nbf``).

    Only after all four steps pass do we read ``sub`` and hand an
    ``AuthenticatedIdentity`` to the rest of the app.
"""

from __future__ import annotations

import binascii
import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import jwt
from jwt.utils import base64url_decode

from .config import JwksAuthConfig
from .context import AuthenticatedIdentity
from .errors import (
    FetchError,
    MalformedToken,
    MissingKeyId,
    SignatureInvalid,
    TokenExpired,
    TokenNotYetValid,
    UnknownKey,
)
from .fetcher import JwksFetcher
from .key_cache import KeyCache
from .keys import VerificationKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Claims:
    """Claims of a token whose signature has been verified."""

    subject: str
    expires_at: float
    not_before: float | None
    key_id: str
    algorithm: str
    payload: Mapping[str, Any] = field(repr=False)


def _split(token: str) -> tuple[str, str, str]:
    if not isinstance(token, str):
        raise MalformedToken("Invalid token: not a string")
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        raise MalformedToken("Invalid token: expected three dot-separated segments")
    return parts[0], parts[1], parts[2]


def _read_header(token: str) -> dict[str, Any]:
    """
    Decode the JWT header **without** validating the token. PyJWT also rejects
    a non-object header and a non-string ``kid`` here.
    """
    try:
        return jwt.get_unverified_header(token)
    except jwt.InvalidTokenError as e:
        raise MalformedToken(f"Invalid token: {type(e).__name__}") from e


def _numeric_claim(payload: Mapping[str, Any], name: str, required: bool) -> float | None:
    value = payload.get(name)
    if value is None:
        if required:
            raise MalformedToken(f"Invalid token: missing '{name}' claim")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedToken(f"Invalid token: '{name}' claim is not numeric")
    if not math.isfinite(value):
        raise MalformedToken(f"Invalid token: '{name}' claim is not finite")
    return float(value)


class TokenVerifier:
    """
    Verifies bearer tokens against the provider's published keys.

    One instance should live for the whole process so that its key cache is
    shared by all requests. ``verify`` is safe to call from many threads.
    """

    def __init__(
        self,
        cache: KeyCache,
        fetcher: JwksFetcher,
        leeway_seconds: float = 0,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._leeway = max(0.0, float(leeway_seconds))

    @classmethod
    def from_config(cls, config: JwksAuthConfig | None = None, session: Any = None) -> TokenVerifier:
        """Wire cache and fetcher from config (loaded from the environment if None)."""
        config = config or JwksAuthConfig.from_environ()
        cache = KeyCache(ttl_seconds=config.jwks_cache_ttl_seconds)
        fetcher = JwksFetcher(
            config.jwks_uri,
            cache,
            timeout_seconds=config.jwks_fetch_timeout_seconds,
            min_refresh_interval_seconds=config.jwks_min_refresh_interval_seconds,
            session=session,
        )
        return cls(cache, fetcher, leeway_seconds=config.clock_skew_seconds)

    @property
    def cache(self) -> KeyCache:
        return self._cache

    @property
    def fetcher(self) -> JwksFetcher:
        return self._fetcher

    def _resolve_key(self, kid: str) -> VerificationKey:
        # Judge one snapshot; a refresh finished by another request replaces it.
        observed = self._cache.snapshot
        if observed is not None and observed.age(self._cache.now()) < self._cache.ttl_seconds:
            key = observed.get(kid)
            if key is not None:
                return key
            # Key not found: the provider may have rotated keys. Refresh once.
            logger.info("kid not in cached JWKS; refreshing for possible key rotation")
        else:
            logger.debug("JWKS cache empty or stale; refreshing")

        fetch_error: FetchError | None = None
        try:
            self._fetcher.refresh(observed=observed)
        except FetchError as e:
            # Keep serving from the last good snapshot, stale or not.
            logger.warning("JWKS refresh failed (%s); using last known keys", e.detail)
            fetch_error = e

        key = self._cache.lookup(kid)
        if key is None:
            raise UnknownKey("Invalid token: unknown signing key") from fetch_error
        return key

    def verify_claims(self, token: str, now: float | None = None) -> Claims:
        """
        Verify the token and return its claims.

        Raises a ``VerificationError`` subclass (``MalformedToken``,
        ``MissingKeyId``, ``UnknownKey``, ``SignatureInvalid``,
        ``TokenExpired``, ``TokenNotYetValid``) on rejection.
        """
        header_b64, payload_b64, signature_b64 = _split(token)
        header = _read_header(token)

        kid = header.get("kid")
        if not kid:
            raise MissingKeyId("Invalid token: missing key id")
        alg = header.get("alg")
        if not isinstance(alg, str) or not alg:
            raise MalformedToken("Invalid token: missing algorithm")

        key = self._resolve_key(kid)

        if not key.accepts(alg):
            raise SignatureInvalid(f"Invalid token: algorithm {alg} not allowed for {key.family.value} key")
        try:
            signature = base64url_decode(signature_b64)
        except (binascii.Error, ValueError) as e:
            raise SignatureInvalid("Invalid token: undecodable signature") from e
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        if not key.verify(alg, signing_input, signature):
            raise SignatureInvalid("Invalid token: signature")

        # Signature is good; the payload can be trusted from here on.
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise MalformedToken(f"Invalid token: {type(e).__name__}") from e

        now = time.time() if now is None else now
        exp = _numeric_claim(payload, "exp", required=True)
        if exp <= now - self._leeway:
            raise TokenExpired("Token expired")
        nbf = _numeric_claim(payload, "nbf", required=False)
        if nbf is not None and nbf > now + self._leeway:
            raise TokenNotYetValid("Token not yet valid")

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedToken("Invalid token: missing subject")

        return Claims(
            subject=subject,
            expires_at=exp,
            not_before=nbf,
            key_id=kid,
            algorithm=alg,
            payload=payload,
        )

    def verify(self, token: str, now: float | None = None) -> AuthenticatedIdentity:
        """Verify the token and return the identity it establishes."""
        claims = self.verify_claims(token, now=now)
        return AuthenticatedIdentity(subject=claims.subject)
