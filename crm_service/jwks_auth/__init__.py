"""
Standalone utility to verify provider-issued bearer tokens against a JWKS.

This package has no dependency on other app packages (crm_service.routers,
crm_service.security, etc.). Build one ``TokenVerifier`` per process with
``TokenVerifier.from_config()`` and call ``verify(token)`` to get an
``AuthenticatedIdentity``.
"""

from .config import JwksAuthConfig
from .context import AuthenticatedIdentity
from .errors import (
    ErrorKind,
    FetchError,
    JwksAuthError,
    KeyParseError,
    MalformedKeyMaterial,
    MalformedToken,
    MissingKeyId,
    SignatureInvalid,
    TokenExpired,
    TokenNotYetValid,
    UnknownKey,
    UnsupportedCurve,
    UnsupportedKeyType,
    VerificationError,
)
from .fetcher import JwksFetcher
from .key_cache import KeyCache, KeySnapshot
from .keys import KeyFamily, PublishedKey, VerificationKey, parse_key
from .singleflight import SingleFlight
from .verifier import Claims, TokenVerifier

__all__ = [
    "AuthenticatedIdentity",
    "Claims",
    "ErrorKind",
    "FetchError",
    "JwksAuthConfig",
    "JwksAuthError",
    "JwksFetcher",
    "KeyCache",
    "KeyFamily",
    "KeyParseError",
    "KeySnapshot",
    "MalformedKeyMaterial",
    "MalformedToken",
    "MissingKeyId",
    "PublishedKey",
    "SignatureInvalid",
    "SingleFlight",
    "TokenExpired",
    "TokenNotYetValid",
    "TokenVerifier",
    "UnknownKey",
    "UnsupportedCurve",
    "UnsupportedKeyType",
    "VerificationError",
    "VerificationKey",
    "parse_key",
]
