"""
Error taxonomy for key loading and token verification.

Every error carries an ``ErrorKind`` in ``kind`` so callers can branch on
the kind instead of on exception class names:

* key-level (``KeyParseError``): one JWKS entry could not be used. The
  fetcher logs and skips the entry; the rest of the key set still loads.
* ``FetchError``: the whole JWKS document could not be retrieved or parsed.
  The cache keeps its previous snapshot.
* token-level (``VerificationError``): a single bearer token was rejected.
  The request continues anonymously.

Messages never contain the token itself.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MALFORMED_KEY_MATERIAL = "malformed_key_material"
    UNSUPPORTED_KEY_TYPE = "unsupported_key_type"
    UNSUPPORTED_CURVE = "unsupported_curve"
    FETCH_ERROR = "fetch_error"
    MALFORMED_TOKEN = "malformed_token"
    MISSING_KEY_ID = "missing_key_id"
    UNKNOWN_KEY = "unknown_key"
    SIGNATURE_INVALID = "signature_invalid"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_NOT_YET_VALID = "token_not_yet_valid"


class JwksAuthError(Exception):
    """Base class for all errors raised by ``crm_service.jwks_auth``."""

    kind: ErrorKind

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


# ---- Key-level ----------------------------------------------------------------------


class KeyParseError(JwksAuthError):
    """A single published key could not be turned into a verification key."""

    def __init__(self, detail: str, kid: str | None = None) -> None:
        super().__init__(detail)
        self.kid = kid


class MalformedKeyMaterial(KeyParseError):
    kind = ErrorKind.MALFORMED_KEY_MATERIAL


class UnsupportedKeyType(KeyParseError):
    kind = ErrorKind.UNSUPPORTED_KEY_TYPE


class UnsupportedCurve(KeyParseError):
    kind = ErrorKind.UNSUPPORTED_CURVE


# ---- Document-level -----------------------------------------------------------------


class FetchError(JwksAuthError):
    """The JWKS document could not be fetched or was not a usable key set."""

    kind = ErrorKind.FETCH_ERROR


# ---- Token-level --------------------------------------------------------------------


class VerificationError(JwksAuthError):
    """A bearer token was rejected. Do not log the token."""


class MalformedToken(VerificationError):
    kind = ErrorKind.MALFORMED_TOKEN


class MissingKeyId(VerificationError):
    kind = ErrorKind.MISSING_KEY_ID


class UnknownKey(VerificationError):
    kind = ErrorKind.UNKNOWN_KEY


class SignatureInvalid(VerificationError):
    kind = ErrorKind.SIGNATURE_INVALID


class TokenExpired(VerificationError):
    kind = ErrorKind.TOKEN_EXPIRED


class TokenNotYetValid(VerificationError):
    kind = ErrorKind.TOKEN_NOT_YET_VALID
