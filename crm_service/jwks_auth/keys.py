"""
Turn published JWKS entries into ready-to-use verification keys.

Background for newcomers:
    The identity provider publishes its public signing keys as JSON objects
    (JWKs). An RSA key carries its modulus ``n`` and exponent ``e``; an EC key
    carries its curve name ``crv`` and point coordinates ``x``/``y``. All the
    numbers are unsigned big-endian integers encoded as base64url without
    padding.

    A parsed key remembers its family (RSA or EC) and which JWS ``alg`` values
    it is allowed to verify. The verifier refuses any token whose declared
    ``alg`` does not belong to the key's family, so a token cannot talk us into
    checking an RSA key with HMAC (the classic "algorithm confusion" attack).
"""

from __future__ import annotations

import binascii
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import get_default_algorithms
from jwt.utils import base64url_decode

from .errors import MalformedKeyMaterial, UnsupportedCurve, UnsupportedKeyType

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")

# PyJWT's algorithm objects (RS*/PS*/ES* need the ``cryptography`` backend).
_ALGORITHMS = get_default_algorithms()


class KeyFamily(str, Enum):
    RSA = "RSA"
    EC = "EC"


@dataclass(frozen=True)
class _Curve:
    name: str
    curve: ec.EllipticCurve
    algorithm: str


# Only the NIST curves registered for JWS. Anything else is UnsupportedCurve.
_CURVES: dict[str, _Curve] = {
    "P-256": _Curve("P-256", ec.SECP256R1(), "ES256"),
    "P-384": _Curve("P-384", ec.SECP384R1(), "ES384"),
    "P-521": _Curve("P-521", ec.SECP521R1(), "ES512"),
}

_RSA_ALGORITHMS = frozenset({"RS256", "RS384", "RS512", "PS256", "PS384", "PS512"})


@dataclass(frozen=True)
class PublishedKey:
    """One entry of the provider's key document, as published."""

    kid: str
    kty: str
    material: Mapping[str, Any] = field(repr=False)

    @classmethod
    def from_dict(cls, entry: Mapping[str, Any]) -> PublishedKey:
        kid = entry.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MalformedKeyMaterial("JWK is missing a string 'kid'")
        kty = entry.get("kty")
        return cls(kid=kid, kty=kty if isinstance(kty, str) else "", material=dict(entry))


@dataclass(frozen=True)
class VerificationKey(ABC):
    """
    Parsed public key, tagged with its family.

    Subclasses bind the family to the set of JWS algorithms it may verify.
    Instances are immutable and safe to share between threads.
    """

    kid: str
    public_key: Any = field(repr=False)

    family: KeyFamily = field(init=False)

    @property
    @abstractmethod
    def algorithms(self) -> frozenset[str]: ...

    def accepts(self, alg: str) -> bool:
        return alg in self.algorithms

    def verify(self, alg: str, message: bytes, signature: bytes) -> bool:
        """
        Check ``signature`` over ``message`` with this key.

        Returns False for a wrong signature and for any ``alg`` this key does
        not accept; never raises for bad input.
        """
        if not self.accepts(alg):
            return False
        algorithm = _ALGORITHMS.get(alg)
        if algorithm is None:
            return False
        try:
            return bool(algorithm.verify(message, self.public_key, signature))
        except (ValueError, TypeError):
            return False


@dataclass(frozen=True)
class RSAVerificationKey(VerificationKey):
    family: KeyFamily = field(init=False, default=KeyFamily.RSA)

    @property
    def algorithms(self) -> frozenset[str]:
        return _RSA_ALGORITHMS


@dataclass(frozen=True)
class ECVerificationKey(VerificationKey):
    curve: str = "P-256"
    family: KeyFamily = field(init=False, default=KeyFamily.EC)

    @property
    def algorithms(self) -> frozenset[str]:
        # ES256 is only valid on P-256, ES384 on P-384, ES512 on P-521.
        return frozenset({_CURVES[self.curve].algorithm})


def _b64url_uint(material: Mapping[str, Any], name: str, kid: str) -> int:
    raw = material.get(name)
    if not isinstance(raw, str) or not raw:
        raise MalformedKeyMaterial(f"JWK field '{name}' missing or not a string", kid=kid)
    if not _BASE64URL_RE.match(raw):
        raise MalformedKeyMaterial(f"JWK field '{name}' is not base64url", kid=kid)
    try:
        data = base64url_decode(raw)
    except (binascii.Error, ValueError) as e:
        raise MalformedKeyMaterial(f"JWK field '{name}' is not base64url", kid=kid) from e
    if not data:
        raise MalformedKeyMaterial(f"JWK field '{name}' is empty", kid=kid)
    return int.from_bytes(data, "big")


def _parse_rsa(key: PublishedKey) -> RSAVerificationKey:
    n = _b64url_uint(key.material, "n", key.kid)
    e = _b64url_uint(key.material, "e", key.kid)
    try:
        public_key = rsa.RSAPublicNumbers(e, n).public_key()
    except ValueError as exc:
        raise MalformedKeyMaterial(f"Invalid RSA public numbers: {exc}", kid=key.kid) from exc
    return RSAVerificationKey(kid=key.kid, public_key=public_key)


def _parse_ec(key: PublishedKey) -> ECVerificationKey:
    crv = key.material.get("crv")
    curve = _CURVES.get(crv) if isinstance(crv, str) else None
    if curve is None:
        raise UnsupportedCurve(f"Unsupported curve: {crv!r}", kid=key.kid)

    x = _b64url_uint(key.material, "x", key.kid)
    y = _b64url_uint(key.material, "y", key.kid)
    try:
        public_key = ec.EllipticCurvePublicNumbers(x, y, curve.curve).public_key()
    except ValueError as exc:
        # Raised when (x, y) is not a point on the curve.
        raise MalformedKeyMaterial(f"Invalid EC point for {curve.name}", kid=key.kid) from exc
    return ECVerificationKey(kid=key.kid, public_key=public_key, curve=curve.name)


def parse_key(entry: Mapping[str, Any] | PublishedKey) -> VerificationKey:
    """
    Parse one JWKS entry into a ``VerificationKey``.

    Raises ``UnsupportedKeyType`` for any ``kty`` other than RSA/EC,
    ``UnsupportedCurve`` for EC curves other than P-256/P-384/P-521, and
    ``MalformedKeyMaterial`` when fields are missing or do not decode.
    """
    key = entry if isinstance(entry, PublishedKey) else PublishedKey.from_dict(entry)

    if key.kty == KeyFamily.RSA.value:
        return _parse_rsa(key)
    if key.kty == KeyFamily.EC.value:
        return _parse_ec(key)
    raise UnsupportedKeyType(f"Unsupported key type: {key.kty!r}", kid=key.kid)
