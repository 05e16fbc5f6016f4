"""Tests for parsing published JWKs into verification keys."""

import dataclasses

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from crm_service.jwks_auth.errors import ErrorKind, MalformedKeyMaterial, UnsupportedCurve, UnsupportedKeyType
from crm_service.jwks_auth.keys import (
    ECVerificationKey,
    KeyFamily,
    PublishedKey,
    RSAVerificationKey,
    VerificationKey,
    parse_key,
)


def test_parse_rsa_key(rsa_jwk):
    key = parse_key(rsa_jwk)
    assert isinstance(key, RSAVerificationKey)
    assert key.kid == "rsa-1"
    assert key.family is KeyFamily.RSA
    assert key.accepts("RS256")
    assert key.accepts("PS512")
    assert not key.accepts("ES256")
    assert not key.accepts("HS256")
    assert not key.accepts("none")


def test_parse_ec_p256_key(ec_jwk):
    key = parse_key(ec_jwk)
    assert isinstance(key, ECVerificationKey)
    assert key.family is KeyFamily.EC
    assert key.curve == "P-256"
    assert key.algorithms == frozenset({"ES256"})


@pytest.mark.parametrize(
    "curve, crv, alg",
    [(ec.SECP384R1(), "P-384", "ES384"), (ec.SECP521R1(), "P-521", "ES512")],
)
def test_parse_ec_larger_curves(curve, crv, alg):
    jwk = ECAlgorithm.to_jwk(ec.generate_private_key(curve).public_key(), as_dict=True)
    jwk["kid"] = "ec-big"
    key = parse_key(jwk)
    assert key.curve == crv
    assert key.algorithms == frozenset({alg})


def test_unsupported_key_type_oct():
    with pytest.raises(UnsupportedKeyType) as exc_info:
        parse_key({"kty": "oct", "kid": "hmac-1", "k": "c2VjcmV0"})
    assert exc_info.value.kind is ErrorKind.UNSUPPORTED_KEY_TYPE
    assert exc_info.value.kid == "hmac-1"


def test_missing_kty_is_unsupported():
    with pytest.raises(UnsupportedKeyType):
        parse_key({"kid": "k"})


def test_unsupported_curve(ec_jwk):
    ec_jwk["crv"] = "secp256k1"
    with pytest.raises(UnsupportedCurve) as exc_info:
        parse_key(ec_jwk)
    assert exc_info.value.kind is ErrorKind.UNSUPPORTED_CURVE


def test_rsa_missing_modulus(rsa_jwk):
    del rsa_jwk["n"]
    with pytest.raises(MalformedKeyMaterial):
        parse_key(rsa_jwk)


@pytest.mark.parametrize("bad", ["!!!not-base64!!!", "", "A", 12345])
def test_rsa_bad_exponent_encoding(rsa_jwk, bad):
    rsa_jwk["e"] = bad
    with pytest.raises(MalformedKeyMaterial):
        parse_key(rsa_jwk)


def test_ec_point_not_on_curve(ec_jwk):
    # (1, 1) is not a point on P-256.
    ec_jwk["x"] = "AQ"
    ec_jwk["y"] = "AQ"
    with pytest.raises(MalformedKeyMaterial):
        parse_key(ec_jwk)


def test_missing_kid_is_malformed(rsa_jwk):
    del rsa_jwk["kid"]
    with pytest.raises(MalformedKeyMaterial):
        parse_key(rsa_jwk)


def test_published_key_is_immutable(rsa_jwk):
    published = PublishedKey.from_dict(rsa_jwk)
    with pytest.raises(dataclasses.FrozenInstanceError):
        published.kid = "other"
    assert parse_key(published).kid == "rsa-1"


def test_rsa_verify(rsa_private_key, rsa_jwk):
    key = parse_key(rsa_jwk)
    message = b"header.payload"
    signature = RSAAlgorithm(RSAAlgorithm.SHA256).sign(message, rsa_private_key)

    assert key.verify("RS256", message, signature) is True
    tampered = bytes([signature[0] ^ 0x01]) + signature[1:]
    assert key.verify("RS256", message, tampered) is False
    assert key.verify("RS256", b"header.other", signature) is False
    # Algorithm outside the key's family is refused outright.
    assert key.verify("HS256", message, signature) is False


def test_ec_verify(ec_private_key, ec_jwk):
    key = parse_key(ec_jwk)
    message = b"header.payload"
    signature = ECAlgorithm(ECAlgorithm.SHA256).sign(message, ec_private_key)

    assert key.verify("ES256", message, signature) is True
    assert key.verify("ES256", message, signature[:-1]) is False
    assert key.verify("ES384", message, signature) is False


def test_verification_key_is_immutable(rsa_jwk):
    key = parse_key(rsa_jwk)
    with pytest.raises(dataclasses.FrozenInstanceError):
        key.kid = "other"


def test_verification_key_base_cannot_be_instantiated():
    # Only the family variants know which algorithms they accept.
    with pytest.raises(TypeError):
        VerificationKey(kid="x", public_key=None)
