"""Tests for local digest and signature verification helpers."""

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils

from azvault.services.keyvault import (
    JsonWebKey,
    UnsupportedAlgorithmError,
    digest,
    verify_locally,
)
from azvault.services.keyvault.models import b64url_encode


def _int_b64(value: int) -> str:
    return b64url_encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def rsa_jwk(rsa_key):
    numbers = rsa_key.public_key().public_numbers()
    return JsonWebKey(kid="https://my-vault.vault.azure.net/keys/rsa/v1", kty="RSA", n=_int_b64(numbers.n), e=_int_b64(numbers.e))


@pytest.fixture
def ec_jwk(ec_key):
    numbers = ec_key.public_key().public_numbers()
    return JsonWebKey(
        kid="https://my-vault.vault.azure.net/keys/ec/v1",
        kty="EC",
        crv="P-256",
        x=b64url_encode(numbers.x.to_bytes(32, "big")),
        y=b64url_encode(numbers.y.to_bytes(32, "big")),
    )


class TestDigest:
    """Tests for digest()."""

    def test_sha256_for_rs256(self):
        value = digest("hello", "RS256")
        hasher = hashes.Hash(hashes.SHA256())
        hasher.update(b"hello")
        assert value == hasher.finalize()

    @pytest.mark.parametrize("alg,size", [("PS384", 48), ("ES512", 64), ("ES256K", 32)])
    def test_digest_size(self, alg, size):
        assert len(digest(b"hello", alg)) == size

    def test_unknown_algorithm(self):
        with pytest.raises(UnsupportedAlgorithmError):
            digest("hello", "HS256")


class TestJsonWebKey:
    """Tests for building public keys from JWKs."""

    def test_rsa_public_key(self, rsa_key, rsa_jwk):
        assert rsa_jwk.public_key().public_numbers() == rsa_key.public_key().public_numbers()

    def test_ec_public_key(self, ec_key, ec_jwk):
        assert ec_jwk.public_key().public_numbers() == ec_key.public_key().public_numbers()

    def test_unsupported_key_type(self):
        with pytest.raises(ValueError):
            JsonWebKey(kty="oct", k="AAAA").public_key()

    def test_unsupported_curve(self):
        with pytest.raises(ValueError):
            JsonWebKey(kty="EC", crv="P-999", x="AA", y="AA").public_key()


class TestVerifyLocally:
    """Tests for verify_locally()."""

    def test_rs256(self, rsa_key, rsa_jwk):
        value = digest("payload", "RS256")
        signature = rsa_key.sign(value, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256()))

        assert verify_locally(rsa_jwk, "RS256", value, signature) is True
        assert verify_locally(rsa_jwk, "RS256", b64url_encode(value), b64url_encode(signature)) is True

    def test_rs256_wrong_digest(self, rsa_key, rsa_jwk):
        value = digest("payload", "RS256")
        signature = rsa_key.sign(value, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256()))

        assert verify_locally(rsa_jwk, "RS256", digest("other", "RS256"), signature) is False

    def test_ps256(self, rsa_key, rsa_jwk):
        value = digest("payload", "PS256")
        signature = rsa_key.sign(
            value,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=32),
            utils.Prehashed(hashes.SHA256()),
        )

        assert verify_locally(rsa_jwk, "PS256", value, signature) is True

    def test_es256_raw_signature(self, ec_key, ec_jwk):
        value = digest("payload", "ES256")
        r, s = utils.decode_dss_signature(ec_key.sign(value, ec.ECDSA(utils.Prehashed(hashes.SHA256()))))
        signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")

        assert verify_locally(ec_jwk, "ES256", value, signature) is True
        assert verify_locally(ec_jwk, "ES256", digest("other", "ES256"), signature) is False

    def test_algorithm_key_mismatch(self, ec_jwk):
        with pytest.raises(UnsupportedAlgorithmError):
            verify_locally(ec_jwk, "RS256", b"\x00" * 32, b"\x00" * 64)

    def test_unsupported_algorithm(self, rsa_jwk):
        with pytest.raises(UnsupportedAlgorithmError):
            verify_locally(rsa_jwk, "RSNULL", b"\x00" * 32, b"\x00" * 256)

    def test_digest_length_mismatch(self, rsa_jwk):
        with pytest.raises(UnsupportedAlgorithmError, match="digest length 48"):
            verify_locally(rsa_jwk, "RS256", b"\x00" * 48, b"\x00" * 256)

    def test_curve_mismatch(self):
        numbers = ec.generate_private_key(ec.SECP384R1()).public_key().public_numbers()
        p384_jwk = JsonWebKey(
            kty="EC",
            crv="P-384",
            x=b64url_encode(numbers.x.to_bytes(48, "big")),
            y=b64url_encode(numbers.y.to_bytes(48, "big")),
        )

        with pytest.raises(UnsupportedAlgorithmError, match="curve P-384"):
            verify_locally(p384_jwk, "ES256", digest("payload", "ES256"), b"\x00" * 64)
