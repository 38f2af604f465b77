"""
Local signature helpers.

Key Vault signs a digest, not the message. ``digest`` produces the digest
to send with ``Key.sign`` and ``verify_locally`` checks a returned signature
against the public JWK fetched with ``Key.get_key``, without a round trip.
"""

import logging
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils

from azvault.services.keyvault.exceptions import UnsupportedAlgorithmError
from azvault.services.keyvault.models import JsonWebKey, b64url_decode

logger = logging.getLogger(__name__)

HASHES = {
    "256": hashes.SHA256,
    "384": hashes.SHA384,
    "512": hashes.SHA512,
}

RSA_PKCS1 = ("RS256", "RS384", "RS512")
RSA_PSS = ("PS256", "PS384", "PS512")
ECDSA = ("ES256", "ES384", "ES512", "ES256K")

ECDSA_CURVES = {
    "ES256": "P-256",
    "ES384": "P-384",
    "ES512": "P-521",
    "ES256K": "P-256K",
}


def hash_for(alg: str) -> hashes.HashAlgorithm:
    """Return the hash algorithm a Key Vault signature algorithm signs with."""
    if alg == "ES256K":
        return hashes.SHA256()
    if alg not in RSA_PKCS1 + RSA_PSS + ECDSA:
        raise UnsupportedAlgorithmError(alg)
    return HASHES[alg[2:]]()


def digest(data: Union[str, bytes], alg: str) -> bytes:
    """Hash ``data`` with the hash matching ``alg``."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    hasher = hashes.Hash(hash_for(alg))
    hasher.update(data)
    return hasher.finalize()


def verify_locally(
    jwk: JsonWebKey,
    alg: str,
    digest_value: Union[str, bytes],
    signature: Union[str, bytes],
) -> bool:
    """
    Verify a Key Vault signature with the public part of a JWK.

    Args:
        jwk: Key fetched with ``Key.get_key``
        alg: Signature algorithm used for signing
        digest_value: Digest that was signed (bytes or base64url)
        signature: Signature returned by sign (bytes or base64url)

    Returns:
        True if the signature is valid

    Raises:
        UnsupportedAlgorithmError: If the algorithm, key type, curve or digest length does not fit
    """
    if isinstance(digest_value, str):
        digest_value = b64url_decode(digest_value)
    if isinstance(signature, str):
        signature = b64url_decode(signature)

    hash_algorithm = hash_for(alg)
    prehashed = utils.Prehashed(hash_algorithm)
    if len(digest_value) != hash_algorithm.digest_size:
        raise UnsupportedAlgorithmError(
            alg, f"digest length {len(digest_value)} does not match {hash_algorithm.digest_size} bytes"
        )

    try:
        public_key = jwk.public_key()
    except ValueError as e:
        raise UnsupportedAlgorithmError(alg, str(e))

    try:
        if alg in RSA_PKCS1 + RSA_PSS:
            if not isinstance(public_key, rsa.RSAPublicKey):
                raise UnsupportedAlgorithmError(alg, f"key type {jwk.kty} cannot verify RSA signatures")
            if alg in RSA_PKCS1:
                pad = padding.PKCS1v15()
            else:
                pad = padding.PSS(
                    mgf=padding.MGF1(hash_algorithm),
                    salt_length=hash_algorithm.digest_size,
                )
            public_key.verify(signature, digest_value, pad, prehashed)
        else:
            if not isinstance(public_key, ec.EllipticCurvePublicKey):
                raise UnsupportedAlgorithmError(alg, f"key type {jwk.kty} cannot verify ECDSA signatures")
            if jwk.crv != ECDSA_CURVES[alg]:
                raise UnsupportedAlgorithmError(alg, f"curve {jwk.crv} does not match {ECDSA_CURVES[alg]}")
            # JOSE ECDSA signatures are raw r || s
            half = len(signature) // 2
            der = utils.encode_dss_signature(
                int.from_bytes(signature[:half], "big"),
                int.from_bytes(signature[half:], "big"),
            )
            public_key.verify(der, digest_value, ec.ECDSA(prehashed))
    except InvalidSignature:
        logger.debug(f"Signature verification failed for kid={jwk.kid}, alg={alg}")
        return False

    return True
