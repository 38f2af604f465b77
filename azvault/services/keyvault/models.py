"""
Key Vault Models.

Pydantic models for Azure Key Vault secrets and keys, matching the
Key Vault REST API 7.3 data structures.

Author: azvault Team
"""

import base64
from datetime import datetime
from typing import Dict, List, Optional

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel, ConfigDict, Field


def b64url_decode(value: str) -> bytes:
    """Decode base64url without padding, as used throughout JOSE."""
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def b64url_encode(value: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


class KeyVaultAttributes(BaseModel):
    """Object attributes shared by secrets and keys.

    Timestamps arrive as epoch seconds and are parsed as UTC datetimes.

    Attributes:
        enabled: Whether the object is enabled
        not_before: Activation date (not valid before this time)
        expires: Expiration date
        created: Creation timestamp
        updated: Last update timestamp
        recovery_level: Deletion recovery level
        recoverable_days: Soft-delete retention in days
        exportable: Whether the private key can be exported (keys only)
    """

    enabled: Optional[bool] = None
    not_before: Optional[datetime] = Field(default=None, alias="nbf")
    expires: Optional[datetime] = Field(default=None, alias="exp")
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    recovery_level: Optional[str] = Field(default=None, alias="recoveryLevel")
    recoverable_days: Optional[int] = Field(default=None, alias="recoverableDays")
    exportable: Optional[bool] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "enabled": True,
                "exp": 1670630400,
                "created": 1639094400,
                "updated": 1639094400,
                "recoveryLevel": "Recoverable+Purgeable",
                "recoverableDays": 90,
            }
        }
    )


class SecretBundle(BaseModel):
    """Secret value with metadata.

    Attributes:
        value: Secret value
        id: Full secret identifier URL
        content_type: MIME type hint
        attributes: Secret attributes
        tags: User-defined tags
        kid: Key identifier (if the secret backs a certificate key)
        managed: Whether the secret is managed by a certificate
    """

    value: str
    id: str
    content_type: Optional[str] = Field(default=None, alias="contentType")
    attributes: Optional[KeyVaultAttributes] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    kid: Optional[str] = None
    managed: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @property
    def name(self) -> str:
        return _identifier_part(self.id, 4)

    @property
    def version(self) -> Optional[str]:
        return _identifier_part(self.id, 5) or None


class JsonWebKey(BaseModel):
    """JSON Web Key (RFC 7517) as returned by Key Vault.

    Binary members (n, e, x, y, ...) are base64url strings.
    """

    kid: Optional[str] = None
    kty: str
    key_ops: List[str] = Field(default_factory=list)
    n: Optional[str] = None
    e: Optional[str] = None
    d: Optional[str] = None
    dp: Optional[str] = None
    dq: Optional[str] = None
    qi: Optional[str] = None
    p: Optional[str] = None
    q: Optional[str] = None
    k: Optional[str] = None
    key_hsm: Optional[str] = None
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    def public_key(self):
        """Build a ``cryptography`` public key from the JWK.

        Returns:
            RSAPublicKey or EllipticCurvePublicKey

        Raises:
            ValueError: If the key type or curve is not supported
        """
        if self.kty in ("RSA", "RSA-HSM"):
            if not self.n or not self.e:
                raise ValueError("RSA key is missing n or e")
            numbers = rsa.RSAPublicNumbers(
                e=int.from_bytes(b64url_decode(self.e), "big"),
                n=int.from_bytes(b64url_decode(self.n), "big"),
            )
            return numbers.public_key()

        if self.kty in ("EC", "EC-HSM"):
            curve = EC_CURVES.get(self.crv or "")
            if curve is None:
                raise ValueError(f"Unsupported curve: {self.crv}")
            if not self.x or not self.y:
                raise ValueError("EC key is missing x or y")
            numbers = ec.EllipticCurvePublicNumbers(
                x=int.from_bytes(b64url_decode(self.x), "big"),
                y=int.from_bytes(b64url_decode(self.y), "big"),
                curve=curve(),
            )
            return numbers.public_key()

        raise ValueError(f"Unsupported key type: {self.kty}")


EC_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
    "P-256K": ec.SECP256K1,
}


class KeyBundle(BaseModel):
    """Key material with metadata.

    Attributes:
        key: The JSON Web Key
        attributes: Key attributes
        tags: User-defined tags
        managed: Whether the key is managed by a certificate
    """

    key: JsonWebKey
    attributes: Optional[KeyVaultAttributes] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    managed: bool = False

    model_config = ConfigDict(populate_by_name=True)


class KeyItem(BaseModel):
    """Key identifier without key material (for list operations)."""

    kid: str
    attributes: Optional[KeyVaultAttributes] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    managed: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @property
    def version(self) -> Optional[str]:
        return _identifier_part(self.kid, 5) or None


class KeyListResult(BaseModel):
    """Paginated list of keys or key versions.

    Attributes:
        value: List of key items
        next_link: URL for next page of results, None on the last page
    """

    value: List[KeyItem] = Field(default_factory=list)
    next_link: Optional[str] = Field(default=None, alias="nextLink")

    model_config = ConfigDict(populate_by_name=True)


class KeySignParameters(BaseModel):
    """Body of a sign request: algorithm and base64url digest."""

    alg: str
    value: str


class KeyVerifyParameters(BaseModel):
    """Body of a verify request."""

    alg: str
    digest: str
    value: str


class KeyOperationResult(BaseModel):
    """Result of a sign operation: key identifier and base64url signature."""

    kid: Optional[str] = None
    value: str

    @property
    def signature(self) -> bytes:
        return b64url_decode(self.value)


class KeyVerifyResult(BaseModel):
    """Result of a verify operation."""

    value: bool


class KeyVaultErrorDetail(BaseModel):
    """Error detail: code, message and optional nested error."""

    code: Optional[str] = None
    message: Optional[str] = None
    inner_error: Optional["KeyVaultErrorDetail"] = Field(default=None, alias="innererror")

    model_config = ConfigDict(populate_by_name=True)


class KeyVaultErrorResult(BaseModel):
    """Error body returned on failure responses."""

    error: KeyVaultErrorDetail


def _identifier_part(identifier: str, index: int) -> str:
    # https://{vault}.vault.azure.net/{collection}/{name}/{version}
    parts = identifier.split("?", 1)[0].split("/")
    return parts[index] if len(parts) > index else ""
