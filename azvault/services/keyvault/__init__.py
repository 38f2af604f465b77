"""
Azure Key Vault client.

Typed bindings for the Key Vault REST API secrets and keys operations.

Author: azvault Team
"""

from .client import KeyVault, Secret, Key, raise_for_error
from .crypto import digest, verify_locally
from .models import (
    KeyVaultAttributes,
    SecretBundle,
    JsonWebKey,
    KeyBundle,
    KeyItem,
    KeyListResult,
    KeySignParameters,
    KeyVerifyParameters,
    KeyOperationResult,
    KeyVerifyResult,
    KeyVaultErrorResult,
)
from .exceptions import (
    KeyVaultError,
    BadParameterError,
    UnauthorizedError,
    ForbiddenError,
    SecretNotFoundError,
    KeyNotFoundError,
    UnsupportedAlgorithmError,
)

__all__ = [
    # Client
    "KeyVault",
    "Secret",
    "Key",
    "raise_for_error",
    # Local crypto
    "digest",
    "verify_locally",
    # Models
    "KeyVaultAttributes",
    "SecretBundle",
    "JsonWebKey",
    "KeyBundle",
    "KeyItem",
    "KeyListResult",
    "KeySignParameters",
    "KeyVerifyParameters",
    "KeyOperationResult",
    "KeyVerifyResult",
    "KeyVaultErrorResult",
    # Exceptions
    "KeyVaultError",
    "BadParameterError",
    "UnauthorizedError",
    "ForbiddenError",
    "SecretNotFoundError",
    "KeyNotFoundError",
    "UnsupportedAlgorithmError",
]
