"""
Key Vault Exceptions.

Exception types raised for Key Vault error responses.

Author: azvault Team
"""

from typing import Optional


class KeyVaultError(Exception):
    """Base exception for Key Vault error responses."""

    def __init__(self, message: str, error_code: str = "InternalError", status_code: Optional[int] = None):
        """Initialize Key Vault error.

        Args:
            message: Error message
            error_code: Azure error code
            status_code: HTTP status of the response
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code


class BadParameterError(KeyVaultError):
    """Raised when the service rejects a request parameter (400)."""


class UnauthorizedError(KeyVaultError):
    """Raised when the bearer token is missing or rejected (401)."""


class ForbiddenError(KeyVaultError):
    """Raised when the identity lacks permission for the operation (403)."""


class SecretNotFoundError(KeyVaultError):
    """Raised when a secret is not found."""

    def __init__(self, secret_name: str, version: str = None, message: str = None, error_code: str = "SecretNotFound",
                 status_code: Optional[int] = 404):
        """Initialize secret not found error.

        Args:
            secret_name: Name of the secret
            version: Version of the secret (optional)
        """
        if message is None:
            if version:
                message = f"Secret '{secret_name}' version '{version}' not found"
            else:
                message = f"Secret '{secret_name}' not found"
        super().__init__(message, error_code=error_code, status_code=status_code)
        self.secret_name = secret_name
        self.version = version


class KeyNotFoundError(KeyVaultError):
    """Raised when a key is not found."""

    def __init__(self, key_name: str, version: str = None, message: str = None, error_code: str = "KeyNotFound",
                 status_code: Optional[int] = 404):
        """Initialize key not found error.

        Args:
            key_name: Name of the key
            version: Version of the key (optional)
        """
        if message is None:
            if version:
                message = f"Key '{key_name}' version '{version}' not found"
            else:
                message = f"Key '{key_name}' not found"
        super().__init__(message, error_code=error_code, status_code=status_code)
        self.key_name = key_name
        self.version = version


class UnsupportedAlgorithmError(KeyVaultError):
    """Raised when a signature algorithm or key type is not supported locally."""

    def __init__(self, alg: str, reason: str = None):
        message = f"Unsupported algorithm '{alg}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, error_code="UnsupportedAlgorithm")
        self.alg = alg


STATUS_ERRORS = {
    400: BadParameterError,
    401: UnauthorizedError,
    403: ForbiddenError,
}
