"""
OAuth 2.0 application identity for azvault.

Provides client credentials token acquisition for Key Vault requests.

Author: azvault Team
"""

from azvault.auth.oauth.application import (
    AzureADApplication,
    TokenRequest,
    TokenResponse,
)
from azvault.auth.oauth.exceptions import (
    OAuthError,
    InvalidGrantError,
    InvalidClientError,
    InvalidScopeError,
    InvalidTokenError,
)

__all__ = [
    # Application identity
    "AzureADApplication",
    "TokenRequest",
    "TokenResponse",
    # Exceptions
    "OAuthError",
    "InvalidGrantError",
    "InvalidClientError",
    "InvalidScopeError",
    "InvalidTokenError",
]
