"""
OAuth 2.0 exceptions raised while acquiring application tokens.

Author: azvault Team
"""

from typing import Optional


class OAuthError(Exception):
    """Base exception for OAuth errors returned by the token endpoint."""

    def __init__(self, error: str, error_description: str = None, status_code: Optional[int] = None):
        self.error = error
        self.error_description = error_description
        self.status_code = status_code
        super().__init__(error_description or error)


class InvalidGrantError(OAuthError):
    """Raised when grant type is invalid or unsupported."""

    def __init__(self, description: str = "Invalid or unsupported grant type", status_code: Optional[int] = None):
        super().__init__("invalid_grant", description, status_code)


class InvalidClientError(OAuthError):
    """Raised when client authentication fails."""

    def __init__(self, description: str = "Client authentication failed", status_code: Optional[int] = None):
        super().__init__("invalid_client", description, status_code)


class InvalidScopeError(OAuthError):
    """Raised when requested scope is invalid."""

    def __init__(self, description: str = "Invalid scope", status_code: Optional[int] = None):
        super().__init__("invalid_scope", description, status_code)


class InvalidTokenError(OAuthError):
    """Raised when the token endpoint returns a token that cannot be used."""

    def __init__(self, description: str = "Invalid token", status_code: Optional[int] = None):
        super().__init__("invalid_token", description, status_code)


ERROR_CLASSES = {
    "invalid_grant": InvalidGrantError,
    "invalid_client": InvalidClientError,
    "unauthorized_client": InvalidClientError,
    "invalid_scope": InvalidScopeError,
}


def error_from_response(error: str, description: Optional[str], status_code: Optional[int]) -> OAuthError:
    """Build the exception matching an OAuth ``error`` code."""
    error_class = ERROR_CLASSES.get(error)
    if error_class is None:
        return OAuthError(error, description, status_code)
    if description:
        return error_class(description, status_code)
    return error_class(status_code=status_code)
