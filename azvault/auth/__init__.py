"""Authentication for azvault."""

from azvault.auth.oauth import AzureADApplication, OAuthError

__all__ = ["AzureADApplication", "OAuthError"]
