"""
azvault: Azure Key Vault client

A small async client for the Azure Key Vault secrets and keys REST API.
"""

__version__ = "0.1.0"

from .auth.oauth import AzureADApplication
from .services.keyvault import KeyVault, Secret, Key

__all__ = ["AzureADApplication", "KeyVault", "Secret", "Key", "__version__"]
