"""Core module initialization."""

from .config_manager import ConfigManager, AzVaultConfig, VaultConfig, IdentityConfig
from .logging_config import setup_logging

__all__ = [
    "ConfigManager",
    "AzVaultConfig",
    "VaultConfig",
    "IdentityConfig",
    "setup_logging",
]
