"""
Configuration management for azvault.

Handles loading, validation, and access to vault and identity settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "7.3"
DEFAULT_DNS_SUFFIX = "vault.azure.net"
DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"
DEFAULT_VAULT_SCOPE = "https://vault.azure.net/.default"


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class VaultConfig(BaseModel):
    """Key Vault endpoint configuration."""
    name: Optional[str] = None
    vault_url: Optional[str] = Field(
        default=None,
        description="Explicit vault URL, overrides https://{name}.{dns_suffix}"
    )
    dns_suffix: str = DEFAULT_DNS_SUFFIX
    api_version: str = DEFAULT_API_VERSION
    timeout: float = Field(default=30.0, gt=0.0, description="HTTP timeout in seconds")


class IdentityConfig(BaseModel):
    """Azure AD application identity used to obtain bearer tokens."""
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authority_host: str = DEFAULT_AUTHORITY_HOST
    scope: str = DEFAULT_VAULT_SCOPE
    refresh_margin: int = Field(
        default=300,
        ge=0,
        description="Seconds before expiry at which a cached token is refreshed"
    )

    @field_validator("authority_host")
    @classmethod
    def validate_authority_host(cls, v: str) -> str:
        """Authority host must be an absolute http(s) URL."""
        if not (v.startswith("https://") or v.startswith("http://")):
            raise ValueError("authority_host must start with https:// or http://")
        return v.rstrip("/")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: str = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'azvault.services.keyvault': 'DEBUG'}"
    )


class AzVaultConfig(BaseModel):
    """Main azvault configuration schema."""

    vault: VaultConfig = Field(default_factory=VaultConfig)

    identity: IdentityConfig = Field(default_factory=IdentityConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages azvault configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (AZVAULT_*, AZURE_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[AzVaultConfig] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> AzVaultConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated AzVaultConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.debug(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.debug(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = AzVaultConfig(**config_dict)
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Vault
        if name := os.getenv("AZVAULT_VAULT_NAME"):
            config.setdefault("vault", {})["name"] = name
        if vault_url := os.getenv("AZVAULT_VAULT_URL"):
            config.setdefault("vault", {})["vault_url"] = vault_url
        if api_version := os.getenv("AZVAULT_API_VERSION"):
            config.setdefault("vault", {})["api_version"] = api_version

        # Identity, using the variable names the Azure SDKs read
        if tenant_id := os.getenv("AZURE_TENANT_ID"):
            config.setdefault("identity", {})["tenant_id"] = tenant_id
        if client_id := os.getenv("AZURE_CLIENT_ID"):
            config.setdefault("identity", {})["client_id"] = client_id
        if client_secret := os.getenv("AZURE_CLIENT_SECRET"):
            config.setdefault("identity", {})["client_secret"] = client_secret
        if authority_host := os.getenv("AZURE_AUTHORITY_HOST"):
            config.setdefault("identity", {})["authority_host"] = authority_host

        # Logging
        if log_level := os.getenv("AZVAULT_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_file := os.getenv("AZVAULT_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with the client secret redacted)."""
        if not self._config:
            return

        config_dict = self._config.model_dump()

        if config_dict["identity"].get("client_secret"):
            config_dict["identity"]["client_secret"] = "***REDACTED***"

        logger.debug(f"Active configuration: {json.dumps(config_dict, indent=2)}")

