"""
azvault Command-Line Interface

Reads secrets and keys from Azure Key Vault and signs digests with vault keys.

Identity comes from the configuration file or the AZURE_TENANT_ID,
AZURE_CLIENT_ID and AZURE_CLIENT_SECRET environment variables.

Author: azvault Contributors
"""

import sys
import json
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import click
import httpx
from pydantic import ValidationError

from azvault import __version__
from azvault.auth.oauth import OAuthError
from azvault.core.config_manager import AzVaultConfig, ConfigManager
from azvault.core.logging_config import setup_logging
from azvault.services.keyvault import KeyVault, KeyVaultError, digest

logger = logging.getLogger(__name__)


def build_vault(config: AzVaultConfig) -> KeyVault:
    """Create the vault client used by the commands."""
    return KeyVault.from_config(config)


def _run(ctx: click.Context, vault_name: str, action: Callable[[KeyVault], Awaitable[None]]) -> None:
    """Load configuration for ``vault_name``, run ``action`` and report failures."""
    try:
        config = ConfigManager().load(
            config_file=ctx.obj.get("config"),
            cli_overrides={"vault": {"name": vault_name}},
        )
    except (ValidationError, ValueError, FileNotFoundError) as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(1)

    async def do_action():
        vault = build_vault(config)
        try:
            await action(vault)
        finally:
            await vault.aclose()

    try:
        asyncio.run(do_action())
    except (KeyVaultError, OAuthError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        click.echo(f"[ERROR] Request failed: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="azvault")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level (default: from configuration, WARNING)",
)
@click.pass_context
def cli(ctx, config: Optional[Path], log_level: Optional[str]):
    """
    azvault - Azure Key Vault client

    Read secrets and keys, and sign digests with vault keys.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = str(config) if config else None

    try:
        settings = ConfigManager().load(config_file=ctx.obj["config"]).logging
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    setup_logging(
        level=(log_level or settings.level).upper(),
        format_type=settings.format,
        log_file=settings.file,
        rotation_size=settings.rotation_size,
        rotation_count=settings.rotation_count,
        module_levels=settings.module_levels,
    )


# ========== Secrets ==========

@cli.group()
def secret():
    """Read Key Vault secrets."""
    pass


@secret.command("get")
@click.argument("vault_name")
@click.argument("secret_name")
@click.option(
    "--version",
    help="Specific version to retrieve (default: latest)",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the whole secret bundle as JSON",
)
@click.pass_context
def secret_get(ctx, vault_name: str, secret_name: str, version: Optional[str], as_json: bool):
    """
    Get a secret value.

    Examples:
        azvault secret get my-vault db-password
        azvault secret get my-vault api-key --version abc123 --json
    """
    async def action(vault: KeyVault):
        handle = vault.secret(secret_name).version(version or "")
        bundle = await handle.get_json()
        if as_json:
            click.echo(bundle.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        else:
            click.echo(bundle.value)

    _run(ctx, vault_name, action)


# ========== Keys ==========

@cli.group()
def key():
    """Read Key Vault keys and sign with them."""
    pass


@key.command("get")
@click.argument("vault_name")
@click.argument("key_name")
@click.option(
    "--version",
    help="Specific version to retrieve (default: latest)",
)
@click.pass_context
def key_get(ctx, vault_name: str, key_name: str, version: Optional[str]):
    """
    Print the public JSON Web Key of a key.

    Examples:
        azvault key get my-vault signing-key
    """
    async def action(vault: KeyVault):
        jwk = await vault.key(key_name).version(version or "").get_key()
        click.echo(json.dumps(jwk.model_dump(exclude_none=True), indent=2))

    _run(ctx, vault_name, action)


@key.command("versions")
@click.argument("vault_name")
@click.argument("key_name")
@click.option(
    "--max",
    "max_results",
    type=click.IntRange(min=1, max=25),
    help="Page size requested from the vault",
)
@click.pass_context
def key_versions(ctx, vault_name: str, key_name: str, max_results: Optional[int]):
    """
    List all versions of a key.

    Examples:
        azvault key versions my-vault signing-key
        azvault key versions my-vault signing-key --max 5
    """
    async def action(vault: KeyVault):
        count = 0
        async for item in vault.key(key_name).iter_versions(max_results):
            enabled = item.attributes.enabled if item.attributes else None
            status = "disabled" if enabled is False else "enabled"
            click.echo(f"{item.version}\t{status}")
            count += 1
        click.echo(f"Total: {count} version(s)", err=True)

    _run(ctx, vault_name, action)


@key.command("sign")
@click.argument("vault_name")
@click.argument("key_name")
@click.argument("value")
@click.option(
    "--alg",
    required=True,
    help="Signature algorithm (e.g., RS256, PS256, ES256)",
)
@click.option(
    "--version",
    help="Key version to sign with (default: latest)",
)
@click.option(
    "--hash",
    "hash_value",
    is_flag=True,
    help="Treat VALUE as a message and hash it locally before signing",
)
@click.pass_context
def key_sign(ctx, vault_name: str, key_name: str, value: str, alg: str, version: Optional[str], hash_value: bool):
    """
    Sign a base64url digest with a vault key.

    Examples:
        azvault key sign my-vault signing-key "n4bQgYhMfWWaL-qgxVrQFaO_TxsrC4Is0V1sFbDwCgg" --alg RS256
        azvault key sign my-vault signing-key "hello" --alg ES256 --hash
    """
    async def action(vault: KeyVault):
        payload = digest(value, alg) if hash_value else value
        result = await vault.key(key_name).version(version or "").sign_json(payload, alg)
        click.echo(result.value)
        if result.kid:
            click.echo(f"Signed with {result.kid}", err=True)

    _run(ctx, vault_name, action)


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
