"""
Key Vault Client.

Handles for a vault, its secrets and its keys. Each call is one request to
the Key Vault REST API, authenticated with a bearer token from the vault's
application identity.

Raw methods (``get``, ``versions``, ``sign``, ``fetch``) return the
``httpx.Response`` as received. Typed methods check the status, raise a
``KeyVaultError`` for error bodies and parse the JSON into models.

Author: azvault Team
"""

import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Optional, Union
from urllib.parse import quote

import httpx

from azvault.auth.oauth.application import AzureADApplication
from azvault.core.config_manager import (
    AzVaultConfig,
    DEFAULT_API_VERSION,
    DEFAULT_DNS_SUFFIX,
)
from azvault.core.logging_config import set_request_id, clear_request_id
from azvault.services.keyvault.exceptions import (
    KeyVaultError,
    KeyNotFoundError,
    SecretNotFoundError,
    STATUS_ERRORS,
)
from azvault.services.keyvault.models import (
    JsonWebKey,
    KeyBundle,
    KeyItem,
    KeyListResult,
    KeyOperationResult,
    KeySignParameters,
    KeyVaultErrorResult,
    KeyVerifyParameters,
    KeyVerifyResult,
    SecretBundle,
    b64url_encode,
)

logger = logging.getLogger(__name__)


class KeyVault:
    """
    Handle for a named Key Vault.

    ``app`` is the token provider: any object with an awaitable
    ``refresh()`` and an ``access_token`` attribute, such as
    ``AzureADApplication``. It is refreshed before every request.
    """

    def __init__(
        self,
        app: Any,
        name: str,
        *,
        vault_url: Optional[str] = None,
        dns_suffix: str = DEFAULT_DNS_SUFFIX,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the vault handle.

        Args:
            app: Token provider used to authenticate requests
            name: Vault name
            vault_url: Explicit vault URL, overrides https://{name}.{dns_suffix}
            dns_suffix: Vault DNS suffix for the target cloud
            api_version: Key Vault REST API version
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._app = app
        self._name = name
        self._owns_app = False
        self.api_version = api_version
        self.vault_url = (vault_url or f"https://{name}.{dns_suffix}").rstrip("/")
        self._http = httpx.AsyncClient(transport=transport, timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: AzVaultConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "KeyVault":
        """
        Create a vault and its application identity from configuration.

        Raises:
            ValueError: If neither a vault name nor a vault URL is configured,
                or the identity is incomplete
        """
        if not config.vault.name and not config.vault.vault_url:
            raise ValueError("Vault configuration needs a name or a vault_url")

        app = AzureADApplication.from_config(config.identity, transport=transport)
        vault = cls(
            app,
            config.vault.name or "",
            vault_url=config.vault.vault_url,
            dns_suffix=config.vault.dns_suffix,
            api_version=config.vault.api_version,
            timeout=config.vault.timeout,
            transport=transport,
        )
        vault._owns_app = True
        return vault

    @property
    def app(self) -> Any:
        return self._app

    @property
    def name(self) -> str:
        return self._name

    def secret(self, name: str) -> "Secret":
        return Secret(self, name)

    def key(self, name: str) -> "Key":
        return Key(self, name)

    async def fetch(
        self,
        method: str,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send an authenticated request to the vault.

        Args:
            method: HTTP method
            url: Path relative to the vault URL (query string included),
                or an absolute URL on this vault such as a ``nextLink``
            data: Optional JSON body
            headers: Extra headers, applied over the defaults

        Returns:
            The unchecked httpx response

        Raises:
            ValueError: If an absolute URL points outside this vault
            httpx.HTTPError: On transport failures
        """
        await self._app.refresh()

        if url.startswith("https://") or url.startswith("http://"):
            if not self._on_vault(url):
                raise ValueError(f"Refusing to send vault credentials to {url}")
            full_url = url
        else:
            full_url = f"{self.vault_url}/{url.lstrip('/')}"

        client_request_id = str(uuid.uuid4())
        request_headers = {
            "Authorization": f"Bearer {self._app.access_token}",
            "x-ms-client-request-id": client_request_id,
        }
        if headers:
            request_headers.update(headers)

        content = None
        if data is not None:
            content = json.dumps(data)
            request_headers["Content-Type"] = "application/json"

        set_request_id(client_request_id)
        try:
            logger.debug(f"{method} {full_url}")
            response = await self._http.request(
                method, full_url, content=content, headers=request_headers
            )
            logger.debug(f"{method} {full_url} -> {response.status_code}")
        finally:
            clear_request_id()

        return response

    def _on_vault(self, url: str) -> bool:
        """Whether an absolute URL points into this vault (nextLinks carry an explicit :443)."""
        target = httpx.URL(url)
        base = httpx.URL(self.vault_url + "/")
        return (
            target.scheme == base.scheme
            and target.host == base.host
            and _effective_port(target) == _effective_port(base)
            and target.path.startswith(base.path)
        )

    async def aclose(self) -> None:
        await self._http.aclose()
        if self._owns_app:
            await self._app.aclose()

    async def __aenter__(self) -> "KeyVault":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"KeyVault({self.vault_url!r})"


class Secret:
    """Handle for a secret, optionally pinned to a version."""

    def __init__(self, vault: KeyVault, name: str, version: Optional[str] = None):
        self._vault = vault
        self._name = name
        self._version = version or ""

    @property
    def name(self) -> str:
        return self._name

    @property
    def version_id(self) -> Optional[str]:
        return self._version or None

    def version(self, version: str) -> "Secret":
        """Return a handle for ``version``; an empty version returns this handle."""
        if version == "":
            return self
        return Secret(self._vault, self._name, version)

    def _path(self) -> str:
        path = f"/secrets/{quote(self._name, safe='')}"
        if self._version:
            path += f"/{quote(self._version, safe='')}"
        return f"{path}?api-version={self._vault.api_version}"

    async def get(self) -> httpx.Response:
        return await self._vault.fetch("GET", self._path())

    async def get_json(self) -> SecretBundle:
        """
        Fetch the secret value and metadata.

        Raises:
            SecretNotFoundError: If the secret (or version) does not exist
            KeyVaultError: For other error responses
        """
        response = await self.get()
        raise_for_error(response, resource="secret", name=self._name, version=self.version_id)
        return SecretBundle.model_validate(response.json())

    async def get_value(self) -> str:
        return (await self.get_json()).value

    def __repr__(self) -> str:
        return f"Secret({self._name!r}, version={self.version_id!r})"


class Key:
    """Handle for a key, optionally pinned to a version."""

    def __init__(self, vault: KeyVault, name: str, version: Optional[str] = None):
        self._vault = vault
        self._name = name
        self._version = version or ""

    @property
    def name(self) -> str:
        return self._name

    @property
    def version_id(self) -> Optional[str]:
        return self._version or None

    def version(self, version: str) -> "Key":
        """Return a handle for ``version``; an empty version returns this handle."""
        if version == "":
            return self
        return Key(self._vault, self._name, version)

    def _path(self, operation: str = "") -> str:
        path = f"/keys/{quote(self._name, safe='')}"
        if self._version:
            path += f"/{quote(self._version, safe='')}"
        if operation:
            path += f"/{operation}"
        return f"{path}?api-version={self._vault.api_version}"

    async def versions(self, max_results: Optional[int] = None) -> httpx.Response:
        """List versions of the key; ``maxresults`` is sent only when given."""
        path = f"/keys/{quote(self._name, safe='')}/versions?api-version={self._vault.api_version}"
        if max_results:
            path += f"&maxresults={max_results}"
        return await self._vault.fetch("GET", path)

    async def list_versions(self, max_results: Optional[int] = None) -> KeyListResult:
        """Fetch the first page of key versions."""
        response = await self.versions(max_results)
        raise_for_error(response, resource="key", name=self._name)
        return KeyListResult.model_validate(response.json())

    async def iter_versions(self, max_results: Optional[int] = None) -> AsyncIterator[KeyItem]:
        """
        Iterate over all key versions, following ``nextLink`` page by page.

        Args:
            max_results: Page size hint sent as ``maxresults``
        """
        page = await self.list_versions(max_results)
        while True:
            for item in page.value:
                yield item
            if not page.next_link:
                return
            response = await self._vault.fetch("GET", page.next_link)
            raise_for_error(response, resource="key", name=self._name)
            page = KeyListResult.model_validate(response.json())

    async def get(self) -> httpx.Response:
        return await self._vault.fetch("GET", self._path())

    async def get_json(self) -> KeyBundle:
        """
        Fetch the key material and metadata.

        Raises:
            KeyNotFoundError: If the key (or version) does not exist
            KeyVaultError: For other error responses
        """
        response = await self.get()
        raise_for_error(response, resource="key", name=self._name, version=self.version_id)
        return KeyBundle.model_validate(response.json())

    async def get_key(self) -> JsonWebKey:
        return (await self.get_json()).key

    async def sign(self, value: Union[str, bytes], alg: str) -> httpx.Response:
        """
        Ask the vault to sign a digest.

        Args:
            value: Digest to sign, base64url encoded or as raw bytes
            alg: Signature algorithm, e.g. RS256, PS256, ES256
        """
        if isinstance(value, bytes):
            value = b64url_encode(value)
        body = KeySignParameters(alg=alg, value=value).model_dump()
        return await self._vault.fetch("POST", self._path("sign"), body)

    async def sign_json(self, value: Union[str, bytes], alg: str) -> KeyOperationResult:
        response = await self.sign(value, alg)
        raise_for_error(response, resource="key", name=self._name, version=self.version_id)
        return KeyOperationResult.model_validate(response.json())

    async def verify(self, digest: Union[str, bytes], signature: Union[str, bytes], alg: str) -> bool:
        """
        Ask the vault to verify a signature over a digest.

        Args:
            digest: Signed digest, base64url encoded or as raw bytes
            signature: Signature, base64url encoded or as raw bytes
            alg: Signature algorithm used for signing

        Returns:
            True if the vault reports the signature as valid
        """
        if isinstance(digest, bytes):
            digest = b64url_encode(digest)
        if isinstance(signature, bytes):
            signature = b64url_encode(signature)
        body = KeyVerifyParameters(alg=alg, digest=digest, value=signature).model_dump()
        response = await self._vault.fetch("POST", self._path("verify"), body)
        raise_for_error(response, resource="key", name=self._name, version=self.version_id)
        return KeyVerifyResult.model_validate(response.json()).value

    def __repr__(self) -> str:
        return f"Key({self._name!r}, version={self.version_id!r})"


DEFAULT_PORTS = {"https": 443, "http": 80}


def _effective_port(url: httpx.URL) -> Optional[int]:
    return url.port or DEFAULT_PORTS.get(url.scheme)


def raise_for_error(
    response: httpx.Response,
    resource: Optional[str] = None,
    name: Optional[str] = None,
    version: Optional[str] = None,
) -> None:
    """
    Raise a KeyVaultError for a non-2xx response.

    The ``{"error": {"code", "message"}}`` body is parsed when present;
    otherwise the response text is used as the message.

    Args:
        response: Response to check
        resource: "secret" or "key", selects the not-found exception
        name: Name of the secret or key
        version: Version of the secret or key
    """
    if response.is_success:
        return

    status = response.status_code
    try:
        detail = KeyVaultErrorResult.model_validate(response.json()).error
        code, message = detail.code, detail.message
    except ValueError:
        code, message = None, None
    code = code or response.reason_phrase.replace(" ", "") or f"HTTP{status}"
    message = message or response.text or f"HTTP {status}"

    logger.warning(f"Key Vault request failed: {response.request.method} {response.request.url.path} -> {status} {code}")

    error: KeyVaultError
    if status == 404 and (code == "KeyNotFound" or (resource == "key" and code != "SecretNotFound")):
        error = KeyNotFoundError(name or "", version, message=message, error_code=code, status_code=status)
    elif status == 404 and (code == "SecretNotFound" or resource == "secret"):
        error = SecretNotFoundError(name or "", version, message=message, error_code=code, status_code=status)
    else:
        error_class = STATUS_ERRORS.get(status, KeyVaultError)
        error = error_class(message, error_code=code, status_code=status)
    raise error
