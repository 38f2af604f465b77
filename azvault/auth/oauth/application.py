"""
Azure AD application identity.

Acquires bearer tokens for Key Vault with the OAuth 2.0 client credentials
flow against the Microsoft identity platform v2.0 token endpoint.

Author: azvault Team
"""

import logging
import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import jwt

from azvault.core.config_manager import (
    DEFAULT_AUTHORITY_HOST,
    DEFAULT_VAULT_SCOPE,
    IdentityConfig,
)
from azvault.auth.oauth.exceptions import (
    InvalidTokenError,
    error_from_response,
)

logger = logging.getLogger(__name__)


@dataclass
class TokenRequest:
    """OAuth 2.0 client credentials token request."""

    client_id: str
    client_secret: str
    scope: str = DEFAULT_VAULT_SCOPE
    grant_type: str = "client_credentials"


@dataclass
class TokenResponse:
    """OAuth 2.0 token response."""

    access_token: str
    expires_on: float  # epoch seconds
    token_type: str = "Bearer"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now: float) -> "TokenResponse":
        """
        Build a TokenResponse from the token endpoint body.

        Expiry is taken from ``expires_in``; when the endpoint omits it the
        ``exp`` claim of the (unverified) JWT is used instead.

        Raises:
            InvalidTokenError: If no token or no expiry can be determined
        """
        access_token = data.get("access_token")
        if not access_token:
            raise InvalidTokenError("Token response has no access_token")

        expires_in = data.get("expires_in")
        if expires_in is not None:
            expires_on = now + int(expires_in)
        else:
            try:
                claims = jwt.decode(access_token, options={"verify_signature": False})
            except jwt.DecodeError as e:
                raise InvalidTokenError(f"Token response has no expires_in and token is not a JWT: {e}")
            if "exp" not in claims:
                raise InvalidTokenError("Token response has no expires_in and token has no exp claim")
            expires_on = float(claims["exp"])

        return cls(
            access_token=access_token,
            expires_on=expires_on,
            token_type=data.get("token_type", "Bearer"),
        )


class AzureADApplication:
    """
    Application identity registered in Azure AD (Entra ID).

    Holds the current bearer token and refreshes it when it is missing or
    about to expire. ``refresh()`` is awaited by the vault before every
    request, so it only reaches the token endpoint when needed.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        *,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        scope: str = DEFAULT_VAULT_SCOPE,
        refresh_margin: int = 300,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the application identity.

        Args:
            tenant_id: Directory (tenant) ID
            client_id: Application (client) ID
            client_secret: Client secret
            authority_host: Identity platform host
            scope: Requested scope, the vault resource by default
            refresh_margin: Seconds before expiry at which the token is refreshed
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.authority_host = authority_host.rstrip("/")
        self.scope = scope
        self.refresh_margin = refresh_margin
        self._client_secret = client_secret
        self._token: Optional[TokenResponse] = None
        self._http = httpx.AsyncClient(transport=transport, timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: IdentityConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AzureADApplication":
        """
        Create an application from an IdentityConfig.

        Raises:
            ValueError: If tenant_id, client_id or client_secret is missing
        """
        missing = [
            field for field in ("tenant_id", "client_id", "client_secret")
            if not getattr(config, field)
        ]
        if missing:
            raise ValueError(f"Identity configuration is missing: {', '.join(missing)}")

        return cls(
            config.tenant_id,
            config.client_id,
            config.client_secret,
            authority_host=config.authority_host,
            scope=config.scope,
            refresh_margin=config.refresh_margin,
            transport=transport,
        )

    @property
    def token_endpoint(self) -> str:
        return f"{self.authority_host}/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def access_token(self) -> Optional[str]:
        """Current bearer token, None until the first refresh."""
        return self._token.access_token if self._token else None

    @property
    def expires_on(self) -> Optional[datetime]:
        if self._token is None:
            return None
        return datetime.fromtimestamp(self._token.expires_on, tz=timezone.utc)

    def needs_refresh(self) -> bool:
        if self._token is None:
            return True
        return time.time() >= self._token.expires_on - self.refresh_margin

    async def refresh(self) -> None:
        """
        Acquire a new token if the cached one is missing or expiring.

        Raises:
            OAuthError: If the token endpoint rejects the request
            httpx.HTTPError: On transport failures
        """
        if not self.needs_refresh():
            return

        request = TokenRequest(
            client_id=self.client_id,
            client_secret=self._client_secret,
            scope=self.scope,
        )

        now = time.time()
        response = await self._http.post(self.token_endpoint, data=asdict(request))

        if response.status_code >= 400:
            body = _json_or_empty(response)
            error = error_from_response(
                body.get("error", f"http_{response.status_code}"),
                body.get("error_description"),
                response.status_code,
            )
            logger.warning(
                f"Token request failed for client_id={self.client_id}: "
                f"{error.error} ({response.status_code})"
            )
            raise error

        self._token = TokenResponse.from_dict(response.json(), now)
        logger.info(
            f"Acquired token for client_id={self.client_id}, scope={self.scope}, "
            f"expires={self.expires_on.isoformat()}"
        )

    async def aclose(self) -> None:
        await self._http.aclose()


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
