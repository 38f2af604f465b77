"""Shared fixtures for Key Vault client tests."""

import copy
import json
from typing import Callable, List

import httpx
import pytest

from azvault.services.keyvault import KeyVault


class StubApp:
    """Token provider that hands out a fixed token and counts refreshes."""

    def __init__(self, token: str = "test-token"):
        self.access_token = token
        self.refresh_count = 0

    async def refresh(self):
        self.refresh_count += 1


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


SECRET_FIXTURE = {
    "value": "s3cr3t",
    "id": "https://my-vault.vault.azure.net/secrets/db-password/4387e9f3d6e14c459867679a90fd0f79",
    "attributes": {
        "enabled": True,
        "exp": 1767225600,
        "created": 1700000000,
        "updated": 1700000100,
        "recoveryLevel": "Recoverable+Purgeable",
        "recoverableDays": 90,
    },
    "tags": {"env": "prod"},
}

KEY_FIXTURE = {
    "key": {
        "kid": "https://my-vault.vault.azure.net/keys/signing-key/78deebed173b48e48f55abf87ed4cf71",
        "kty": "RSA",
        "key_ops": ["sign", "verify"],
        "n": "nKAwarTrOpzd1hhH4cQNdVTgRF-b0ubPD8ZNVf0UXjb62QuAk3Dn68ESThcF7SoDYRx2QVcfoMC9WCcuQUQDieJF-lvJTSer1TwH72NBovwKlHvrXqEI0a6_uVYY5n-soGt7qFZNbwQLdWWA6PrbqTLIkv6r01dcuhTiQQAn6OWEa0JbFvWfF1kILQIaSBBBaaQ4R7hZs7-VQTHGD7J1xGteof4gw2VTiwNdcE8p5UG5b6S9KQwAeET4yB4KFPwQ3TDdzxJQ89mwYVi_sgAIggN54hTq4oEKYJHBOMtFGIN0_HQ60ZSUnpOi87xNC-8VFqnv4rfTQ7nkK6XMvjMVfw",
        "e": "AQAB",
    },
    "attributes": {
        "enabled": True,
        "created": 1700000000,
        "updated": 1700000000,
        "recoveryLevel": "Recoverable+Purgeable",
        "recoverableDays": 90,
        "exportable": False,
    },
    "tags": {"purpose": "jwt"},
}


@pytest.fixture
def stub_app():
    return StubApp()


@pytest.fixture
def make_vault(stub_app):
    """Build a vault served by ``handler``; returns (vault, transport)."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs):
        transport = RecordingTransport(handler)
        vault = KeyVault(stub_app, "my-vault", transport=transport, **kwargs)
        return vault, transport

    return factory


@pytest.fixture
def json_handler():
    """Factory for handlers that answer every request with one JSON body."""

    def factory(status_code: int, body) -> Callable[[httpx.Request], httpx.Response]:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=body)

        return handler

    return factory


@pytest.fixture
def secret_body():
    return copy.deepcopy(SECRET_FIXTURE)


@pytest.fixture
def key_body():
    return copy.deepcopy(KEY_FIXTURE)
