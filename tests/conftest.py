"""Shared fixtures for the saws test suite."""
from __future__ import annotations

import threading
from typing import Any
from unittest.mock import MagicMock

import pytest

from saws.config import Config, Settings
from saws.models.profiles import DiscoveredAccount, NamedProfile
from saws.utils.errors import OIDCError

START_URL = "https://example.awsapps.com/start"


class FakeOIDCTransport:
    """Scriptable SSO OIDC transport.

    ``token_responses`` is consumed one entry per create_token call; an entry is either
    a response dict or an exception to raise. The last entry repeats once exhausted.
    """

    def __init__(
        self,
        token_responses: list[Any] | None = None,
        register_response: dict[str, Any] | Exception | None = None,
        device_response: dict[str, Any] | Exception | None = None,
    ) -> None:
        self.token_responses = list(token_responses or [{"accessToken": "tok-abc", "expiresIn": 28800}])
        self.register_response = register_response or {"clientId": "cid", "clientSecret": "csecret"}
        self.device_response = device_response or {
            "deviceCode": "dev-code",
            "userCode": "ABCD-EFGH",
            "verificationUri": "https://device.sso.us-east-1.amazonaws.com/",
            "verificationUriComplete": "https://device.sso.us-east-1.amazonaws.com/?user_code=ABCD-EFGH",
            "interval": 1,
        }
        self.register_calls: list[tuple[str, str]] = []
        self.device_calls: list[tuple[str, str, str]] = []
        self.token_calls: list[tuple[str, str, str, str]] = []
        self.on_token_call = None

    def register_client(self, client_name: str, client_type: str) -> dict[str, Any]:
        self.register_calls.append((client_name, client_type))
        if isinstance(self.register_response, Exception):
            raise self.register_response
        return self.register_response

    def start_device_authorization(self, client_id: str, client_secret: str, start_url: str) -> dict[str, Any]:
        self.device_calls.append((client_id, client_secret, start_url))
        if isinstance(self.device_response, Exception):
            raise self.device_response
        return self.device_response

    def create_token(self, client_id: str, client_secret: str, device_code: str, grant_type: str) -> dict[str, Any]:
        self.token_calls.append((client_id, client_secret, device_code, grant_type))
        if self.on_token_call is not None:
            self.on_token_call(len(self.token_calls))
        index = min(len(self.token_calls), len(self.token_responses)) - 1
        response = self.token_responses[index]
        if isinstance(response, Exception):
            raise response
        return response


def pending() -> OIDCError:
    return OIDCError("AuthorizationPendingException", "pending")


class FakeCatalogTransport:
    """Scriptable SSO portal transport.

    ``account_pages`` is a list of pages (lists of account dicts). ``role_pages`` maps an
    account id to its list of role pages. Errors can be injected per page.
    """

    def __init__(
        self,
        account_pages: list[list[dict[str, Any]]] | None = None,
        role_pages: dict[str, list[list[dict[str, Any]]]] | None = None,
        credentials: dict[str, Any] | None = None,
    ) -> None:
        self.account_pages = account_pages if account_pages is not None else [[]]
        self.role_pages = role_pages or {}
        self.credentials = credentials or {
            "roleCredentials": {
                "accessKeyId": "AKIAEXAMPLE",
                "secretAccessKey": "secret",
                "sessionToken": "session",
                "expiration": 1_700_000_000_000,
            }
        }
        self.account_errors: dict[int, Exception] = {}
        self.role_errors: dict[str, Exception] = {}
        self.role_page_errors: dict[tuple[str, int], Exception] = {}
        self.role_delay: dict[str, threading.Event] = {}
        self.account_calls: list[str | None] = []
        self.role_calls: list[tuple[str, str | None]] = []
        self.credential_calls: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    @staticmethod
    def _page(pages: list[list[dict[str, Any]]], next_token: str | None, key: str) -> dict[str, Any]:
        index = int(next_token) if next_token else 0
        response: dict[str, Any] = {key: pages[index] if pages else []}
        if index + 1 < len(pages):
            response["nextToken"] = str(index + 1)
        return response

    def list_accounts(self, access_token: str, next_token: str | None = None) -> dict[str, Any]:
        self.account_calls.append(next_token)
        index = int(next_token) if next_token else 0
        if index in self.account_errors:
            raise self.account_errors[index]
        return self._page(self.account_pages, next_token, "accountList")

    def list_account_roles(self, access_token: str, account_id: str, next_token: str | None = None) -> dict[str, Any]:
        with self._lock:
            self.role_calls.append((account_id, next_token))
        gate = self.role_delay.get(account_id)
        if gate is not None:
            gate.wait(5)
        if account_id in self.role_errors:
            raise self.role_errors[account_id]
        page = int(next_token) if next_token else 0
        if (account_id, page) in self.role_page_errors:
            raise self.role_page_errors[(account_id, page)]
        return self._page(self.role_pages.get(account_id, [[]]), next_token, "roleList")

    def get_role_credentials(self, access_token: str, account_id: str, role_name: str) -> dict[str, Any]:
        self.credential_calls.append((access_token, account_id, role_name))
        return self.credentials


def account(account_id: str, name: str = "") -> dict[str, Any]:
    return {"accountId": account_id, "accountName": name, "emailAddress": f"{account_id}@example.com"}


def role(account_id: str, role_name: str) -> dict[str, Any]:
    return {"accountId": account_id, "roleName": role_name}


@pytest.fixture
def fake_oidc() -> FakeOIDCTransport:
    return FakeOIDCTransport()


@pytest.fixture
def fake_catalog() -> FakeCatalogTransport:
    return FakeCatalogTransport(
        account_pages=[[account("111111111111", "Production"), account("222222222222", "Staging")]],
        role_pages={
            "111111111111": [[role("111111111111", "AdministratorAccess"), role("111111111111", "ReadOnly")]],
            "222222222222": [[role("222222222222", "AdministratorAccess")]],
        },
    )


@pytest.fixture
def accounts() -> list[DiscoveredAccount]:
    return [
        DiscoveredAccount(account_id="111111111111", account_name="Production"),
        DiscoveredAccount(account_id="222222222222", account_name="Staging"),
    ]


@pytest.fixture
def fake_settings(tmp_path) -> Settings:
    return Settings(
        start_url=START_URL,
        region="us-east-1",
        aws_config_file=str(tmp_path / "aws" / "config"),
        aws_credentials_file=str(tmp_path / "aws" / "credentials"),
    )


@pytest.fixture
def fake_config(fake_settings, tmp_path) -> Config:
    return Config(settings=fake_settings, config_dir=tmp_path / "saws")


@pytest.fixture
def sample_profile() -> NamedProfile:
    return NamedProfile(
        name="production-administratoraccess",
        start_url=START_URL,
        region="us-east-1",
        account_id="111111111111",
        account_name="Production",
        role_name="AdministratorAccess",
    )


@pytest.fixture
def mock_pipeline():
    """MagicMock standing in for CredentialPipeline."""
    pipeline = MagicMock()
    pipeline.cancel = MagicMock()
    return pipeline
