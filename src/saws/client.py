"""HTTP clients for the AWS SSO OIDC and SSO portal APIs.

Pipeline components depend only on the OIDCTransport and CatalogTransport protocols;
OIDCClient and PortalClient are the httpx-backed implementations.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import httpx

from saws.utils.errors import CatalogError, OIDCError

logger = logging.getLogger(__name__)

# Largest page size the portal API accepts
PAGE_SIZE = 100


class OIDCTransport(Protocol):
    """The SSO OIDC operations used by the device authorization flow.

    Every method returns the decoded JSON response and raises OIDCError on an error
    response, carrying the server's error identifier.
    """

    def register_client(self, client_name: str, client_type: str) -> dict[str, Any]: ...

    def start_device_authorization(
        self, client_id: str, client_secret: str, start_url: str,
    ) -> dict[str, Any]: ...

    def create_token(
        self, client_id: str, client_secret: str, device_code: str, grant_type: str,
    ) -> dict[str, Any]: ...


class CatalogTransport(Protocol):
    """The SSO portal operations used for discovery and credential issuance.

    List methods return one page: ``{"accountList" | "roleList": [...], "nextToken": ...}``.
    Errors raise CatalogError.
    """

    def list_accounts(self, access_token: str, next_token: str | None = None) -> dict[str, Any]: ...

    def list_account_roles(
        self, access_token: str, account_id: str, next_token: str | None = None,
    ) -> dict[str, Any]: ...

    def get_role_credentials(
        self, access_token: str, account_id: str, role_name: str,
    ) -> dict[str, Any]: ...


def _error_detail(response: httpx.Response, *keys: str) -> str:
    """Pull a readable message out of an error response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        for key in keys:
            if data.get(key):
                return str(data[key])
    return response.text


class OIDCClient:
    """SSO OIDC API client. One attempt per call; the poll loop owns retry policy."""

    def __init__(self, region: str, timeout: float = 30.0) -> None:
        self._base_url = f"https://oidc.{region}.amazonaws.com"
        self._http = httpx.Client(timeout=timeout)

    def register_client(self, client_name: str, client_type: str) -> dict[str, Any]:
        return self._post("/client/register", {
            "clientName": client_name,
            "clientType": client_type,
        })

    def start_device_authorization(
        self, client_id: str, client_secret: str, start_url: str,
    ) -> dict[str, Any]:
        return self._post("/device_authorization", {
            "clientId": client_id,
            "clientSecret": client_secret,
            "startUrl": start_url,
        })

    def create_token(
        self, client_id: str, client_secret: str, device_code: str, grant_type: str,
    ) -> dict[str, Any]:
        return self._post("/token", {
            "clientId": client_id,
            "clientSecret": client_secret,
            "deviceCode": device_code,
            "grantType": grant_type,
        })

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = self._base_url + path
        logger.info(f"POST {url}")
        try:
            response = self._http.post(url, json=body)
        except httpx.HTTPError as e:
            raise OIDCError("RequestError", str(e)) from e

        if response.status_code >= 400:
            raise OIDCError(
                self._error_code(response),
                _error_detail(response, "error_description", "message"),
            )

        try:
            return response.json()
        except ValueError as e:
            raise OIDCError("InvalidResponse", f"non-JSON response from {path}") from e

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        """Server error identifier: x-amzn-ErrorType, else the OAuth ``error`` field."""
        error_type = response.headers.get("x-amzn-ErrorType", "")
        if error_type:
            return error_type.split(":", 1)[0]
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return f"HTTP{response.status_code}"

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()


class PortalClient:
    """SSO portal API client with retry on throttling and server errors."""

    def __init__(
        self,
        region: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        verbose: bool = False,
    ) -> None:
        self._base_url = f"https://portal.sso.{region}.amazonaws.com"
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._verbose = verbose
        self._http = httpx.Client(timeout=timeout)

    def list_accounts(self, access_token: str, next_token: str | None = None) -> dict[str, Any]:
        params = {"max_result": str(PAGE_SIZE)}
        if next_token:
            params["next_token"] = next_token
        return self.request("GET", "/assignment/accounts", access_token, params=params).json()

    def list_account_roles(
        self, access_token: str, account_id: str, next_token: str | None = None,
    ) -> dict[str, Any]:
        params = {"account_id": account_id, "max_result": str(PAGE_SIZE)}
        if next_token:
            params["next_token"] = next_token
        return self.request("GET", "/assignment/roles", access_token, params=params).json()

    def get_role_credentials(
        self, access_token: str, account_id: str, role_name: str,
    ) -> dict[str, Any]:
        params = {"account_id": account_id, "role_name": role_name}
        return self.request("GET", "/federation/credentials", access_token, params=params).json()

    def request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated portal request with retry logic.

        Raises:
            CatalogError: On a non-retryable error or once retries are exhausted.
        """
        url = self._base_url + path
        headers = {
            "x-amz-sso_bearer_token": access_token,
            "Accept": "application/json",
        }

        for attempt in range(1, self._max_retries + 1):
            if self._verbose:
                logger.info(f"[Attempt {attempt}/{self._max_retries}] {method} {url}")

            try:
                response = self._http.request(method, url, headers=headers, params=params)
            except httpx.HTTPError as e:
                if attempt == self._max_retries:
                    raise CatalogError(f"Request failed after {self._max_retries} attempts: {e}") from e
                wait = self._backoff(attempt)
                logger.warning(f"HTTP error: {e}. Retrying in {wait:.1f}s...")
                time.sleep(wait)
                continue

            # 429: throttled, exponential backoff
            if response.status_code == 429 and attempt < self._max_retries:
                wait = self._backoff(attempt)
                logger.warning(f"Rate limited (429). Waiting {wait:.1f}s...")
                time.sleep(wait)
                continue

            # 5xx: server error, exponential backoff
            if 500 <= response.status_code < 600 and attempt < self._max_retries:
                wait = self._backoff(attempt)
                logger.warning(f"Server error ({response.status_code}). Waiting {wait:.1f}s...")
                time.sleep(wait)
                continue

            if response.status_code >= 400:
                detail = _error_detail(response, "message", "Message")
                raise CatalogError(
                    f"API error (HTTP {response.status_code}): {detail}",
                    status_code=response.status_code,
                )

            return response

        raise CatalogError(f"Request to {url} failed after {self._max_retries} attempts")

    def _backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        return self._retry_delay * (2 ** (attempt - 1))

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()
