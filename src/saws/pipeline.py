"""Credential-acquisition pipeline.

Cached token or device authorization, then discovery and naming of every role the
token may assume, then role credentials for a chosen profile.
"""

from __future__ import annotations

import threading
from typing import Callable

from saws.auth import CLIENT_NAME, POLL_TIMEOUT, DeviceAuthCallback, DeviceAuthCoordinator, StatusCallback
from saws.client import CatalogTransport, OIDCTransport
from saws.models.auth import TokenResult
from saws.models.credentials import RoleCredentials
from saws.models.profiles import NamedProfile
from saws.services.credentials import RoleCredentialService
from saws.services.discovery import AccountRoleDiscoverer
from saws.utils.cache import TokenCache
from saws.utils.errors import DiscoveryError, TokenCacheError
from saws.utils.naming import allocate_unique_names


class CredentialPipeline:
    """Composes the token cache, device authorization, discovery and naming.

    One cancel event governs everything from client registration to the end of
    discovery; ``cancel()`` aborts whichever step is running.
    """

    def __init__(
        self,
        oidc: OIDCTransport,
        catalog: CatalogTransport,
        *,
        cache: TokenCache | None = None,
        client_name: str = CLIENT_NAME,
        on_device_auth: DeviceAuthCallback | None = None,
        on_status: StatusCallback | None = None,
        on_warning: Callable[[str], None] | None = None,
        open_browser: Callable[[str], object] | None = None,
        cancel: threading.Event | None = None,
        poll_timeout: float = POLL_TIMEOUT,
    ) -> None:
        self._cache = cache or TokenCache()
        self._on_status = on_status
        self._on_warning = on_warning
        self._cancel = cancel or threading.Event()
        self._coordinator = DeviceAuthCoordinator(
            oidc,
            client_name=client_name,
            on_device_auth=on_device_auth,
            on_status=on_status,
            open_browser=open_browser,
            cancel=self._cancel,
            poll_timeout=poll_timeout,
        )
        self._discoverer = AccountRoleDiscoverer(catalog, cancel=self._cancel)
        self._credentials = RoleCredentialService(catalog)

    def cancel(self) -> None:
        self._cancel.set()

    def ensure_token(self, start_url: str, region: str, force: bool = False) -> TokenResult:
        """Return a usable access token, authenticating only when the cache has none.

        A cache write failure is reported through ``on_warning``; the token is still
        returned.
        """
        if not force:
            cached = self._cache.read(start_url)
            if cached is not None:
                self._status("Using cached SSO token (still valid)")
                return TokenResult(access_token=cached.access_token, expires_at=cached.expires_at)

        token = self._coordinator.authenticate(start_url)
        self._status("Authentication successful!")

        try:
            self._cache.write(start_url, region, token.access_token, token.expires_at)
        except TokenCacheError as e:
            self._warn(f"could not write SSO cache: {e}")

        return token

    def discover_profiles(self, start_url: str, region: str, access_token: str) -> list[NamedProfile]:
        """Discover every account/role pair and give each a unique profile name.

        Raises:
            DiscoveryError: If discovery fails or finds no accounts or no roles.
        """
        self._status("Discovering accounts...")
        accounts = self._discoverer.list_accounts(access_token)
        if not accounts:
            raise DiscoveryError("no AWS accounts found for this SSO user")
        self._status(f"Found {len(accounts)} account(s)")

        self._status("Discovering roles...")
        bindings = self._discoverer.discover_all(access_token, accounts)
        if not bindings:
            raise DiscoveryError("no roles found across any accounts")

        names = allocate_unique_names(bindings)
        profiles = [
            NamedProfile(
                name=name,
                start_url=start_url,
                region=region,
                account_id=binding.account_id,
                account_name=binding.account_name,
                role_name=binding.role_name,
            )
            for name, binding in zip(names, bindings)
        ]
        self._status(f"Found {len(profiles)} profile(s) across {len(accounts)} account(s)")
        return profiles

    def credentials_for(self, profile: NamedProfile, access_token: str) -> RoleCredentials:
        """Fetch temporary credentials for a saved profile."""
        return self._credentials.get_role_credentials(access_token, profile.account_id, profile.role_name)

    def _status(self, message: str) -> None:
        if self._on_status is not None:
            self._on_status(message)

    def _warn(self, message: str) -> None:
        if self._on_warning is not None:
            self._on_warning(message)
