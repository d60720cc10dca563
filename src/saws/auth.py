"""OAuth2 device authorization flow against AWS SSO OIDC.

Registers a public client, starts device authorization, and polls the token endpoint
until the user approves in a browser, denies, or the attempt times out.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import webbrowser
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from saws.client import OIDCTransport
from saws.models.auth import DeviceAuthInfo, DeviceAuthSession, TokenResult
from saws.utils.errors import (
    AuthorizationError,
    AuthorizationTimeoutError,
    ClientRegistrationError,
    OIDCError,
    OperationCancelledError,
)

logger = logging.getLogger(__name__)

CLIENT_NAME = "saws-cli"
CLIENT_TYPE = "public"
GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

DEFAULT_POLL_INTERVAL = 5
# Added once to the server interval after a slow_down response
SLOW_DOWN_PENALTY = 5
POLL_TIMEOUT = 300.0

_PENDING_CODES = ("AuthorizationPendingException", "authorization_pending")
_SLOW_DOWN_CODES = ("SlowDownException", "slow_down")

DeviceAuthCallback = Callable[[DeviceAuthInfo], None]
StatusCallback = Callable[[str], None]


def is_authorization_pending(error_code: str) -> bool:
    return any(code in error_code for code in _PENDING_CODES)


def is_slow_down(error_code: str) -> bool:
    return any(code in error_code for code in _SLOW_DOWN_CODES)


class Wake(enum.Enum):
    """Which of the poll loop's wait conditions fired."""
    INTERVAL = "interval"
    DEADLINE = "deadline"
    CANCELLED = "cancelled"


def wait_for_next_poll(
    cancel: threading.Event,
    interval: float,
    deadline: float,
    clock: Callable[[], float] = time.monotonic,
) -> Wake:
    """Block until the poll interval elapses, the deadline passes, or ``cancel`` is set.

    Exactly one outcome is returned: whichever condition fires first.
    """
    if cancel.is_set():
        return Wake.CANCELLED

    remaining = deadline - clock()
    if remaining <= 0:
        return Wake.DEADLINE

    if cancel.wait(min(interval, remaining)):
        return Wake.CANCELLED
    if interval >= remaining:
        return Wake.DEADLINE
    return Wake.INTERVAL


class DeviceAuthCoordinator:
    """Runs the SSO OIDC device authorization flow to obtain an access token.

    The coordinator never writes to the terminal: the verification URL and user code go
    to ``on_device_auth`` and progress messages to ``on_status``.
    """

    def __init__(
        self,
        transport: OIDCTransport,
        *,
        client_name: str = CLIENT_NAME,
        on_device_auth: DeviceAuthCallback | None = None,
        on_status: StatusCallback | None = None,
        open_browser: Callable[[str], Any] | None = None,
        cancel: threading.Event | None = None,
        poll_timeout: float = POLL_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._client_name = client_name
        self._on_device_auth = on_device_auth
        self._on_status = on_status
        self._open_browser = open_browser or webbrowser.open
        self._cancel = cancel or threading.Event()
        self._poll_timeout = poll_timeout
        self._clock = clock

    def authenticate(self, start_url: str) -> TokenResult:
        """Perform the full device authorization flow for ``start_url``.

        Raises:
            ClientRegistrationError: If the client cannot be registered.
            AuthorizationError: If the user denies access or the token endpoint fails.
            AuthorizationTimeoutError: If nobody approves within the poll timeout.
            OperationCancelledError: If the cancel event is set.
        """
        self._status("Registering client...")
        client_id, client_secret = self.register_client()

        self._status("Starting device authorization...")
        session = self.start_device_authorization(client_id, client_secret, start_url)

        self._status("Waiting for browser authorization...")
        return self.poll(session)

    def register_client(self) -> tuple[str, str]:
        """Register this application with SSO OIDC. Failures are not retried."""
        self._check_cancelled()
        try:
            data = self._transport.register_client(self._client_name, CLIENT_TYPE)
        except OIDCError as e:
            raise ClientRegistrationError(f"failed to register client: {e}") from e

        client_id = data.get("clientId")
        client_secret = data.get("clientSecret")
        if not client_id or not client_secret:
            raise ClientRegistrationError("failed to register client: response has no client credentials")
        return client_id, client_secret

    def start_device_authorization(
        self,
        client_id: str,
        client_secret: str,
        start_url: str,
    ) -> DeviceAuthSession:
        """Obtain a device code, announce it, and try to open the browser."""
        self._check_cancelled()
        try:
            data = self._transport.start_device_authorization(client_id, client_secret, start_url)
        except OIDCError as e:
            raise AuthorizationError(f"failed to start device authorization: {e}") from e

        try:
            session = DeviceAuthSession(
                client_id=client_id,
                client_secret=client_secret,
                device_code=data["deviceCode"],
                user_code=data.get("userCode", ""),
                verification_uri=data.get("verificationUri", ""),
                verification_uri_complete=data.get("verificationUriComplete"),
                poll_interval_seconds=data.get("interval") or DEFAULT_POLL_INTERVAL,
            )
        except KeyError as e:
            raise AuthorizationError(f"failed to start device authorization: missing {e}") from e

        url = session.verification_uri_complete or session.verification_uri
        if self._on_device_auth is not None:
            self._on_device_auth(DeviceAuthInfo(verification_uri=url, user_code=session.user_code))

        try:
            self._open_browser(url)
        except Exception as e:
            logger.debug(f"Could not open browser: {e}")

        return session

    def poll(self, session: DeviceAuthSession) -> TokenResult:
        """Poll the token endpoint until the device code is approved.

        The first request is sent immediately; later requests wait one poll interval.
        """
        deadline = self._clock() + self._poll_timeout
        interval = session.poll_interval_seconds
        first = True

        while True:
            if first:
                self._check_cancelled()
                first = False
            else:
                wake = wait_for_next_poll(self._cancel, interval, deadline, self._clock)
                if wake is Wake.CANCELLED:
                    raise OperationCancelledError("authorization cancelled")
                if wake is Wake.DEADLINE:
                    raise AuthorizationTimeoutError(
                        f"authorization timed out after {self._poll_timeout:g} seconds"
                    )

            try:
                data = self._transport.create_token(
                    session.client_id,
                    session.client_secret,
                    session.device_code,
                    GRANT_TYPE,
                )
            except OIDCError as e:
                if is_authorization_pending(e.error_code):
                    continue
                if is_slow_down(e.error_code):
                    interval = session.poll_interval_seconds + SLOW_DOWN_PENALTY
                    logger.info(f"Token endpoint asked to slow down; polling every {interval:g}s")
                    continue
                raise AuthorizationError(f"failed to create token: {e}") from e

            return self._token_result(data)

    @staticmethod
    def _token_result(data: dict[str, Any]) -> TokenResult:
        access_token = data.get("accessToken")
        if not access_token:
            raise AuthorizationError("failed to create token: response has no access token")
        expires_in = int(data.get("expiresIn") or 0)
        return TokenResult(
            access_token=access_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise OperationCancelledError("authorization cancelled")

    def _status(self, message: str) -> None:
        if self._on_status is not None:
            self._on_status(message)
