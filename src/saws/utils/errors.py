"""Error types and structured error output for the CLI."""

from __future__ import annotations

import json
import sys

from rich.console import Console

console = Console(stderr=True)


class SawsError(Exception):
    """Base class for every error raised by saws."""


class ConfigurationError(SawsError):
    """Misconfiguration that retrying cannot fix (no home directory, bad settings file)."""


class ClientRegistrationError(ConfigurationError):
    """The identity provider rejected the client registration."""


class AuthorizationError(SawsError):
    """The device authorization flow ended without a token."""


class AuthorizationTimeoutError(AuthorizationError):
    """The user did not approve the device code before the poll deadline."""


class OperationCancelledError(SawsError):
    """The caller cancelled the operation."""


class DiscoveryError(SawsError):
    """Account or role discovery failed; no partial catalog is returned."""


class TokenCacheError(SawsError):
    """The SSO token cache could not be written."""


class OIDCError(SawsError):
    """Error response from the SSO OIDC API.

    ``error_code`` is the server-provided identifier, e.g. ``AuthorizationPendingException``
    or ``authorization_pending``.
    """

    def __init__(self, error_code: str, message: str = "") -> None:
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}" if message else error_code)


class CatalogError(SawsError):
    """Error response from the SSO portal (account/role catalog) API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


# Actionable hints keyed by error substring
_ERROR_HINTS: list[tuple[str, str]] = [
    ("timed out", "Approve the request in your browser within 5 minutes, then run the command again"),
    ("cancel", "The operation was cancelled before it finished"),
    ("register client", "Check the SSO region; the identity provider rejected this client"),
    ("access_denied", "The request was denied in the browser; run `saws auth login` again"),
    ("accessdenied", "The request was denied in the browser; run `saws auth login` again"),
    ("unauthorized", "The SSO token may be expired; run `saws auth login --force`"),
    ("401", "The SSO token may be expired; run `saws auth login --force`"),
    ("429", "Rate limited; wait a moment and retry"),
    ("toomanyrequests", "Rate limited; wait a moment and retry"),
    ("home directory", "Set HOME or AWS_CONFIG_FILE so saws can find ~/.aws"),
    ("not found in", "Run `saws profiles list` to see saved profiles"),
    ("no aws accounts", "Your SSO user has no account assignments for this start URL"),
    ("connection", "Connection error: check network connectivity"),
]


def _get_hint(error_message: str) -> str | None:
    """Match an error message to an actionable hint."""
    lower = error_message.lower()
    for pattern, hint in _ERROR_HINTS:
        if pattern in lower:
            return hint
    return None


def _error_code(error: Exception) -> str:
    if isinstance(error, AuthorizationTimeoutError):
        return "AUTH_TIMEOUT"
    if isinstance(error, OperationCancelledError):
        return "CANCELLED"
    if isinstance(error, ConfigurationError):
        return "CONFIG_ERROR"
    if isinstance(error, (AuthorizationError, OIDCError)):
        return "AUTH_ERROR"
    if isinstance(error, (DiscoveryError, CatalogError)):
        return "DISCOVERY_ERROR"
    if isinstance(error, TokenCacheError):
        return "CACHE_ERROR"
    if isinstance(error, ValueError):
        return "INVALID_ARGUMENT"
    return "RUNTIME_ERROR"


def handle_error(error: Exception, as_json: bool = False) -> None:
    """Report an error to the user.

    Always prints a human-readable message (and hint) to stderr. With ``as_json`` a
    structured object is also written to stdout:
    {"error": true, "code": "AUTH_ERROR", "message": "...", "hint": "..."}
    """
    message = str(error)
    hint = _get_hint(message)

    if as_json:
        error_obj: dict[str, object] = {
            "error": True,
            "code": _error_code(error),
            "message": message,
        }
        if hint:
            error_obj["hint"] = hint
        json.dump(error_obj, sys.stdout)
        sys.stdout.write("\n")

    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
