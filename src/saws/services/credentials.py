"""Temporary role credentials for a saved profile."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from saws.client import CatalogTransport
from saws.models.credentials import RoleCredentials
from saws.utils.errors import CatalogError

_TOKEN_DISPLAY_LIMIT = 40
_TOKEN_DISPLAY_EDGE = 20


class RoleCredentialService:
    """Service for exchanging an SSO access token for role credentials."""

    def __init__(self, transport: CatalogTransport) -> None:
        self._transport = transport

    def get_role_credentials(
        self,
        access_token: str,
        account_id: str,
        role_name: str,
    ) -> RoleCredentials:
        """Fetch temporary credentials for ``role_name`` in ``account_id``."""
        data = self._transport.get_role_credentials(access_token, account_id, role_name)
        try:
            return RoleCredentials.model_validate(data.get("roleCredentials") or {})
        except ValidationError as e:
            raise CatalogError(f"failed to get role credentials: malformed response ({e})") from e


def format_export_commands(creds: RoleCredentials) -> str:
    """Shell ``export`` lines for eval in a POSIX shell."""
    return (
        f"export AWS_ACCESS_KEY_ID={creds.access_key_id}\n"
        f"export AWS_SECRET_ACCESS_KEY={creds.secret_access_key}\n"
        f"export AWS_SESSION_TOKEN={creds.session_token}"
    )


def truncate_token(token: str) -> str:
    """Shorten a session token for display."""
    if len(token) <= _TOKEN_DISPLAY_LIMIT:
        return token
    return f"{token[:_TOKEN_DISPLAY_EDGE]}...{token[-_TOKEN_DISPLAY_EDGE:]}"


def credential_row(creds: RoleCredentials, profile_name: str) -> dict[str, Any]:
    """A single display row for print_output."""
    return {
        "profile": profile_name,
        "access_key_id": creds.access_key_id,
        "secret_access_key": creds.secret_access_key,
        "session_token": truncate_token(creds.session_token),
        "expires": creds.expiration.isoformat(),
    }
