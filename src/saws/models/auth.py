"""Auth-related data models."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_serializer, field_validator

# Older AWS CLI releases wrote "2020-06-17T10:02:08UTC" instead of an RFC 3339 offset.
LEGACY_EXPIRES_AT_FORMAT = "%Y-%m-%dT%H:%M:%SUTC"
EXPIRES_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Fractional seconds directly before the UTC offset
_FRACTION_RE = re.compile(r"\.(\d+)(?=[+-]\d\d:\d\d$)")


def parse_expires_at(value: str) -> datetime:
    """Parse an ``expiresAt`` string in RFC 3339 or the legacy ``...UTC`` form.

    Returns an aware datetime in UTC. Raises ValueError for anything else.
    """
    text = value.strip()
    if text.endswith("UTC"):
        parsed = datetime.strptime(text, LEGACY_EXPIRES_AT_FORMAT)
        return parsed.replace(tzinfo=timezone.utc)

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only accepts 3 or 6 fractional digits
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"expiresAt {value!r} has no UTC offset")
    return parsed.astimezone(timezone.utc)


def format_expires_at(value: datetime) -> str:
    """Format a datetime as RFC 3339 UTC, truncated to the second."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(EXPIRES_AT_FORMAT)


class CachedToken(BaseModel):
    """An SSO access token as stored in ``~/.aws/sso/cache``.

    Field aliases match the AWS CLI cache format so other AWS tools can read the file.
    """
    start_url: str = Field(alias="startUrl")
    region: str = ""
    access_token: str = Field(alias="accessToken")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = {"populate_by_name": True}

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expires_at(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_expires_at(value)
        return value

    @field_validator("expires_at")
    @classmethod
    def _normalize_expires_at(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer("expires_at")
    def _serialize_expires_at(self, value: datetime) -> str:
        return format_expires_at(value)


class DeviceAuthSession(BaseModel):
    """State of one device authorization attempt. Never persisted."""
    client_id: str
    client_secret: str
    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: str | None = None
    poll_interval_seconds: float = 5


class DeviceAuthInfo(BaseModel):
    """What the user needs to approve the device code in a browser."""
    verification_uri: str
    user_code: str


class TokenResult(BaseModel):
    """Access token issued by the device authorization flow."""
    access_token: str
    expires_at: datetime


class TokenStatus(BaseModel):
    """Current state of the cached access token."""
    has_token: bool
    is_expired: bool
    expires_at: datetime | None = None
    seconds_remaining: int | None = None
