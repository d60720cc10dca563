"""Temporary role credential models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class RoleCredentials(BaseModel):
    """Temporary credentials from the SSO GetRoleCredentials API."""
    access_key_id: str = Field(alias="accessKeyId")
    secret_access_key: str = Field(alias="secretAccessKey")
    session_token: str = Field(alias="sessionToken")
    expiration: datetime

    model_config = {"populate_by_name": True}

    @field_validator("expiration", mode="before")
    @classmethod
    def _from_epoch_millis(cls, value: object) -> object:
        # The portal API reports expiration in epoch milliseconds
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value
