"""Account, role and profile data models."""

from __future__ import annotations

import re

from pydantic import BaseModel, model_validator

AWS_REGIONS = [
    "us-east-1", "us-east-2", "us-west-1", "us-west-2",
    "af-south-1",
    "ap-east-1", "ap-south-1", "ap-south-2", "ap-southeast-1", "ap-southeast-2",
    "ap-southeast-3", "ap-northeast-1", "ap-northeast-2", "ap-northeast-3",
    "ca-central-1",
    "eu-central-1", "eu-central-2", "eu-west-1", "eu-west-2", "eu-west-3",
    "eu-south-1", "eu-south-2", "eu-north-1",
    "me-south-1", "me-central-1",
    "sa-east-1",
]

_ACCOUNT_ID_RE = re.compile(r"^\d{12}$")
_URL_RE = re.compile(r"^https?://")


class DiscoveredAccount(BaseModel):
    """An account returned by the SSO ListAccounts API."""
    account_id: str
    account_name: str = ""
    email: str = ""


class DiscoveredRole(BaseModel):
    """A role returned by the SSO ListAccountRoles API."""
    account_id: str
    role_name: str


class RoleBinding(BaseModel):
    """One (account, role) pair the SSO user may assume."""
    account: DiscoveredAccount
    role: DiscoveredRole

    @model_validator(mode="after")
    def _role_belongs_to_account(self) -> RoleBinding:
        if self.role.account_id != self.account.account_id:
            raise ValueError(
                f"role {self.role.role_name!r} belongs to account {self.role.account_id}, "
                f"not {self.account.account_id}"
            )
        return self

    @property
    def account_id(self) -> str:
        return self.account.account_id

    @property
    def account_name(self) -> str:
        return self.account.account_name

    @property
    def role_name(self) -> str:
        return self.role.role_name


class NamedProfile(BaseModel):
    """A saved SSO profile: a named role binding plus its SSO region."""
    name: str
    start_url: str
    region: str
    account_id: str
    account_name: str = ""
    role_name: str

    model_config = {"frozen": True}

    @property
    def display_name(self) -> str:
        """Formatted label for listings, e.g. ``prod-admin (Production / Admin)``."""
        account = self.account_name or self.account_id
        return f"{self.name} ({account} / {self.role_name})"


class AccountGroup(BaseModel):
    """An account together with every saved profile (role) that targets it."""
    account_id: str
    account_name: str = ""
    start_url: str
    region: str
    roles: list[NamedProfile] = []

    @property
    def display_name(self) -> str:
        if self.account_name:
            return f"{self.account_name} ({self.account_id})"
        return self.account_id


# ── Validation ────────────────────────────────────────────────────────

def validate_start_url(url: str) -> None:
    url = url.strip()
    if not url:
        raise ValueError("SSO start URL is required")
    if not _URL_RE.match(url):
        raise ValueError("SSO start URL must begin with https://")


def validate_account_id(account_id: str) -> None:
    account_id = account_id.strip()
    if not account_id:
        raise ValueError("account ID is required")
    if not _ACCOUNT_ID_RE.match(account_id):
        raise ValueError("account ID must be exactly 12 digits")


def validate_role_name(name: str) -> None:
    if not name.strip():
        raise ValueError("role name is required")


def validate_profile_name(name: str) -> None:
    """Profile names become INI section headers, so brackets are rejected."""
    name = name.strip()
    if not name:
        raise ValueError("profile name is required")
    if "[" in name or "]" in name:
        raise ValueError("profile name cannot contain '[' or ']'")


def validate_region(region: str) -> None:
    region = region.strip()
    if not region:
        raise ValueError("region is required")
    if region not in AWS_REGIONS:
        raise ValueError(f"unknown AWS region: {region}")


def validate_profile(profile: NamedProfile) -> None:
    """Validate every field of a profile, prefixing the failing field's name."""
    checks = [
        ("profile name", validate_profile_name, profile.name),
        ("start URL", validate_start_url, profile.start_url),
        ("region", validate_region, profile.region),
        ("account ID", validate_account_id, profile.account_id),
        ("role name", validate_role_name, profile.role_name),
    ]
    for label, check, value in checks:
        try:
            check(value)
        except ValueError as e:
            raise ValueError(f"{label}: {e}") from e


def group_by_account(profiles: list[NamedProfile]) -> list[AccountGroup]:
    """Group profiles by (start URL, account ID), preserving first-seen order."""
    groups: dict[tuple[str, str], AccountGroup] = {}
    for profile in profiles:
        key = (profile.start_url, profile.account_id)
        group = groups.get(key)
        if group is None:
            groups[key] = AccountGroup(
                account_id=profile.account_id,
                account_name=profile.account_name,
                start_url=profile.start_url,
                region=profile.region,
                roles=[profile],
            )
            continue
        group.roles.append(profile)
        if not group.account_name and profile.account_name:
            group.account_name = profile.account_name
    return list(groups.values())
