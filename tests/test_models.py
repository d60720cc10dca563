"""Tests for Pydantic models: aliases, timestamp parsing, validation and grouping."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from saws.models.auth import CachedToken, format_expires_at, parse_expires_at
from saws.models.credentials import RoleCredentials
from saws.models.profiles import (
    DiscoveredAccount,
    DiscoveredRole,
    NamedProfile,
    RoleBinding,
    group_by_account,
    validate_account_id,
    validate_profile,
    validate_profile_name,
    validate_region,
    validate_start_url,
)

START_URL = "https://example.awsapps.com/start"


def _profile(name, account_id="111111111111", account_name="Production", role_name="Admin", start_url=START_URL):
    return NamedProfile(
        name=name,
        start_url=start_url,
        region="us-east-1",
        account_id=account_id,
        account_name=account_name,
        role_name=role_name,
    )


# ── Timestamps ───────────────────────────────────────────────────────

def test_parse_rfc3339_z():
    assert parse_expires_at("2024-01-01T20:00:00Z") == datetime(2024, 1, 1, 20, tzinfo=timezone.utc)


def test_parse_legacy_utc_suffix():
    assert parse_expires_at("2024-01-01T20:00:00UTC") == datetime(2024, 1, 1, 20, tzinfo=timezone.utc)


def test_parse_offset_normalized_to_utc():
    assert parse_expires_at("2024-01-01T21:00:00+01:00") == datetime(2024, 1, 1, 20, tzinfo=timezone.utc)


@pytest.mark.parametrize("text, micros", [
    ("2024-01-01T20:00:00.5Z", 500000),
    ("2024-01-01T20:00:00.25Z", 250000),
    ("2024-01-01T20:00:00.1234Z", 123400),
    ("2024-01-01T20:00:00.12345+00:00", 123450),
    ("2024-01-01T20:00:00.123456789Z", 123456),
])
def test_parse_any_fraction_length(text, micros):
    assert parse_expires_at(text) == datetime(2024, 1, 1, 20, 0, 0, micros, tzinfo=timezone.utc)


def test_cached_token_with_nanosecond_expiry():
    token = CachedToken.model_validate({
        "startUrl": START_URL,
        "accessToken": "tok",
        "expiresAt": "2024-01-01T20:00:00.123456789Z",
    })
    assert token.expires_at.microsecond == 123456


def test_parse_naive_rejected():
    with pytest.raises(ValueError):
        parse_expires_at("2024-01-01T20:00:00")


def test_format_truncates_to_second():
    value = datetime(2024, 1, 1, 20, 0, 0, 999999, tzinfo=timezone.utc)
    assert format_expires_at(value) == "2024-01-01T20:00:00Z"


# ── CachedToken ──────────────────────────────────────────────────────

def test_cached_token_aliases():
    token = CachedToken.model_validate({
        "startUrl": START_URL,
        "region": "us-east-1",
        "accessToken": "tok",
        "expiresAt": "2024-01-01T20:00:00Z",
    })
    dumped = token.model_dump(by_alias=True)
    assert dumped == {
        "startUrl": START_URL,
        "region": "us-east-1",
        "accessToken": "tok",
        "expiresAt": "2024-01-01T20:00:00Z",
    }


def test_cached_token_region_optional():
    token = CachedToken(start_url=START_URL, access_token="tok", expires_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert token.region == ""


# ── RoleCredentials ──────────────────────────────────────────────────

def test_role_credentials_epoch_millis():
    creds = RoleCredentials.model_validate({
        "accessKeyId": "AKIA",
        "secretAccessKey": "secret",
        "sessionToken": "session",
        "expiration": 1_700_000_000_000,
    })
    assert creds.expiration == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


def test_role_credentials_missing_field():
    with pytest.raises(ValidationError):
        RoleCredentials.model_validate({"accessKeyId": "AKIA", "expiration": 0})


# ── RoleBinding / NamedProfile ───────────────────────────────────────

def test_role_binding_rejects_mismatched_account():
    with pytest.raises(ValidationError):
        RoleBinding(
            account=DiscoveredAccount(account_id="111111111111"),
            role=DiscoveredRole(account_id="222222222222", role_name="Admin"),
        )


def test_role_binding_properties():
    binding = RoleBinding(
        account=DiscoveredAccount(account_id="111111111111", account_name="Prod"),
        role=DiscoveredRole(account_id="111111111111", role_name="Admin"),
    )
    assert (binding.account_id, binding.account_name, binding.role_name) == ("111111111111", "Prod", "Admin")


def test_display_name():
    assert _profile("prod-admin").display_name == "prod-admin (Production / Admin)"
    assert _profile("x", account_name="").display_name == "x (111111111111 / Admin)"


def test_named_profile_is_frozen():
    with pytest.raises(ValidationError):
        _profile("prod-admin").name = "other"


# ── Validation ───────────────────────────────────────────────────────

@pytest.mark.parametrize("url", ["", "   ", "example.awsapps.com/start", "ftp://example.com"])
def test_invalid_start_url(url):
    with pytest.raises(ValueError):
        validate_start_url(url)


def test_valid_start_url():
    validate_start_url(START_URL)


@pytest.mark.parametrize("account_id", ["", "12345", "12345678901a", "1234567890123"])
def test_invalid_account_id(account_id):
    with pytest.raises(ValueError):
        validate_account_id(account_id)


@pytest.mark.parametrize("name", ["", "bad[name", "bad]name"])
def test_invalid_profile_name(name):
    with pytest.raises(ValueError):
        validate_profile_name(name)


def test_invalid_region():
    with pytest.raises(ValueError, match="unknown AWS region"):
        validate_region("mars-north-1")


def test_validate_profile_prefixes_field():
    with pytest.raises(ValueError, match="^account ID:"):
        validate_profile(_profile("ok", account_id="123"))


# ── group_by_account ─────────────────────────────────────────────────

def test_group_by_account_first_seen_order():
    profiles = [
        _profile("b-admin", account_id="222222222222", account_name="B"),
        _profile("a-admin", account_id="111111111111", account_name="A"),
        _profile("b-read", account_id="222222222222", account_name="B", role_name="Read"),
    ]
    groups = group_by_account(profiles)
    assert [g.account_id for g in groups] == ["222222222222", "111111111111"]
    assert [p.name for p in groups[0].roles] == ["b-admin", "b-read"]


def test_group_by_account_first_nonempty_name_wins():
    profiles = [
        _profile("one", account_name=""),
        _profile("two", account_name="Named"),
        _profile("three", account_name="Other"),
    ]
    groups = group_by_account(profiles)
    assert len(groups) == 1
    assert groups[0].account_name == "Named"
    assert groups[0].display_name == "Named (111111111111)"


def test_group_by_account_separates_start_urls():
    profiles = [_profile("one"), _profile("two", start_url="https://other.awsapps.com/start")]
    assert len(group_by_account(profiles)) == 2
