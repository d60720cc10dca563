"""SSO profile persistence in the AWS shared config and credentials files."""

from __future__ import annotations

import configparser
import logging
from pathlib import Path

from saws.config import Settings
from saws.models.credentials import RoleCredentials
from saws.models.profiles import NamedProfile, validate_profile
from saws.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

_SSO_KEYS = ("sso_start_url", "sso_region", "sso_account_id", "sso_role_name")


def section_name(profile_name: str) -> str:
    """AWS config uses ``[profile NAME]`` for everything except ``[default]``."""
    if profile_name == "default":
        return "default"
    return f"profile {profile_name}"


def profile_name_from_section(section: str) -> str:
    if section == "default":
        return "default"
    return section.removeprefix("profile ")


class ProfileStore:
    """Loads and saves SSO profiles in ``~/.aws/config``.

    Only sections carrying all four ``sso_*`` keys are treated as SSO profiles; every
    other section is preserved untouched on save.
    """

    def __init__(self, config_path: Path | str, credentials_path: Path | str) -> None:
        self._config_path = Path(config_path)
        self._credentials_path = Path(credentials_path)

    @classmethod
    def from_settings(cls, settings: Settings) -> ProfileStore:
        return cls(settings.aws_config_file, settings.aws_credentials_file)

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def credentials_path(self) -> Path:
        return self._credentials_path

    # ── profiles ──────────────────────────────────────────────────────

    def load_profiles(self) -> list[NamedProfile]:
        """Read every SSO profile, in file order."""
        parser = self._load(self._config_path)
        profiles = []
        for name in parser.sections():
            section = parser[name]
            if not all(key in section for key in _SSO_KEYS):
                continue
            profiles.append(NamedProfile(
                name=profile_name_from_section(name),
                start_url=section["sso_start_url"],
                region=section["sso_region"],
                account_id=section["sso_account_id"],
                account_name=section.get("sso_account_name", ""),
                role_name=section["sso_role_name"],
            ))
        return profiles

    def get_profile(self, name: str) -> NamedProfile:
        """Look up a saved profile by name.

        Raises:
            ValueError: If no SSO profile has that name.
        """
        for profile in self.load_profiles():
            if profile.name == name:
                return profile
        raise ValueError(f"profile {name!r} not found in {self._config_path}")

    def save_profiles(self, profiles: list[NamedProfile]) -> None:
        """Write profiles in one read/write cycle, replacing same-name records."""
        for profile in profiles:
            validate_profile(profile)

        parser = self._load(self._config_path)
        for profile in profiles:
            name = section_name(profile.name)
            if parser.has_section(name):
                parser.remove_section(name)
            parser.add_section(name)
            section = parser[name]
            section["sso_start_url"] = profile.start_url
            section["sso_region"] = profile.region
            section["sso_account_id"] = profile.account_id
            if profile.account_name:
                section["sso_account_name"] = profile.account_name
            section["sso_role_name"] = profile.role_name

        self._save(parser, self._config_path)
        logger.info(f"Saved {len(profiles)} profile(s) to {self._config_path}")

    def delete_profile(self, name: str) -> bool:
        """Remove a profile. Returns True if it existed."""
        parser = self._load(self._config_path)
        removed = parser.remove_section(section_name(name))
        if removed:
            self._save(parser, self._config_path)
        return removed

    # ── credentials ───────────────────────────────────────────────────

    def write_credentials(self, profile_name: str, creds: RoleCredentials) -> None:
        """Store temporary credentials under ``[profile_name]`` in the credentials file."""
        parser = self._load(self._credentials_path)
        if not parser.has_section(profile_name):
            parser.add_section(profile_name)
        section = parser[profile_name]
        section["aws_access_key_id"] = creds.access_key_id
        section["aws_secret_access_key"] = creds.secret_access_key
        section["aws_session_token"] = creds.session_token
        self._save(parser, self._credentials_path)

    # ── file helpers ──────────────────────────────────────────────────

    @staticmethod
    def _load(path: Path) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        if not path.exists():
            return parser
        try:
            with open(path, encoding="utf-8") as f:
                parser.read_file(f)
        except (OSError, configparser.Error) as e:
            raise ConfigurationError(f"cannot parse {path}: {e}") from e
        return parser

    @staticmethod
    def _save(parser: configparser.ConfigParser, path: Path) -> None:
        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"cannot write {path}: {e}") from e
