"""On-disk SSO token cache shared with the AWS CLI and SDKs."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from saws.config import home_dir
from saws.models.auth import CachedToken, TokenStatus
from saws.utils.errors import ConfigurationError, TokenCacheError

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as absent so they cannot expire mid-use
EXPIRY_BUFFER = timedelta(minutes=5)


def default_cache_dir() -> Path:
    """Return ``~/.aws/sso/cache``."""
    return home_dir() / ".aws" / "sso" / "cache"


class TokenCache:
    """One cached SSO access token per start URL.

    Files live at ``{cache_dir}/{sha1(start_url)}.json``, the same location the AWS CLI
    uses, so ``AWS_PROFILE`` works in other tools once saws has logged in.
    """

    def __init__(self, cache_dir: Path | str | None = None) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None

    @property
    def cache_dir(self) -> Path:
        if self._cache_dir is None:
            self._cache_dir = default_cache_dir()
        return self._cache_dir

    @staticmethod
    def make_key(start_url: str) -> str:
        """Lowercase hex SHA-1 of the start URL, matching the AWS CLI convention."""
        return hashlib.sha1(start_url.encode("utf-8")).hexdigest().lower()

    def path_for(self, start_url: str) -> Path:
        return self.cache_dir / f"{self.make_key(start_url)}.json"

    def read(self, start_url: str, now: datetime | None = None) -> CachedToken | None:
        """Return the cached token for ``start_url`` if it is still usable.

        Missing files, unreadable or malformed content, a missing access token and tokens
        expiring within EXPIRY_BUFFER all return None.
        """
        token = self._load(start_url)
        if token is None:
            return None

        now = now or datetime.now(timezone.utc)
        if now + EXPIRY_BUFFER >= token.expires_at:
            logger.debug(f"Cached token for {start_url} expires at {token.expires_at}")
            return None

        return token

    def status(self, start_url: str, now: datetime | None = None) -> TokenStatus:
        """Describe the cached token for ``start_url`` without returning it."""
        token = self._load(start_url)
        if token is None:
            return TokenStatus(has_token=False, is_expired=True)

        now = now or datetime.now(timezone.utc)
        is_expired = now + EXPIRY_BUFFER >= token.expires_at
        seconds_remaining = None
        if not is_expired:
            seconds_remaining = int((token.expires_at - now).total_seconds())

        return TokenStatus(
            has_token=True,
            is_expired=is_expired,
            expires_at=token.expires_at,
            seconds_remaining=seconds_remaining,
        )

    def _load(self, start_url: str) -> CachedToken | None:
        """Parse the cache file, ignoring expiry. Any read problem yields None."""
        try:
            path = self.path_for(start_url)
            raw = path.read_text(encoding="utf-8")
            token = CachedToken.model_validate(json.loads(raw))
        except (ConfigurationError, OSError, ValueError, ValidationError) as e:
            logger.debug(f"No usable cached token for {start_url}: {e}")
            return None

        if not token.access_token:
            return None
        return token

    def write(
        self,
        start_url: str,
        region: str,
        access_token: str,
        expires_at: datetime,
    ) -> Path:
        """Write a token for ``start_url``, replacing any previous one atomically.

        Raises:
            TokenCacheError: If the directory or file cannot be written.
        """
        token = CachedToken(
            start_url=start_url,
            region=region,
            access_token=access_token,
            expires_at=expires_at,
        )
        data = json.dumps(token.model_dump(by_alias=True))

        try:
            path = self.path_for(start_url)
        except ConfigurationError as e:
            raise TokenCacheError(f"cannot write SSO cache: {e}") from e

        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise TokenCacheError(f"cannot create SSO cache directory: {e}") from e

        try:
            # mkstemp creates the file with mode 0600
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".saws-", suffix=".tmp")
        except OSError as e:
            raise TokenCacheError(f"cannot write SSO cache file: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise TokenCacheError(f"cannot write SSO cache file: {e}") from e

        logger.info(f"Cached SSO token for {start_url} at {path}")
        return path

    def delete(self, start_url: str) -> bool:
        """Remove the cached token. Returns True if a file was removed."""
        path = self.path_for(start_url)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
