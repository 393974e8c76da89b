"""Credential set and the stores a previously issued refresh token can be loaded from."""
from __future__ import annotations

import json
import logging
import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from gas_relay import env as env_loader

logger = logging.getLogger(__name__)


@dataclass
class CredentialSet:
    """OAuth tokens held for the process lifetime."""

    access_token: str | None = None
    refresh_token: str | None = None
    expiry: datetime | None = None  # naive UTC, as google-auth expects

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CredentialSet:
        """Accepts our own format and google-auth's Credentials.to_json() ("token" key)."""
        expiry = None
        raw_expiry = data.get("expiry")
        if isinstance(raw_expiry, str) and raw_expiry:
            try:
                expiry = datetime.fromisoformat(raw_expiry.replace("Z", "+00:00"))
            except ValueError:
                expiry = None
            if expiry is not None and expiry.tzinfo is not None:
                expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
        return cls(
            access_token=data.get("access_token") or data.get("token"),
            refresh_token=data.get("refresh_token"),
            expiry=expiry,
        )


class TokenStore(ABC):
    """Somewhere a credential set can be loaded from (and optionally saved to)."""

    name = "token store"

    @abstractmethod
    def load(self) -> CredentialSet | None:
        """Return stored credentials, or None when nothing usable is stored."""

    def save(self, credentials: CredentialSet) -> None:
        raise NotImplementedError(f"{self.name} is read-only")


class EnvTokenStore(TokenStore):
    """GOOGLE_REFRESH_TOKEN (required) plus optional GOOGLE_ACCESS_TOKEN."""

    name = "environment"

    def load(self) -> CredentialSet | None:
        refresh_token = env_loader.google_refresh_token()
        if not refresh_token:
            return None
        return CredentialSet(access_token=env_loader.google_access_token(), refresh_token=refresh_token)


class FileTokenStore(TokenStore):
    """JSON token file for local development. Written owner-only (0600)."""

    name = "token file"

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else env_loader.google_tokens_file()

    def load(self) -> CredentialSet | None:
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Could not read tokens from %s: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", self.path)
            return None
        credentials = CredentialSet.from_dict(data)
        if credentials.is_empty:
            return None
        return credentials

    def save(self, credentials: CredentialSet) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(credentials.to_dict(), indent=2))
        os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)
        logger.info("Saved OAuth tokens to %s", self.path)


def default_token_stores() -> list[TokenStore]:
    """Environment first, then the local token file."""
    return [EnvTokenStore(), FileTokenStore()]
