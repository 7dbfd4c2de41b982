"""
Configuration management utilities for github_client.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping, Sequence

from dotenv import dotenv_values

from github_client.cache import PERSISTED_TTL_SECONDS
from github_client.clients.requests_transport import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_USER_AGENT,
)
from github_client.exceptions import ConfigurationError

ENV_VAR_MAP = {
    "token": "GITHUB_TOKEN",
}

SETTINGS_ENV_VAR_MAP = {
    "base_url": "GITHUB_API_BASE_URL",
    "user_agent": "GITHUB_CLIENT_USER_AGENT",
    "api_version": "GITHUB_API_VERSION",
    "request_timeout": "GITHUB_CLIENT_TIMEOUT",
    "cache_dir": "GITHUB_CLIENT_CACHE_DIR",
    "persisted_ttl": "GITHUB_CLIENT_PERSISTED_TTL",
}


@dataclass(slots=True)
class GitHubCredentials:
    """Credential container holding one opaque access token."""

    token: str | None = None

    def is_empty(self) -> bool:
        return self.token in (None, "")

    def merge(self, other: "GitHubCredentials") -> "GitHubCredentials":
        """Merge credential sets, preferring non-null values from ``other``."""

        return GitHubCredentials(token=other.token or self.token)

    def to_dict(self) -> dict[str, str]:
        return {
            key: value
            for key, value in asdict(self).items()
            if isinstance(value, str) and value
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, str | None]) -> "GitHubCredentials":
        token = data.get("token")
        return cls(token=token.strip() if isinstance(token, str) else None)


@dataclass(slots=True)
class ClientSettings:
    """Non-secret runtime settings for the transport and caches."""

    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = 30.0
    cache_dir: Path = Path(".github_client_cache")
    persisted_ttl: float = float(PERSISTED_TTL_SECONDS)


class ConfigManager:
    """Loads and persists credentials and settings from environment, .env or disk."""

    def __init__(
        self,
        credential_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        dotenv_path: Path | None = None,
    ) -> None:
        self._credential_path = credential_path or Path("credentials/github_config.json")
        self._env = env if env is not None else os.environ
        self._dotenv_path = dotenv_path or Path(".env")

    def load_credentials(
        self,
        priority: Sequence[str] = ("env", "dotenv", "file"),
        *,
        allow_anonymous: bool = False,
    ) -> GitHubCredentials:
        """
        Load credentials according to the requested priority order.

        Raises:
            ConfigurationError: when no credentials are available and
                anonymous access was not allowed.
        """

        for source in priority:
            if source == "env":
                credentials = self._load_from_mapping(self._env)
            elif source == "dotenv":
                credentials = self._load_from_mapping(self._dotenv())
            elif source == "file":
                credentials = self._load_from_file()
            else:
                raise ValueError(f"Unknown credential source '{source}'.")

            if credentials and not credentials.is_empty():
                return credentials

        if allow_anonymous:
            return GitHubCredentials()
        raise ConfigurationError("GitHub credentials are not configured.")

    def save_credentials(self, credentials: GitHubCredentials) -> None:
        """Persist credentials to disk, merging with existing values."""

        existing = self._load_from_file()
        merged = existing.merge(credentials) if existing else credentials

        self._credential_path.parent.mkdir(parents=True, exist_ok=True)
        with self._credential_path.open("w", encoding="utf-8") as fp:
            json.dump(merged.to_dict(), fp, indent=2, sort_keys=True)

        os.chmod(self._credential_path, 0o600)

    def load_settings(self) -> ClientSettings:
        """Build settings from the environment, falling back to .env, then defaults."""

        merged: dict[str, str] = {**self._dotenv(), **dict(self._env)}
        values = {
            field: merged[env_name]
            for field, env_name in SETTINGS_ENV_VAR_MAP.items()
            if merged.get(env_name)
        }
        settings = ClientSettings()
        try:
            if "base_url" in values:
                settings.base_url = values["base_url"]
            if "user_agent" in values:
                settings.user_agent = values["user_agent"]
            if "api_version" in values:
                settings.api_version = values["api_version"]
            if "request_timeout" in values:
                settings.request_timeout = float(values["request_timeout"])
            if "cache_dir" in values:
                settings.cache_dir = Path(values["cache_dir"]).expanduser()
            if "persisted_ttl" in values:
                settings.persisted_ttl = float(values["persisted_ttl"])
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
        return settings

    def _dotenv(self) -> dict[str, str]:
        if not self._dotenv_path.exists():
            return {}
        return {key: value for key, value in dotenv_values(self._dotenv_path).items() if value}

    @staticmethod
    def _load_from_mapping(source: Mapping[str, str]) -> GitHubCredentials | None:
        values: dict[str, str | None] = {
            field: source.get(env_name) for field, env_name in ENV_VAR_MAP.items()
        }
        credentials = GitHubCredentials.from_mapping(values)
        return credentials if not credentials.is_empty() else None

    def _load_from_file(self) -> GitHubCredentials | None:
        if not self._credential_path.exists():
            return None

        with self._credential_path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)

        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Credential file {self._credential_path} did not contain a mapping."
            )

        credentials = GitHubCredentials.from_mapping(data)
        return credentials if not credentials.is_empty() else None
