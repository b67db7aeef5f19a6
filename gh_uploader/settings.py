from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from gh_uploader.exceptions import ConfigurationError

# Load .env file from the working directory
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

CONFIG_ENV = "GH_UPLOADER_CONFIG"


class LoggingSettings(BaseModel):
    level: str = "WARNING"
    json_format: bool = False
    file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:  # noqa: D401
        if value is None:
            return "WARNING"
        level = str(value).strip().upper()
        try:
            logger.level(level)
        except ValueError as exc:
            raise ValueError(f"unknown log level {level!r}") from exc
        return level


class Settings(BaseModel):
    upload_host: str = "uploads.github.com"
    default_scheme: str = "https"
    accept: str = "application/vnd.github.manifold-preview"
    default_content_type: str = "application/octet-stream"
    token_env: str = "GITHUB_TOKEN"
    # None means no timeout; large assets can take minutes
    timeout_seconds: float | None = Field(default=None, gt=0.0)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("upload_host", "default_scheme", "accept", "default_content_type", mode="before")
    @classmethod
    def _require_non_empty(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @property
    def env_token(self) -> str:
        return os.getenv(self.token_env, "")

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                the GH_UPLOADER_CONFIG environment variable, or the built-in
                defaults when that is unset too.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file does not exist or is invalid.
        """
        if path is None:
            configured = os.getenv(CONFIG_ENV)
            if not configured:
                return cls()
            path = Path(configured)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}", {"path": str(path)})
        try:
            with path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(path)}) from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("Invalid configuration: expected a mapping", {"path": str(path)})
        try:
            return cls(**payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "LoggingSettings",
    "get_settings",
]
