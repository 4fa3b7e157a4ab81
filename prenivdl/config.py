"""Configuration loader for the PrenivDL downloader (Pydantic edition)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Literal

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.prenivapi.com/api/download"
DEFAULT_API_ENDPOINTS: dict[str, str] = {
    "tiktok": "tiktok",
    "tiktok_v1": "tiktok/v1",
    "instagram": "instagram",
    "facebook": "facebook",
    "twitter": "twitter",
    "youtube": "youtube",
    "douyin": "douyin",
    "spotify": "spotify",
    "pinterest": "pinterest",
    "applemusic": "applemusic",
    "capcut": "capcut",
    "bluesky": "bluesky",
    "rednote": "rednote",
    "threads": "threads",
    "kuaishou": "kuaishou",
    "weibo": "weibo",
}
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 10; Mobile) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/90.0.4430.210 Mobile Safari/537.36"
)
DESKTOP_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded safely."""


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_default=True,
        populate_by_name=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("PRENIVDL_ENV", "APP_ENV"),
    )
    log_path: Path = Field(
        default=Path("logs/prenivdl.log"),
        validation_alias=AliasChoices("PRENIVDL_LOG_PATH", "LOG_PATH"),
    )
    output_dir: Path = Field(
        default=Path("resultdownload_preniv"),
        validation_alias=AliasChoices("PRENIVDL_OUTPUT_DIR", "OUTPUT_DIR"),
    )

    # Upstream API
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        validation_alias=AliasChoices("PRENIVDL_API_BASE_URL", "API_BASE_URL"),
    )
    api_endpoints: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_API_ENDPOINTS),
        validation_alias="PRENIVDL_API_ENDPOINTS",
    )
    mobile_user_agent: str = Field(MOBILE_USER_AGENT, validation_alias="PRENIVDL_MOBILE_USER_AGENT")
    desktop_user_agent: str = Field(DESKTOP_USER_AGENT, validation_alias="PRENIVDL_DESKTOP_USER_AGENT")

    # Timeouts (seconds)
    metadata_timeout_seconds: float = Field(30.0, gt=0, validation_alias="PRENIVDL_METADATA_TIMEOUT")
    download_timeout_seconds: float = Field(300.0, gt=0, validation_alias="PRENIVDL_DOWNLOAD_TIMEOUT")
    proxy_timeout_seconds: float = Field(120.0, gt=0, validation_alias="PRENIVDL_PROXY_TIMEOUT")

    # Transfer limits
    max_audio_bytes: int = Field(50 * 1024 * 1024, ge=1, validation_alias="PRENIVDL_MAX_AUDIO_BYTES")
    chunk_size: int = Field(64 * 1024, ge=1024, validation_alias="PRENIVDL_CHUNK_SIZE")

    # HTTP server
    server_host: str = Field("0.0.0.0", validation_alias=AliasChoices("PRENIVDL_HOST", "HOST"))
    server_port: int = Field(3001, ge=1, le=65535, validation_alias=AliasChoices("PRENIVDL_PORT", "PORT"))

    @field_validator("log_path", "output_dir", mode="after")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("api_base_url", mode="after")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        stripped = value.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an absolute http(s) URL")
        return stripped

    @field_validator("api_endpoints", mode="after")
    @classmethod
    def _merge_endpoints(cls, value: dict[str, str]) -> dict[str, str]:
        # Overrides layer on top of the defaults.
        merged = dict(DEFAULT_API_ENDPOINTS)
        merged.update({key.strip(): path.strip().strip("/") for key, path in value.items() if key.strip()})
        return merged

    @model_validator(mode="after")
    def _validate_timeouts(self) -> "AppConfig":
        if self.proxy_timeout_seconds < self.metadata_timeout_seconds:
            raise ConfigError("proxy_timeout_seconds cannot be shorter than metadata_timeout_seconds")
        return self

    def endpoint_url(self, key: str) -> str | None:
        """Return the absolute upstream endpoint for a platform/strategy key."""
        path = self.api_endpoints.get(key)
        if not path:
            return None
        return f"{self.api_base_url}/{path}"

    def ensure_runtime_directories(self) -> None:
        """Create directories required for runtime operation."""
        _ensure_directories((self.output_dir, self.log_path.parent))


def _ensure_directories(paths: Iterable[Path]) -> None:
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Path | None = None, **overrides) -> AppConfig:
    """Load configuration from .env/environment with validation."""
    load_kwargs: dict[str, object] = {}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(override=False)
    try:
        config = AppConfig(**load_kwargs, **overrides)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration") from exc

    config.ensure_runtime_directories()

    LOGGER.info(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "paths": {
                "output": str(config.output_dir),
                "log": str(config.log_path),
            },
        },
    )
    return config
