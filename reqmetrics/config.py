"""Configuration utilities for the reqmetrics service."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_METRICS_PREFIX = "reqmetrics"


def _env_flag(name: str, default: bool) -> bool:
    """Return a boolean flag derived from environment variables."""

    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> Tuple[str, ...]:
    """Return the non-empty items of a comma-delimited environment variable."""

    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def normalise_path(value: str) -> str:
    """Return ``value`` as an absolute URL path without a trailing slash."""

    candidate = value.strip()
    if not candidate.startswith("/"):
        candidate = f"/{candidate}"
    return candidate.rstrip("/") or "/"


def _load_environment() -> None:
    """Load environment variables from a ``.env`` file if present."""

    explicit_path = os.getenv("REQMETRICS_ENV_FILE")
    candidates = []

    if explicit_path:
        candidates.append(Path(explicit_path))

    candidates.append(PROJECT_ROOT / ".env")

    for candidate in candidates:
        try_path = candidate.expanduser()
        if try_path.exists():
            load_dotenv(try_path, override=False)


_load_environment()


class Settings(BaseModel):
    """Application configuration loaded from environment variables."""

    model_config = ConfigDict(validate_default=True)

    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "info"))
    metrics_path: str = Field(
        default_factory=lambda: os.getenv("METRICS_PATH", DEFAULT_METRICS_PATH)
    )
    metrics_excluded_paths: Tuple[str, ...] = Field(
        default_factory=lambda: _env_list("METRICS_EXCLUDED_PATHS")
    )
    metrics_prefix: str = Field(
        default_factory=lambda: os.getenv("METRICS_PREFIX", DEFAULT_METRICS_PREFIX)
    )
    metrics_group_paths: bool = Field(
        default_factory=lambda: _env_flag("METRICS_GROUP_PATHS", False)
    )
    metrics_default_collectors: bool = Field(
        default_factory=lambda: _env_flag("METRICS_DEFAULT_COLLECTORS", True)
    )
    metrics_loop_lag_interval: float = Field(
        default_factory=lambda: float(os.getenv("METRICS_LOOP_LAG_INTERVAL", "0.5"))
    )

    @field_validator("metrics_path", mode="after")
    @classmethod
    def _normalise_metrics_path(cls, value: str) -> str:
        if not value.strip():
            return DEFAULT_METRICS_PATH
        return normalise_path(value)

    @field_validator("metrics_excluded_paths", mode="after")
    @classmethod
    def _normalise_excluded_paths(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(normalise_path(item) for item in value if item.strip()))

    @field_validator("metrics_prefix", mode="after")
    @classmethod
    def _strip_prefix(cls, value: str) -> str:
        return value.strip()

    @field_validator("metrics_loop_lag_interval", mode="after")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        return value if value > 0 else 0.5

    def excluded_paths(self) -> Tuple[str, ...]:
        """Return the scrape path followed by any additionally excluded paths."""

        return tuple(dict.fromkeys((self.metrics_path, *self.metrics_excluded_paths)))


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached settings so that subsequent calls reload from the environment."""

    get_settings.cache_clear()


__all__ = [
    "DEFAULT_METRICS_PATH",
    "DEFAULT_METRICS_PREFIX",
    "Settings",
    "get_settings",
    "normalise_path",
    "reset_settings_cache",
]
