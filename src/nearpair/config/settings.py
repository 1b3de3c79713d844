# src/nearpair/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/nearpair/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `NEARPAIR_CONFIG_PATH` (replaces the packaged defaults)
- environment variables (e.g., `NEARPAIR_LOG_LEVEL`, `NEARPAIR_GEOCODER_API_KEY`)

Design rule:
- Column names, cache paths and API endpoints live in YAML, not in business logic.
- Secrets come from the environment (or `.env`) and are handed to clients explicitly.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from nearpair.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `nearpair.config`."""
    text = resources.files("nearpair.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "NearPair"
    log_level: str = "INFO"
    http_timeout_seconds: float = 15


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/nearpair"
    default_ttl_seconds: int = 60 * 60 * 24


class ColumnSettings(BaseModel):
    """Default input column names (overridable per CLI run)."""

    id: str = "id"
    label: str | None = "type"
    lat: str = "latitude"
    lon: str = "longitude"
    address: str = "address"


class FinderSettings(BaseModel):
    workers: int = Field(1, ge=1, le=64)


class GeocodingSettings(BaseModel):
    base_url: str
    cache_ttl_seconds: int = 60 * 60 * 24 * 30
    requests_per_minute: float = Field(600, gt=0)
    api_key: str | None = None


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    columns: ColumnSettings = Field(default_factory=ColumnSettings)
    finder: FinderSettings = Field(default_factory=FinderSettings)
    geocoding: GeocodingSettings


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)
    cache_dir = os.getenv("NEARPAIR_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("NEARPAIR_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    api_key = os.getenv("NEARPAIR_GEOCODER_API_KEY")
    if api_key:
        data.setdefault("geocoding", {})["api_key"] = api_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("NEARPAIR_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
