# src/mdsassist/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/mdsassist/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `MDSASSIST_CONFIG_PATH`
- environment variables (e.g., `MDSASSIST_LOG_LEVEL`, `MDSASSIST_ACQUIRE_TIMEOUT_MS`)

Design rule:
- Timing and tolerance knobs live in YAML, not hard-coded in the acquisition or report code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from mdsassist.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `mdsassist.config`."""
    text = resources.files("mdsassist.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "MDS Assist"
    log_level: str = "INFO"


class AcquisitionSettings(BaseModel):
    timeout_ms: int = Field(15_000, gt=0)
    fallback_timeout_ms: int = Field(10_000, gt=0)
    desired_accuracy_m: float | None = Field(default=20, ge=0)
    progress_interval_ms: int = Field(1_000, gt=0)
    accuracy_policy: Literal["advisory", "early_accept"] = "advisory"


class ReportingSettings(BaseModel):
    incident_site_label: str = "incident site"
    proximity_radius_m: float = Field(50, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    acquisition: AcquisitionSettings = Field(default_factory=AcquisitionSettings)
    reporting: ReportingSettings = Field(default_factory=ReportingSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: the whitelist is kept small; everything else belongs in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("MDSASSIST_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timeout_ms = os.getenv("MDSASSIST_ACQUIRE_TIMEOUT_MS")
    if timeout_ms:
        data.setdefault("acquisition", {})["timeout_ms"] = int(timeout_ms)

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("MDSASSIST_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
