"""Configuration loader — YAML file + env override."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from deckhand.core.config.schema import Config

_DEFAULT_FILE = "deckhand.yaml"


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration.

    Resolution order for config file:
        1. Explicit ``config_path`` argument
        2. ``DECKHAND_CONFIG`` env variable
        3. ``./deckhand.yaml`` in cwd

    Values priority (see ``Config.settings_customise_sources``):
        env vars  >  .env file  >  YAML  >  defaults
    """
    path = _resolve_path(config_path)
    if config_path and path and not path.exists():
        logger.warning(f"Config file not found: {path} (using defaults)")
    return Config(**_load_yaml(path))


def write_default_config(path: str | Path = _DEFAULT_FILE, overwrite: bool = False) -> Path:
    """Write a starter YAML file with every section at its default value."""
    target = Path(path)
    if target.exists() and not overwrite:
        raise FileExistsError(f"{target} already exists")
    data = Config.model_construct().model_dump()
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return target


def _resolve_path(config_path: str | Path | None = None) -> Path | None:
    """Resolve config file path."""
    if config_path:
        return Path(config_path)

    env = os.environ.get("DECKHAND_CONFIG")
    if env:
        return Path(env)

    default = Path(_DEFAULT_FILE)
    return default if default.exists() else None


def _load_yaml(path: Path | None) -> dict[str, Any]:
    """Load YAML file, return empty dict if not found or not a mapping."""
    if not path or not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping")
    return data
