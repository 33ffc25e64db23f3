"""Settings loading: optional JSON file, overridden by environment variables."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir
from pydantic import ValidationError

from .models import Settings

logger = logging.getLogger(__name__)

APP_NAME = "cecilefy-proxy"
DEFAULT_STATIC_DIR = Path(__file__).parent.parent / "frontend"


def settings_file() -> Path:
    return Path(user_config_dir(APP_NAME)) / "settings.json"


def _read_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {path}: expected a JSON object")
        return {}
    return data


def _build_settings(file_data: Dict[str, Any]) -> Settings:
    # Only the fields the environment actually set, so they win over the file
    env_data = Settings().model_dump(exclude_unset=True)
    return Settings(**{**file_data, **env_data})


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from file and environment, fall back to defaults."""
    file_data = _read_settings_file(path or settings_file())

    try:
        settings = _build_settings(file_data)
    except ValidationError as e:
        logger.warning(f"Invalid settings file values, using environment only: {e}")
        try:
            settings = _build_settings({})
        except ValidationError as env_error:
            logger.warning(f"Invalid settings, using defaults: {env_error}")
            settings = Settings.model_construct()

    if not settings.static_dir:
        settings.static_dir = str(DEFAULT_STATIC_DIR)
    return settings
