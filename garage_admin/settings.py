from __future__ import annotations

"""
Application settings for the garage admin core.

Settings are read from an optional YAML file and normalized into frozen
dataclasses. Defaults mirror the values the admin screens have always used
(10 rows per list page, 12 cards per selector page, a 300 ms search debounce).

Lookup order for the settings file:
- explicit `path` argument
- `GARAGE_ADMIN_SETTINGS` environment variable
- `config/settings.yaml` under the project root

A missing file is not an error; defaults are returned. `GARAGE_ADMIN_API_URL`
overrides `api_url` regardless of where the rest came from.
"""

from dataclasses import dataclass, field, replace
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .io_paths import LOGS_DIR, SETTINGS_FILE

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "GARAGE_ADMIN_SETTINGS"
API_URL_ENV_VAR = "GARAGE_ADMIN_API_URL"


class SettingsError(ValueError):
    """Raised when a settings file is unreadable or holds an invalid value."""


@dataclass(frozen=True)
class PaginationSettings:
    default_page: int = 1
    default_limit: int = 10
    selector_limit: int = 12
    max_limit: int = 100
    search_debounce_ms: int = 300

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0


@dataclass(frozen=True)
class LoggingSettings:
    debug: bool = False
    log_dir: Path = LOGS_DIR


@dataclass(frozen=True)
class AppSettings:
    api_url: str = "http://localhost:5000/api"
    request_timeout: float = 30.0
    pagination: PaginationSettings = field(default_factory=PaginationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _positive_int(section: str, key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise SettingsError(f"{section}.{key} must be an integer, got {value!r}")
    if number <= 0:
        raise SettingsError(f"{section}.{key} must be positive, got {number}")
    return number


def _parse_pagination(data: Mapping[str, Any]) -> PaginationSettings:
    if not isinstance(data, Mapping):
        raise SettingsError("pagination must be a mapping")
    known = {f for f in PaginationSettings.__dataclass_fields__}
    values: Dict[str, int] = {}
    for key, raw in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown pagination setting '{key}'")
            continue
        values[key] = _positive_int("pagination", key, raw)
    settings = PaginationSettings(**values)
    if settings.default_limit > settings.max_limit or settings.selector_limit > settings.max_limit:
        raise SettingsError(
            f"pagination limits must not exceed max_limit ({settings.max_limit})"
        )
    return settings


def _parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    if not isinstance(data, Mapping):
        raise SettingsError("logging must be a mapping")
    debug = data.get("debug", False)
    if not isinstance(debug, bool):
        raise SettingsError(f"logging.debug must be true or false, got {debug!r}")
    log_dir = data.get("log_dir")
    return LoggingSettings(debug=debug, log_dir=Path(log_dir) if log_dir else LOGS_DIR)


def settings_from_dict(data: Optional[Mapping[str, Any]]) -> AppSettings:
    """Build `AppSettings` from a plain mapping (as loaded from YAML).

    Raises:
        SettingsError: if a known key holds an invalid value
    """
    if data is None:
        return AppSettings()
    if not isinstance(data, Mapping):
        raise SettingsError("Settings root must be a mapping")

    settings = AppSettings()
    for key in data:
        if key not in AppSettings.__dataclass_fields__:
            logger.warning(f"Ignoring unknown setting '{key}'")

    if "api_url" in data:
        api_url = str(data["api_url"] or "").strip()
        if not api_url.startswith(("http://", "https://")):
            raise SettingsError(f"api_url must start with http:// or https://, got {api_url!r}")
        settings = replace(settings, api_url=api_url.rstrip("/"))

    if "request_timeout" in data:
        try:
            timeout = float(data["request_timeout"])
        except (TypeError, ValueError):
            raise SettingsError(f"request_timeout must be a number, got {data['request_timeout']!r}")
        if timeout <= 0:
            raise SettingsError("request_timeout must be positive")
        settings = replace(settings, request_timeout=timeout)

    if "pagination" in data:
        settings = replace(settings, pagination=_parse_pagination(data["pagination"] or {}))
    if "logging" in data:
        settings = replace(settings, logging=_parse_logging(data["logging"] or {}))
    return settings


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load settings from YAML, falling back to defaults when no file exists.

    Args:
        path: Optional explicit settings file

    Returns:
        AppSettings with environment overrides applied
    """
    if path is None:
        env_path = os.environ.get(SETTINGS_ENV_VAR)
        path = Path(env_path) if env_path else SETTINGS_FILE
    path = Path(path)

    data: Optional[Dict[str, Any]] = None
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsError(f"YAML parsing error in {path}: {e}")
        logger.info(f"Loaded settings from {path}")
    else:
        logger.debug(f"No settings file at {path}, using defaults")

    settings = settings_from_dict(data)

    api_url = os.environ.get(API_URL_ENV_VAR)
    if api_url:
        settings = replace(settings, api_url=api_url.rstrip("/"))
    return settings
