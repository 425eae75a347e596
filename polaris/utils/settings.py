"""Environment-driven settings for the repository layer."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, Optional

SettingKey = Literal[
    "default_per_page",
    "case_insensitive_like",
    "sql_echo",
    "log_level",
]


@dataclass(frozen=True)
class RepositorySettings:
    default_per_page: int
    case_insensitive_like: bool
    sql_echo: bool
    log_level: str


@dataclass(frozen=True)
class SettingDefinition:
    env_var: str
    default: object


_SETTING_DEFINITIONS: Dict[SettingKey, SettingDefinition] = {
    "default_per_page": SettingDefinition("POLARIS_DEFAULT_PER_PAGE", 15),
    "case_insensitive_like": SettingDefinition("POLARIS_CASE_INSENSITIVE_LIKE", False),
    "sql_echo": SettingDefinition("POLARIS_SQL_ECHO", False),
    "log_level": SettingDefinition("POLARIS_LOG_LEVEL", "INFO"),
}


def _normalize_bool(value: str | None, default: bool = False) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _normalize_positive_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env(key: SettingKey) -> Optional[str]:
    return os.getenv(_SETTING_DEFINITIONS[key].env_var)


@lru_cache(maxsize=None)
def get_settings() -> RepositorySettings:
    """Return the cached settings sourced from the environment."""
    level = (_env("log_level") or str(_SETTING_DEFINITIONS["log_level"].default)).strip().upper()
    return RepositorySettings(
        default_per_page=_normalize_positive_int(
            _env("default_per_page"), int(_SETTING_DEFINITIONS["default_per_page"].default)
        ),
        case_insensitive_like=_normalize_bool(_env("case_insensitive_like"), default=False),
        sql_echo=_normalize_bool(_env("sql_echo"), default=False),
        log_level=level or "INFO",
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()


def configure_logging(level: Optional[str] = None) -> None:
    """Opt-in root logging setup for scripts embedding the package.

    The library itself never installs handlers; applications usually own that.
    """
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
