"""
Dashboard settings.

Defaults live on the dataclass; ``config/dashboard_settings.json`` overrides
them, and environment variables (optionally from a ``.env`` file) override
both.

Usage:
    from cdp_lineage.core.settings import load_settings

    settings = load_settings()          # config/dashboard_settings.json + env
    settings = DashboardSettings.from_env()
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv

from .config_validation import get_schema, validate_data, validate_file_or_raise

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
SETTINGS_FILENAME = "dashboard_settings.json"
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / SETTINGS_FILENAME


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{value!r} is not an integer") from None


# Environment variable -> (settings field, parser)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "CDP_OVERFLOW_LIMIT": ("overflow_limit", _env_int),
    "CDP_DETAIL_OVERFLOW_LIMIT": ("detail_overflow_limit", _env_int),
    "CDP_HUB_NAME": ("hub_name", str),
    "CDP_DATA_FILE": ("data_file", str),
    "CDP_INCLUDE_INFO_TIER": ("include_info_tier", _env_bool),
    "CDP_LOG_LEVEL": ("log_level", lambda v: v.strip().upper()),
    "CDP_LOG_FILE": ("log_file", str),
}


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Settings fields overridden by ``CDP_*`` variables; empty values are ignored.

    Raises:
        ValueError: naming the variable whose value cannot be parsed
    """
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for name, (field_name, parse) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if not raw:
            continue
        try:
            overrides[field_name] = parse(raw)
        except ValueError as e:
            raise ValueError(f"{name}: {e}") from None
    return overrides


def validate_environment(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Errors in the ``CDP_*`` overrides, checked against the settings file schema."""
    try:
        overrides = env_overrides(environ)
    except ValueError as e:
        return [str(e)]
    env_name = {field_name: name for name, (field_name, _) in ENV_OVERRIDES.items()}
    errors = []
    for error in validate_data(get_schema(SETTINGS_FILENAME), overrides):
        field_name, _, message = error.partition(": ")
        errors.append(f"{env_name.get(field_name, field_name)}: {message}")
    return errors


@dataclass(frozen=True)
class DashboardSettings:
    """Engine and layout settings."""

    overflow_limit: int = 30
    detail_overflow_limit: int = 30
    hub_name: str = "CDP"
    canvas_width: float = 1200.0
    canvas_height: float = 800.0
    min_node_size: float = 10.0
    node_size_scale: float = 60.0
    hub_node_size: float = 80.0
    max_link_width: float = 12.0
    include_info_tier: bool = True
    data_file: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def with_env(self) -> DashboardSettings:
        """Apply environment overrides on top of these settings."""
        overrides = env_overrides()
        return replace(self, **overrides) if overrides else self

    @classmethod
    def from_env(cls) -> DashboardSettings:
        """Defaults plus environment variables."""
        return cls().with_env()

    @classmethod
    def from_dict(cls, data: dict) -> DashboardSettings:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def load_settings(config_path: Union[str, Path, None] = None, *, use_env: bool = True) -> DashboardSettings:
    """
    Load settings from a JSON config file, then apply environment overrides.

    A missing config file is not an error; defaults are used. An invalid one
    raises ConfigValidationError, and an unparsable CDP_* value raises
    ValueError.
    """
    if use_env:
        env_path = PROJECT_ROOT / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded environment from {env_path}")

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        settings = DashboardSettings.from_dict(validate_file_or_raise(path))
        logger.info(f"Loaded settings from {path}")
    else:
        logger.info(f"No settings file at {path}, using defaults")
        settings = DashboardSettings()

    return settings.with_env() if use_env else settings
