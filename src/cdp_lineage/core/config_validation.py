"""JSON config validation utilities.

Validates files under ``config/`` against the schemas below so a typo in a
settings file fails loudly at startup instead of silently using defaults.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jsonschema import Draft7Validator


_DASHBOARD_SETTINGS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "description": {"type": "string"},
        "overflow_limit": {"type": "integer", "minimum": 1},
        "detail_overflow_limit": {"type": "integer", "minimum": 1},
        "hub_name": {"type": "string", "minLength": 1},
        "canvas_width": {"type": "number", "exclusiveMinimum": 0},
        "canvas_height": {"type": "number", "exclusiveMinimum": 0},
        "min_node_size": {"type": "number", "minimum": 0},
        "node_size_scale": {"type": "number", "minimum": 0},
        "hub_node_size": {"type": "number", "minimum": 0},
        "max_link_width": {"type": "number", "minimum": 1},
        "include_info_tier": {"type": "boolean"},
        "data_file": {"type": ["string", "null"]},
        "log_level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "log_file": {"type": ["string", "null"]},
    },
}


SCHEMAS_BY_FILENAME: Mapping[str, Dict[str, Any]] = {
    "dashboard_settings.json": _DASHBOARD_SETTINGS_SCHEMA,
}


class ConfigValidationError(ValueError):
    """Raised when a config file does not match its schema."""

    def __init__(self, path: Path, errors: List[str]):
        self.path = path
        self.errors = errors
        super().__init__(f"Invalid config {path}: " + "; ".join(errors))


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def get_schema(filename: str) -> Dict[str, Any]:
    return dict(SCHEMAS_BY_FILENAME.get(filename, {}))


def validate_data(schema: Mapping[str, Any], data: Any) -> List[str]:
    validator = Draft7Validator(schema)
    errors = []
    for err in sorted(validator.iter_errors(data), key=str):
        loc = "/".join(str(p) for p in err.path) if err.path else "(root)"
        errors.append(f"{loc}: {err.message}")
    return errors


def validate_file(path: Path) -> List[str]:
    schema = SCHEMAS_BY_FILENAME.get(path.name)
    if not schema:
        return []
    try:
        data = _load_json(path)
    except json.JSONDecodeError as e:
        return [f"(root): invalid JSON: {e}"]
    return validate_data(schema, data)


def validate_file_or_raise(path: Path) -> Dict[str, Any]:
    """Validate and return the parsed config, raising ConfigValidationError on any error."""
    errors = validate_file(path)
    if errors:
        raise ConfigValidationError(path, errors)
    return _load_json(path)


def validate_config_dir(config_dir: Path, *, only_known_files: bool = True) -> Dict[str, List[str]]:
    results: Dict[str, List[str]] = {}
    if not config_dir.exists():
        return results

    candidates = list(config_dir.glob("*.json"))
    for path in candidates:
        if only_known_files and path.name not in SCHEMAS_BY_FILENAME:
            continue
        errors = validate_file(path)
        if errors:
            results[str(path)] = errors
    return results
