"""YAML configuration loading for the migrator runtime."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "migrator.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "guides": {
        "path": "migration-guides",
        "required": [
            "migration-guide",
        ],
        "max_keywords": 40,
    },
    "session": {
        "command": ["claude"],
        "model": "opus",
        "permission_mode": "bypassPermissions",
        "progress_interval": 20,
        "env": {
            "CLAUDE_CODE_ENABLE_TELEMETRY": "0",
            "OTEL_LOGS_EXPORTER": "",
            "OTEL_LOG_USER_PROMPTS": "0",
            "OTEL_METRICS_EXPORTER": "",
        },
    },
    "logging": {
        "level": "WARNING",
    },
    "verbose": False,
}


def default_config() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into ``base`` and return ``base``."""
    for key, value in overrides.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge(current, value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def load_config(config_path: Path | str | None = None) -> Dict[str, Any]:
    """Load YAML configuration from disk layered over the defaults.

    A missing ``config_path`` (``None``) yields the defaults unchanged. An
    explicit path that does not exist, cannot be parsed, or does not hold a
    mapping (at the top level or for a known section) raises :class:`ConfigError`.
    """
    config = default_config()
    if config_path is None:
        return config

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}") from error

    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping at the top level.")

    _merge(config, data)
    for name, default in DEFAULT_CONFIG_TEMPLATE.items():
        if isinstance(default, dict) and not isinstance(config.get(name), Mapping):
            raise ConfigError(f"Config section '{name}' must be a mapping.")
    config["_config_root"] = path.resolve().parent.as_posix()
    return config


def config_section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return the named section when it is a mapping, else an empty mapping."""
    section = config.get(name)
    if isinstance(section, Mapping):
        return section
    return {}


def resolve_path(config: Mapping[str, Any], value: str | Path, base: Path | None = None) -> Path:
    """Resolve ``value`` against ``base`` or the directory holding the config file."""
    candidate = Path(value)
    if candidate.is_absolute():
        return candidate
    if base is None:
        root = config.get("_config_root")
        base = Path(root) if isinstance(root, str) and root else Path.cwd()
    return (base / candidate).resolve()


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "config_section",
    "default_config",
    "load_config",
    "resolve_path",
]
