"""
Configuration loading for the LMS portal.

Configuration is a plain dict. Values come from ``DEFAULT_CONFIG``, then an
optional JSON file, then ``LMS_*`` environment variables, then explicit
overrides (usually CLI flags).
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from .core.exceptions import ConfigurationError

DEFAULT_CONFIG: Dict[str, Any] = {
    "storage_type": "file",
    "storage_config": {},
    "lock_timeout": 5.0,
    "log_level": "INFO",
    "host": "127.0.0.1",
    "port": 8000,
}

DEFAULT_DATA_DIR = "lms_data"
_STORAGE_TYPES = {"memory", "file", "sqlite"}


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    # Top-level replace: a later storage_config supersedes the earlier one whole.
    for key, value in extra.items():
        base[key] = copy.deepcopy(value)
    return base


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if environ.get("LMS_STORAGE_TYPE"):
        overrides["storage_type"] = environ["LMS_STORAGE_TYPE"]
    if environ.get("LMS_DATA_DIR"):
        overrides["storage_config"] = {"base_path": environ["LMS_DATA_DIR"]}
    if environ.get("LMS_LOG_LEVEL"):
        overrides["log_level"] = environ["LMS_LOG_LEVEL"]
    return overrides


def load_config(path: Optional[str] = None,
                overrides: Optional[Mapping[str, Any]] = None,
                environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build and validate the effective configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        _merge(config, file_config)

    _merge(config, _from_environment(os.environ if environ is None else environ))
    if overrides:
        _merge(config, overrides)

    validate_config(config)
    return config


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ConfigurationError for values the platform cannot use."""
    storage_type = str(config.get("storage_type", "")).lower()
    if storage_type not in _STORAGE_TYPES:
        raise ConfigurationError(
            f"Unsupported storage type: {config.get('storage_type')}",
            details={"allowed": sorted(_STORAGE_TYPES)},
        )
    if not isinstance(config.get("storage_config", {}), dict):
        raise ConfigurationError("storage_config must be an object")

    timeout = config.get("lock_timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigurationError("lock_timeout must be a positive number")

    port = config.get("port")
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigurationError("port must be an integer between 1 and 65535")

    level = str(config.get("log_level", "")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level: {config.get('log_level')}")


def storage_options(config: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword arguments for the configured storage backend."""
    options = dict(config.get("storage_config") or {})
    kind = str(config["storage_type"]).lower()
    if kind == "file":
        options.setdefault("base_path", DEFAULT_DATA_DIR)
    elif kind == "sqlite" and "base_path" in options:
        base_path = options.pop("base_path")
        os.makedirs(base_path, exist_ok=True)
        options.setdefault("database_path", os.path.join(base_path, "lms_portal.db"))
    elif kind == "memory":
        options.pop("base_path", None)
    return options
