"""
Configuration Loader (``compliance_config.loader``).

Responsibility
--------------
Loads a YAML settings file, applies environment overrides and parses the
result into ``compliance_config.schema`` dataclasses.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Invalid values raise ``ConfigurationError``; there are no silent
  defaults for the database URL or the mode list.
* ``compute_checksum`` is a deterministic SHA-256 over the effective
  settings, logged on load so a run can be tied to its configuration.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad or missing values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from compliance_config.schema import DatabaseSettings, ModeDefinition, Settings
from compliance_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("compliance_kernel.config")

DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

ENV_CONFIG_FILE = "COMPLIANCE_CONFIG_FILE"
ENV_DATABASE_URL = "COMPLIANCE_DATABASE_URL"
ENV_TRANSACTION_TIMEOUT = "COMPLIANCE_TRANSACTION_TIMEOUT"
ENV_LOG_LEVEL = "COMPLIANCE_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields ``{}``."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _int(value: Any, name: str, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {number}")
    return number


def parse_modes(raw: Any) -> tuple[ModeDefinition, ...]:
    if not raw:
        raise ConfigurationError("at least one mode must be configured")
    if not isinstance(raw, list):
        raise ConfigurationError("modes must be a list")

    modes: list[ModeDefinition] = []
    seen: set[str] = set()
    for entry in raw:
        if not isinstance(entry, Mapping) or "name" not in entry:
            raise ConfigurationError(f"mode entry needs a name: {entry!r}")
        name = str(entry["name"]).strip()
        if not name:
            raise ConfigurationError("mode name must not be empty")
        if name.casefold() in seen:
            raise ConfigurationError(f"duplicate mode name: {name}")
        seen.add(name.casefold())
        modes.append(ModeDefinition(
            name=name,
            allowed_direct=_int(
                entry.get("allowed_direct"), f"modes.{name}.allowed_direct", 1,
            ),
        ))
    return tuple(modes)


def parse_settings(
    data: dict[str, Any],
    env: Mapping[str, str] | None = None,
    source: str = "",
) -> Settings:
    """
    Build Settings from a parsed YAML mapping plus environment overrides.

    ``env`` defaults to ``os.environ``; tests pass a plain dict.
    """
    env = os.environ if env is None else env

    database = dict(data.get("database") or {})
    run = dict(data.get("run") or {})
    logging_section = dict(data.get("logging") or {})

    if env.get(ENV_DATABASE_URL):
        database["url"] = env[ENV_DATABASE_URL]
    if env.get(ENV_TRANSACTION_TIMEOUT):
        run["transaction_timeout_seconds"] = env[ENV_TRANSACTION_TIMEOUT]
    if env.get(ENV_LOG_LEVEL):
        logging_section["level"] = env[ENV_LOG_LEVEL]

    url = str(database.get("url") or "").strip()
    if not url:
        raise ConfigurationError("database.url is required")

    log_level = str(logging_section.get("level", "INFO")).strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(f"unknown log level: {log_level}")

    effective = {
        "database": database,
        "run": run,
        "logging": {"level": log_level},
        "modes": data.get("modes"),
    }

    return Settings(
        database=DatabaseSettings(
            url=url,
            pool_size=_int(database.get("pool_size", 10), "database.pool_size", 1),
            max_overflow=_int(database.get("max_overflow", 5), "database.max_overflow", 0),
            pool_timeout=_int(database.get("pool_timeout", 30), "database.pool_timeout", 0),
        ),
        transaction_timeout_seconds=_int(
            run.get("transaction_timeout_seconds", 300),
            "run.transaction_timeout_seconds", 0,
        ),
        lock_timeout_seconds=_int(
            run.get("lock_timeout_seconds", 30), "run.lock_timeout_seconds", 0,
        ),
        log_level=log_level,
        modes=parse_modes(data.get("modes")),
        source=source,
        checksum=compute_checksum(effective),
    )


def load_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load settings from ``path``, ``$COMPLIANCE_CONFIG_FILE`` or the packaged
    default, in that order of preference.
    """
    env = os.environ if env is None else env
    if path is None:
        path = env.get(ENV_CONFIG_FILE) or DEFAULT_SETTINGS_FILE
    path = Path(path)

    settings = parse_settings(load_yaml_file(path), env=env, source=str(path))
    _logger.info(
        "COMPLIANCE_CONFIG_TRACE",
        extra={
            "config_source": settings.source,
            "checksum": settings.checksum,
            "modes": settings.mode_names(),
            "log_level": settings.log_level,
        },
    )
    return settings
