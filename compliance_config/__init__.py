"""
compliance_config -- settings and mode configuration.

Responsibility:
    The single place the engine reads configuration from: a YAML file
    (packaged default or ``$COMPLIANCE_CONFIG_FILE``) with environment
    overrides.  The kernel never imports from this package.

Failure modes:
    - ``ConfigurationError`` for invalid settings, duplicate modes or an
      empty mode name.
"""

from __future__ import annotations

from compliance_config.loader import (
    DEFAULT_SETTINGS_FILE,
    compute_checksum,
    load_settings,
    load_yaml_file,
    parse_settings,
)
from compliance_config.modes import normalize_mode_name, seed_modes
from compliance_config.schema import DatabaseSettings, ModeDefinition, Settings

_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings. FOR TESTING ONLY."""
    global _settings
    _settings = None


__all__ = [
    "DEFAULT_SETTINGS_FILE",
    "DatabaseSettings",
    "ModeDefinition",
    "Settings",
    "compute_checksum",
    "get_settings",
    "load_settings",
    "load_yaml_file",
    "normalize_mode_name",
    "seed_modes",
    "parse_settings",
    "reset_settings",
]
