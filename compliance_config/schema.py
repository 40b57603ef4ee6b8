"""
Configuration schema (``compliance_config.schema``).

Frozen dataclasses produced by ``compliance_config.loader``.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ModeDefinition:
    """A named ratio mode as configured."""

    name: str
    allowed_direct: int


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30


@dataclass(frozen=True)
class Settings:
    """Complete engine settings after environment overrides."""

    database: DatabaseSettings
    transaction_timeout_seconds: int = 300
    lock_timeout_seconds: int = 30
    log_level: str = "INFO"
    modes: tuple[ModeDefinition, ...] = field(default_factory=tuple)
    source: str = ""
    checksum: str = ""

    @property
    def database_url(self) -> str:
        return self.database.url

    def mode_names(self) -> list[str]:
        return [m.name for m in self.modes]
