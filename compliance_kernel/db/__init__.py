"""Database layer - engine, base classes, and append-only enforcement."""

from compliance_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from compliance_kernel.db.engine import (
    create_sqlite_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_settings,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)
from compliance_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "init_engine_from_url",
    "init_engine_from_settings",
    "create_sqlite_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "is_postgres",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
