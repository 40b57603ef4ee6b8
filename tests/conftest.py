"""
Pytest fixtures for the compliance engine test suite.

Provides:
- In-memory SQLite engine shared by every session of a test (StaticPool)
- Session factory, seeded ratio modes and a hire builder
- Deterministic clock and captured JSON logs

Set COMPLIANCE_TEST_DATABASE_URL to run the database tests against
PostgreSQL instead.
"""

import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from io import StringIO
from itertools import count
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from compliance_batch.orchestrator import RunOrchestrator
from compliance_config.modes import seed_modes
from compliance_config.schema import ModeDefinition
from compliance_kernel.db.base import Base
from compliance_kernel.db.engine import create_sqlite_engine
from compliance_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from compliance_kernel.domain.clock import DeterministicClock
from compliance_kernel.domain.values import HireClassification
from compliance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from compliance_kernel.models.hire import HireModel
import compliance_kernel.models  # noqa: F401
import compliance_kernel.services.sequence_service  # noqa: F401


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_MODES = (
    ModeDefinition(name="2To1", allowed_direct=2),
    ModeDefinition(name="3To1", allowed_direct=3),
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture(autouse=True)
def _restore_log_level():
    """Undo level changes made by settings-driven configuration."""
    root = logging.getLogger("compliance_kernel")
    previous_level = root.level
    yield
    root.setLevel(previous_level)


@pytest.fixture
def captured_logs():
    """
    Capture compliance_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.execute("2To1", date(2024, 1, 1))
            logs = captured_logs()
            assert any(r["message"] == "run_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("compliance_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh schema per test; SQLite in memory unless a URL is configured."""
    url = os.environ.get("COMPLIANCE_TEST_DATABASE_URL")
    if url:
        eng = create_engine(url)
    else:
        eng = create_sqlite_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    register_immutability_listeners()
    yield eng
    unregister_immutability_listeners()
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """A session for arranging data and asserting on committed state."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def seeded_modes(session):
    """2To1 and 3To1 committed to the database."""
    models = seed_modes(session, DEFAULT_MODES)
    session.commit()
    return {m.name: m for m in models}


# =============================================================================
# Hire builder
# =============================================================================


@pytest.fixture
def make_hire(session):
    """
    Insert and commit one hire row.

    Usage::

        make_hire("C1", date(2024, 1, 2), "Direct")
        make_hire("C1", date(2024, 1, 3), "dispatch ", contractor_name="Acme")

    The review timestamp defaults to the start date at 08:00 UTC plus a
    per-call offset, so hires on the same day replay in creation order.
    """
    serial = count(1)

    def _make(
        contractor_id: str,
        start_date: date,
        hire_type: str = "Direct",
        *,
        contractor_name: str | None = None,
        employer_id: str | None = None,
        member_name: str | None = None,
        id_number: str | None = None,
        reviewed_at: datetime | None = None,
        is_inactive: bool = False,
        excluded_rules: str | None = None,
    ) -> HireModel:
        n = next(serial)
        if reviewed_at is None:
            reviewed_at = datetime(
                start_date.year, start_date.month, start_date.day, 8, 0,
                tzinfo=timezone.utc,
            ) + timedelta(seconds=n)
        hire = HireModel(
            contractor_id=contractor_id,
            contractor_name=contractor_name or f"Contractor {contractor_id}",
            employer_id=employer_id,
            member_name=member_name or f"Member {n}",
            id_number=id_number or f"ID{n:05d}",
            hire_type=hire_type,
            classification=HireClassification.from_raw(hire_type).value,
            start_date=start_date,
            reviewed_at=reviewed_at,
            is_inactive=is_inactive,
            excluded_rules=excluded_rules,
        )
        session.add(hire)
        session.commit()
        return hire

    return _make


# =============================================================================
# Orchestrator
# =============================================================================


@pytest.fixture
def orchestrator(session_factory, deterministic_clock, test_actor_id, seeded_modes):
    return RunOrchestrator(
        session_factory,
        clock=deterministic_clock,
        actor_id=test_actor_id,
    )
