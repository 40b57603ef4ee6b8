"""
Tests for compliance_batch.orchestrator -- RunOrchestrator.execute.

Validates the run pipeline end to end on SQLite: ratio replay into the
ledger, one summary per contractor, carry-forward between runs, run
sequence allocation, dry runs, and all-or-nothing rollback on failure.
"""

import logging
from datetime import date
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from compliance_batch.domain.types import RunResult
from compliance_batch.orchestrator import SYSTEM_ACTOR_ID, RunOrchestrator
from compliance_config.loader import parse_settings
from compliance_config.schema import DatabaseSettings, Settings
from compliance_kernel.domain.values import ComplianceStatus, HireClassification
from compliance_kernel.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    ModeNotFoundError,
    TransactionFailureError,
)
from compliance_kernel.models.hire import HireModel
from compliance_kernel.models.run import (
    LedgerEntryModel,
    RunModel,
    SummaryEntryModel,
)
from compliance_kernel.selectors.hire_selector import HireSelector
from compliance_kernel.services.sequence_service import SequenceCounter

C = ComplianceStatus.COMPLIANT
N = ComplianceStatus.NONCOMPLIANT

JAN = date(2024, 1, 1)
FEB = date(2024, 2, 1)


def _counts(session_factory) -> dict[str, int]:
    with session_factory() as s:
        return {
            model.__name__: s.execute(select(func.count()).select_from(model)).scalar_one()
            for model in (RunModel, LedgerEntryModel, SummaryEntryModel, SequenceCounter)
        }


def _summary_values(result: RunResult) -> list[tuple]:
    return [
        (e.contractor_id, e.status, e.direct_count, e.dispatch_needed, e.next_hire_dispatch)
        for e in result.summary_entries
    ]


def _ledger_values(result: RunResult) -> list[tuple]:
    return [
        (e.hire_id, e.line_seq, e.status, e.direct_count, e.dispatch_needed, e.next_hire_dispatch)
        for e in result.ledger_entries
    ]


# =============================================================================
# Ratio replay
# =============================================================================


class TestReplay:

    def test_two_to_one_scenario(self, orchestrator, make_hire):
        for day, kind in enumerate(["Direct", "Direct", "Direct", "Direct", "Dispatch", "Dispatch"], 2):
            make_hire("C1", date(2024, 1, day), kind)

        result = orchestrator.execute("2To1", JAN)

        assert [(e.status, e.direct_count, e.dispatch_needed) for e in result.ledger_entries] == [
            (C, 1, 0),
            (C, 2, 0),
            (N, 3, 1),
            (N, 4, 2),
            (N, 3, 1),
            (C, 0, 0),
        ]
        assert [e.next_hire_dispatch for e in result.ledger_entries] == [
            False, True, True, True, True, False,
        ]
        (summary,) = result.summary_entries
        assert (summary.status, summary.direct_count, summary.dispatch_needed) == (C, 0, 0)

    def test_three_to_one_threshold(self, orchestrator, make_hire):
        for day in range(2, 6):
            make_hire("C1", date(2024, 1, day))

        result = orchestrator.execute("3To1", JAN)

        assert [e.status for e in result.ledger_entries] == [C, C, C, N]
        assert result.run.allowed_direct == 3

    def test_one_ledger_entry_per_hire_with_line_sequence(self, orchestrator, make_hire):
        make_hire("C2", date(2024, 1, 3))
        make_hire("C1", date(2024, 1, 2), "Dispatch")
        make_hire("C1", date(2024, 1, 4))

        result = orchestrator.execute("2To1", JAN)

        assert [e.line_seq for e in result.ledger_entries] == [1, 2, 3]
        assert [e.contractor_id for e in result.ledger_entries] == ["C1", "C1", "C2"]
        assert len({e.hire_id for e in result.ledger_entries}) == 3
        assert result.ledger_entries[0].classification is HireClassification.DISPATCH

    def test_unrecognised_label_counts_as_direct(self, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2), "Name Call")

        result = orchestrator.execute("2To1", JAN)

        (entry,) = result.ledger_entries
        assert entry.classification is HireClassification.DIRECT
        assert entry.hire_type == "Name Call"
        assert entry.direct_count == 1

    def test_hires_before_cutover_not_replayed(self, orchestrator, make_hire):
        make_hire("C1", date(2023, 12, 31))
        make_hire("C1", date(2024, 1, 1))

        result = orchestrator.execute("2To1", JAN)

        assert [e.start_date for e in result.ledger_entries] == [JAN]

    def test_contractor_without_new_hires_gets_summary_only(self, orchestrator, make_hire):
        make_hire("C1", date(2023, 12, 1))

        result = orchestrator.execute("2To1", JAN)

        assert result.ledger_entries == ()
        (summary,) = result.summary_entries
        assert (summary.status, summary.direct_count, summary.dispatch_needed) == (C, 0, 0)

    def test_persisted_rows_match_result(self, session_factory, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))
        make_hire("C2", date(2023, 12, 1))

        result = orchestrator.execute("2To1", JAN)

        with session_factory() as s:
            ledger = [m.to_dto() for m in s.execute(
                select(LedgerEntryModel).order_by(LedgerEntryModel.line_seq)
            ).scalars()]
            summaries = {m.contractor_id: m.to_dto() for m in s.execute(
                select(SummaryEntryModel)
            ).scalars()}

        assert [e.hire_id for e in ledger] == [e.hire_id for e in result.ledger_entries]
        assert summaries == {e.contractor_id: e for e in result.summary_entries}


# =============================================================================
# Carry-forward between runs
# =============================================================================


class TestCarryForward:

    def test_second_run_seeds_from_first(self, orchestrator, make_hire):
        for day in (2, 3, 4):
            make_hire("C1", date(2024, 1, day))
        january = orchestrator.execute("2To1", JAN)

        make_hire("C1", date(2024, 2, 5), "Dispatch")
        february = orchestrator.execute("2To1", FEB)

        assert february.prior_run_id == january.run_id
        (entry,) = february.ledger_entries
        assert (entry.status, entry.direct_count, entry.dispatch_needed) == (C, 0, 0)

    def test_untouched_contractor_carries_state_forward(self, orchestrator, make_hire):
        for day in (2, 3, 4, 5):
            make_hire("C1", date(2024, 1, day))
        orchestrator.execute("2To1", JAN)

        february = orchestrator.execute("2To1", FEB)

        assert february.ledger_entries == ()
        summary = february.summary_for("C1")
        assert (summary.status, summary.direct_count, summary.dispatch_needed) == (N, 4, 2)
        assert summary.next_hire_dispatch is True

    def test_modes_keep_separate_chains(self, orchestrator, make_hire):
        for day in (2, 3, 4):
            make_hire("C1", date(2024, 1, day))
        orchestrator.execute("2To1", JAN)

        three = orchestrator.execute("3To1", FEB)

        assert three.prior_run_id is None
        assert three.summary_for("C1").status is C

    def test_same_date_rerun_seeds_from_earlier_date(self, orchestrator, make_hire):
        make_hire("C1", date(2023, 12, 2))
        december = orchestrator.execute("2To1", date(2023, 12, 1))
        make_hire("C1", date(2024, 1, 2))

        first = orchestrator.execute("2To1", JAN)
        second = orchestrator.execute("2To1", JAN)

        assert first.prior_run_id == december.run_id
        assert second.prior_run_id == december.run_id
        assert _summary_values(first) == _summary_values(second)


# =============================================================================
# Sequence allocation
# =============================================================================


class TestSequence:

    def test_increments_per_mode_and_date(self, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))

        sequences = [
            orchestrator.execute("2To1", JAN).run.sequence,
            orchestrator.execute("2To1", JAN).run.sequence,
            orchestrator.execute("3To1", JAN).run.sequence,
            orchestrator.execute("2To1", FEB).run.sequence,
        ]

        assert sequences == [1, 2, 1, 1]

    def test_dry_run_does_not_consume_sequence(self, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))

        dry = orchestrator.execute("2To1", JAN, dry_run=True)
        real = orchestrator.execute("2To1", JAN)

        assert dry.run.sequence == 1
        assert real.run.sequence == 1


# =============================================================================
# Dry run
# =============================================================================


class TestDryRun:

    def test_leaves_no_rows(self, session_factory, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))
        make_hire("C2", date(2023, 12, 1))

        result = orchestrator.execute("2To1", JAN, dry_run=True)

        assert result.dry_run is True
        assert result.committed is False
        assert len(result.ledger_entries) == 1
        assert len(result.summary_entries) == 2
        assert _counts(session_factory) == {
            "RunModel": 0,
            "LedgerEntryModel": 0,
            "SummaryEntryModel": 0,
            "SequenceCounter": 0,
        }

    def test_same_values_as_real_run(self, orchestrator, make_hire):
        for day, kind in enumerate(["Direct", "Direct", "Direct", "Dispatch", "Direct"], 2):
            make_hire("C1", date(2024, 1, day), kind)
        make_hire("C2", date(2023, 11, 1))

        dry = orchestrator.execute("2To1", JAN, dry_run=True)
        real = orchestrator.execute("2To1", JAN)

        assert real.committed is True
        assert _summary_values(dry) == _summary_values(real)
        assert _ledger_values(dry) == _ledger_values(real)

    def test_dry_run_after_real_run_sees_prior(self, orchestrator, make_hire):
        for day in (2, 3, 4):
            make_hire("C1", date(2024, 1, day))
        january = orchestrator.execute("2To1", JAN)

        dry = orchestrator.execute("2To1", FEB, dry_run=True)

        assert dry.prior_run_id == january.run_id
        assert dry.summary_for("C1").status is N


# =============================================================================
# Determinism
# =============================================================================


class TestDeterminism:

    def test_repeated_dry_runs_identical(self, orchestrator, make_hire):
        kinds = ["Direct", "Dispatch", "Direct", "Direct", "Direct", "Direct", "Dispatch"]
        for day, kind in enumerate(kinds, 2):
            make_hire("C1", date(2024, 1, day), kind)
            make_hire("C2", date(2024, 1, day), "Direct")

        first = orchestrator.execute("2To1", JAN, dry_run=True)
        second = orchestrator.execute("2To1", JAN, dry_run=True)

        assert _ledger_values(first) == _ledger_values(second)
        assert _summary_values(first) == _summary_values(second)


# =============================================================================
# Configuration errors
# =============================================================================


class TestModeResolution:

    @pytest.mark.parametrize("raw", ["2to1", "2TO1", " 2To1 ", "2"])
    def test_mode_name_normalised(self, orchestrator, make_hire, raw):
        make_hire("C1", date(2024, 1, 2))

        result = orchestrator.execute(raw, JAN)

        assert result.run.mode_name == "2To1"

    def test_unknown_mode_writes_nothing(self, session_factory, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))

        with pytest.raises(ModeNotFoundError):
            orchestrator.execute("9To1", JAN)

        assert sum(_counts(session_factory).values()) == 0

    def test_empty_mode_is_configuration_error(self, orchestrator):
        with pytest.raises(ConfigurationError):
            orchestrator.execute("   ", JAN)


# =============================================================================
# Failure and rollback
# =============================================================================


class TestRollback:

    def test_data_integrity_error_rolls_back(self, session_factory, session, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))
        session.add(HireModel(
            contractor_id="C2",
            contractor_name="Broken",
            member_name="Pat",
            id_number="ID-X",
            hire_type="Direct",
            classification="direct",
            start_date=date(2024, 1, 3),
            reviewed_at=None,
        ))
        session.commit()

        with pytest.raises(DataIntegrityError):
            orchestrator.execute("2To1", JAN)

        assert sum(_counts(session_factory).values()) == 0

    def test_storage_failure_wrapped_and_rolled_back(
        self, session_factory, orchestrator, make_hire, monkeypatch,
    ):
        make_hire("C1", date(2024, 1, 2))

        def _fail(self, cutover_date):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(HireSelector, "select_for_run", _fail)

        with pytest.raises(TransactionFailureError) as exc_info:
            orchestrator.execute("2To1", JAN)

        err = exc_info.value
        assert err.code == "TRANSACTION_FAILURE"
        assert err.run_id is not None
        assert err.mode == "2To1"
        assert err.cutover_date == JAN
        assert err.dry_run is False
        assert isinstance(err.__cause__, OperationalError)
        assert sum(_counts(session_factory).values()) == 0

    def test_interrupt_before_commit_rolls_back(
        self, session_factory, orchestrator, make_hire, monkeypatch,
    ):
        make_hire("C1", date(2024, 1, 2))

        def _interrupt(self, cutover_date):
            raise KeyboardInterrupt

        monkeypatch.setattr(HireSelector, "select_for_run", _interrupt)

        with pytest.raises(KeyboardInterrupt):
            orchestrator.execute("2To1", JAN)

        assert sum(_counts(session_factory).values()) == 0

    def test_rerun_after_failure_succeeds(self, orchestrator, make_hire, monkeypatch):
        make_hire("C1", date(2024, 1, 2))
        original = HireSelector.select_for_run

        def _fail(self, cutover_date):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(HireSelector, "select_for_run", _fail)
        with pytest.raises(TransactionFailureError):
            orchestrator.execute("2To1", JAN)

        monkeypatch.setattr(HireSelector, "select_for_run", original)
        result = orchestrator.execute("2To1", JAN)

        assert result.run.sequence == 1


# =============================================================================
# Construction and logging
# =============================================================================


class TestOrchestratorSetup:

    def test_default_actor(self, session_factory, seeded_modes, make_hire):
        make_hire("C1", date(2023, 12, 1))
        orchestrator = RunOrchestrator(session_factory)

        result = orchestrator.execute("2To1", JAN)

        with session_factory() as s:
            run = s.get(RunModel, result.run_id)
            assert run.created_by_id == SYSTEM_ACTOR_ID

    def test_from_settings(self, session_factory, deterministic_clock):
        settings = Settings(
            database=DatabaseSettings(url="sqlite:///:memory:"),
            transaction_timeout_seconds=60,
            lock_timeout_seconds=5,
        )
        orchestrator = RunOrchestrator.from_settings(
            settings, session_factory, clock=deterministic_clock,
        )
        assert isinstance(orchestrator, RunOrchestrator)

    def test_run_result_properties(self, orchestrator, make_hire):
        make_hire("C1", date(2024, 1, 2))

        result = orchestrator.execute("2To1", JAN)

        assert isinstance(result.run_id, UUID)
        assert result.run_id == result.run.run_id
        assert result.contractor_count == 1
        assert result.ledger_for("C1") == result.ledger_entries
        assert result.summary_for("NOPE") is None
        assert result.duration_ms >= 0


class TestRunLogging:

    def test_committed_run_events(self, orchestrator, make_hire, captured_logs):
        make_hire("C1", date(2024, 1, 2))

        result = orchestrator.execute("2To1", JAN)

        logs = captured_logs()
        messages = [r["message"] for r in logs]
        for event in ("run_started", "prior_run_resolved", "hire_applied",
                      "contractor_processed", "run_committed"):
            assert event in messages

        committed = next(r for r in logs if r["message"] == "run_committed")
        assert committed["run_id"] == str(result.run_id)
        assert committed["mode"] == "2To1"
        assert committed["ledger_count"] == 1

        processed = next(r for r in logs if r["message"] == "contractor_processed")
        assert processed["contractor_id"] == "C1"

    def test_dry_run_event(self, orchestrator, make_hire, captured_logs):
        make_hire("C1", date(2024, 1, 2))

        orchestrator.execute("2To1", JAN, dry_run=True)

        messages = [r["message"] for r in captured_logs()]
        assert "dry_run_discarded" in messages
        assert "run_committed" not in messages

    def test_failure_logged_with_code(self, orchestrator, make_hire, captured_logs):
        make_hire("C1", date(2024, 1, 2))

        with pytest.raises(ModeNotFoundError):
            orchestrator.execute("9To1", JAN)

        failed = next(r for r in captured_logs() if r["message"] == "run_rolled_back")
        assert failed["exc_code"] == "MODE_NOT_FOUND"
        assert failed["mode_name"] == "9To1"

    def test_settings_log_level_applied(
        self, session_factory, deterministic_clock, seeded_modes, make_hire, captured_logs,
    ):
        make_hire("C1", date(2024, 1, 2))
        settings = parse_settings(
            {"database": {"url": "sqlite:///:memory:"}},
            env={"COMPLIANCE_LOG_LEVEL": "ERROR"},
        )

        orchestrator = RunOrchestrator.from_settings(
            settings, session_factory, clock=deterministic_clock,
        )
        orchestrator.execute("2To1", JAN)

        assert logging.getLogger("compliance_kernel").getEffectiveLevel() == logging.ERROR
        messages = [r["message"] for r in captured_logs()]
        for event in ("run_started", "contractor_processed", "run_committed"):
            assert event not in messages
