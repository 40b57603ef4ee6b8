"""
RunOrchestrator -- executes one compliance run in one transaction.

Contract:
    ``execute(mode, cutover_date, dry_run=False) -> RunResult``

Steps, all inside a single transaction:
    1. Resolve the RatioRule for the (normalised) mode name.
    2. Allocate the run's sequence number and write the Run row.
    3. Find the prior run of the same mode.
    4. Select every contractor and its hires on/after the cutover date.
    5. Per contractor: seed state, replay hires (one LedgerEntry each),
       write one SummaryEntry with the final state.
    6. Commit, or roll back for a dry run.

Invariants enforced:
    - No partial run is ever visible: any failure, interrupt or dry run
      ends in rollback.  Commit happens only after every row is flushed.
    - Configuration errors surface before any row is written.
    - All timestamps come from the injected Clock.
    - Storage failures are reported as TransactionFailureError and never
      retried here.
"""

from __future__ import annotations

import time
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from compliance_config.modes import normalize_mode_name
from compliance_config.schema import Settings
from compliance_kernel.db.engine import is_postgres
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry
from compliance_kernel.domain.transition import apply_hire
from compliance_kernel.domain.values import Contractor, RatioRule
from compliance_kernel.exceptions import ComplianceError, TransactionFailureError
from compliance_kernel.logging_config import LogContext, configure_logging, get_logger
from compliance_kernel.selectors.hire_selector import HireSelection, HireSelector
from compliance_kernel.selectors.mode_selector import ModeSelector
from compliance_kernel.selectors.run_selector import RunSelector
from compliance_kernel.services.run_writer import RunWriter
from compliance_kernel.services.state_seeder import StateSeeder

from compliance_batch.domain.types import RunResult

logger = get_logger("batch.orchestrator")

# Fixed actor for runs started without an explicit user.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


class RunOrchestrator:
    """Owns the session and transaction of each compliance run.

    Non-goals:
        - Does NOT retry failed runs; re-running is the caller's decision
          and is safe because nothing partial was committed.
        - Does NOT render reports; see ReportSelector.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        transaction_timeout_seconds: int | None = None,
        lock_timeout_seconds: int | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._transaction_timeout_seconds = transaction_timeout_seconds
        self._lock_timeout_seconds = lock_timeout_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ) -> RunOrchestrator:
        """Build an orchestrator from loaded settings and apply their log level."""
        configure_logging(level=settings.log_level)
        return cls(
            session_factory,
            clock=clock,
            actor_id=actor_id,
            transaction_timeout_seconds=settings.transaction_timeout_seconds,
            lock_timeout_seconds=settings.lock_timeout_seconds,
        )

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def execute(
        self,
        mode: str,
        cutover_date: date,
        dry_run: bool = False,
        correlation_id: str | None = None,
    ) -> RunResult:
        """Run the engine for ``mode`` from ``cutover_date``.

        Raises:
            ConfigurationError: Unknown mode or invalid ratio; nothing written.
            DataIntegrityError: A hire or prior summary is unusable.
            TransactionFailureError: Storage failed; the run was rolled back.
        """
        start_time = time.monotonic()
        session = self._session_factory()
        run: RunRecord | None = None
        mode_name = mode

        try:
            with LogContext.bind(
                actor_id=str(self._actor_id),
                correlation_id=correlation_id or str(uuid4()),
            ):
                try:
                    self._apply_timeouts(session)
                    modes = ModeSelector(session)
                    mode_name = normalize_mode_name(mode, modes.mode_names())
                    rule = modes.get_ratio_rule(mode_name)

                    with LogContext.bind(mode=rule.mode_name):
                        writer = RunWriter(session, self._clock, self._actor_id)
                        run = writer.create_run(rule, cutover_date)

                        with LogContext.bind(run_id=str(run.run_id)):
                            result = self._replay_run(
                                session, writer, rule, run, dry_run, start_time,
                            )
                            if dry_run:
                                session.rollback()
                                logger.info(
                                    "dry_run_discarded",
                                    extra={
                                        "sequence": run.sequence,
                                        "ledger_count": len(result.ledger_entries),
                                        "summary_count": len(result.summary_entries),
                                        "duration_ms": result.duration_ms,
                                    },
                                )
                            else:
                                session.commit()
                                logger.info(
                                    "run_committed",
                                    extra={
                                        "sequence": run.sequence,
                                        "ledger_count": len(result.ledger_entries),
                                        "summary_count": len(result.summary_entries),
                                        "duration_ms": result.duration_ms,
                                    },
                                )
                            return result

                except SQLAlchemyError as exc:
                    logger.error(
                        "run_rolled_back",
                        exc_info=True,
                        extra=self._failure_extra(run, mode_name, cutover_date, dry_run),
                    )
                    raise TransactionFailureError(
                        run_id=str(run.run_id) if run else None,
                        mode=mode_name,
                        cutover_date=cutover_date,
                        dry_run=dry_run,
                        cause=str(exc),
                    ) from exc
                except ComplianceError:
                    logger.error(
                        "run_rolled_back",
                        exc_info=True,
                        extra=self._failure_extra(run, mode_name, cutover_date, dry_run),
                    )
                    raise
        finally:
            # Anything short of a commit is discarded, interrupts included.
            if session.in_transaction():
                session.rollback()
            session.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _replay_run(
        self,
        session: Session,
        writer: RunWriter,
        rule: RatioRule,
        run: RunRecord,
        dry_run: bool,
        start_time: float,
    ) -> RunResult:
        logger.info(
            "run_started",
            extra={
                "cutover_date": run.cutover_date,
                "sequence": run.sequence,
                "allowed_direct": rule.allowed_direct,
                "dry_run": dry_run,
            },
        )

        prior_run = RunSelector(session).find_prior_run(rule.mode_id, run.cutover_date)
        logger.info(
            "prior_run_resolved",
            extra={
                "prior_run_id": str(prior_run.run_id) if prior_run else None,
                "prior_cutover_date": prior_run.cutover_date if prior_run else None,
            },
        )

        selection = HireSelector(session).select_for_run(run.cutover_date)
        seeder = StateSeeder(session)

        ledger: list[LedgerEntry] = []
        summaries: list[SummaryEntry] = []
        for contractor in selection.contractors:
            with LogContext.bind(contractor_id=contractor.contractor_id):
                summaries.append(
                    self._process_contractor(
                        writer, seeder, rule, run, prior_run,
                        contractor, selection, ledger,
                    )
                )

        writer.flush()

        return RunResult(
            run=run,
            ledger_entries=tuple(ledger),
            summary_entries=tuple(summaries),
            prior_run_id=prior_run.run_id if prior_run else None,
            dry_run=dry_run,
            committed=not dry_run,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

    def _process_contractor(
        self,
        writer: RunWriter,
        seeder: StateSeeder,
        rule: RatioRule,
        run: RunRecord,
        prior_run: RunRecord | None,
        contractor: Contractor,
        selection: HireSelection,
        ledger: list[LedgerEntry],
    ) -> SummaryEntry:
        state = seeder.seed(contractor.contractor_id, prior_run, rule.allowed_direct)
        hires = selection.hires_for(contractor.contractor_id)

        for hire in hires:
            state = apply_hire(state, hire.classification, rule.allowed_direct)
            entry = LedgerEntry.from_transition(run.run_id, len(ledger) + 1, hire, state)
            writer.insert_ledger_entry(entry)
            ledger.append(entry)
            logger.debug(
                "hire_applied",
                extra={
                    "hire_id": str(hire.hire_id),
                    "classification": hire.classification,
                    "status": state.status,
                    "direct_count": state.direct_count,
                    "dispatch_needed": state.dispatch_needed,
                },
            )

        summary = SummaryEntry.from_state(
            run.run_id,
            contractor.contractor_id,
            contractor.contractor_name,
            contractor.employer_id,
            state,
        )
        writer.insert_summary_entry(summary)
        logger.info(
            "contractor_processed",
            extra={
                "hire_count": len(hires),
                "status": summary.status,
                "direct_count": summary.direct_count,
                "dispatch_needed": summary.dispatch_needed,
                "next_hire_dispatch": summary.next_hire_dispatch,
            },
        )
        return summary

    def _apply_timeouts(self, session: Session) -> None:
        """PostgreSQL only: bound the run transaction and its lock waits."""
        if not is_postgres(session):
            return
        if self._transaction_timeout_seconds:
            session.execute(text(
                f"SET LOCAL statement_timeout = {int(self._transaction_timeout_seconds) * 1000}"
            ))
        if self._lock_timeout_seconds:
            session.execute(text(
                f"SET LOCAL lock_timeout = {int(self._lock_timeout_seconds) * 1000}"
            ))

    @staticmethod
    def _failure_extra(
        run: RunRecord | None, mode_name: str, cutover_date: date, dry_run: bool,
    ) -> dict:
        return {
            "failed_run_id": str(run.run_id) if run else None,
            "mode_name": mode_name,
            "cutover_date": cutover_date,
            "dry_run": dry_run,
        }
