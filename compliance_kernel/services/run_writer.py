"""
RunWriter -- persistence sink for one compliance run.

Responsibility:
    Creates the run row (allocating its sequence number), then appends
    ledger and summary rows as the orchestrator produces them.

Architecture position:
    Kernel > Services.  Flush-only; the orchestrator owns the transaction.

Invariants enforced:
    - The run's ``allowed_direct`` is snapshotted from the RatioRule used.
    - ``report_date`` and ``created_at`` come from the injected Clock.
    - Rows are only ever inserted (see db/immutability.py).
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from compliance_kernel.domain.clock import Clock
from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry
from compliance_kernel.domain.values import RatioRule
from compliance_kernel.logging_config import get_logger
from compliance_kernel.models.run import (
    LedgerEntryModel,
    RunModel,
    SummaryEntryModel,
)
from compliance_kernel.services.base import BaseService
from compliance_kernel.services.sequence_service import (
    SequenceService,
    run_sequence_name,
)

logger = get_logger("services.run_writer")


class RunWriter(BaseService):
    """Append-only writer for runs, ledger entries and summary entries."""

    def __init__(self, session: Session, clock: Clock, actor_id: UUID):
        super().__init__(session)
        self._clock = clock
        self._actor_id = actor_id
        self._sequences = SequenceService(session)

    def create_run(self, rule: RatioRule, cutover_date: date) -> RunRecord:
        sequence = self._sequences.next_value(
            run_sequence_name(rule.mode_id, cutover_date)
        )
        record = RunRecord(
            run_id=uuid4(),
            mode_id=rule.mode_id,
            mode_name=rule.mode_name,
            allowed_direct=rule.allowed_direct,
            cutover_date=cutover_date,
            sequence=sequence,
            report_date=self._clock.today(),
            created_at=self._clock.now(),
        )
        self.session.add(RunModel.from_dto(record, created_by_id=self._actor_id))
        self.session.flush()
        logger.debug(
            "run_created",
            extra={
                "run_id": str(record.run_id),
                "sequence": sequence,
                "cutover_date": cutover_date,
            },
        )
        return record

    def insert_ledger_entry(self, entry: LedgerEntry) -> None:
        self.session.add(LedgerEntryModel.from_dto(entry, created_by_id=self._actor_id))

    def insert_summary_entry(self, entry: SummaryEntry) -> None:
        self.session.add(SummaryEntryModel.from_dto(entry, created_by_id=self._actor_id))

    def flush(self) -> None:
        self.session.flush()
