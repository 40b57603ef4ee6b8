"""
compliance_batch.domain.types -- frozen result of one compliance run.

ZERO I/O.  Collections are tuples so a RunResult can be handed to report
and export code without any live session behind it.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry


@dataclass(frozen=True)
class RunResult:
    """Outcome of ``RunOrchestrator.execute``.

    A dry run carries the same run record, ledger and summaries a real run
    would have produced, with ``committed`` False and nothing persisted.
    """

    run: RunRecord
    ledger_entries: tuple[LedgerEntry, ...]
    summary_entries: tuple[SummaryEntry, ...]
    prior_run_id: UUID | None
    dry_run: bool
    committed: bool
    duration_ms: int = 0

    @property
    def run_id(self) -> UUID:
        return self.run.run_id

    @property
    def contractor_count(self) -> int:
        return len(self.summary_entries)

    def summary_for(self, contractor_id: str) -> SummaryEntry | None:
        for entry in self.summary_entries:
            if entry.contractor_id == contractor_id:
                return entry
        return None

    def ledger_for(self, contractor_id: str) -> tuple[LedgerEntry, ...]:
        return tuple(e for e in self.ledger_entries if e.contractor_id == contractor_id)
