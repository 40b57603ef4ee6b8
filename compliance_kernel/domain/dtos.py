"""
Data transfer objects for runs, ledger entries and summary entries.

Frozen dataclasses returned by the orchestrator and the report selector.
ORM models convert to and from these at the persistence boundary, so no
caller outside the kernel ever holds a live ORM row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from compliance_kernel.domain.values import (
    ComplianceState,
    ComplianceStatus,
    HireClassification,
    HireEvent,
)


@dataclass(frozen=True)
class RunRecord:
    """One execution of the engine for a (mode, cutover date)."""

    run_id: UUID
    mode_id: UUID
    mode_name: str
    allowed_direct: int
    cutover_date: date
    sequence: int
    report_date: date
    created_at: datetime


@dataclass(frozen=True)
class LedgerEntry:
    """A hire and the compliance state immediately after applying it."""

    run_id: UUID
    hire_id: UUID
    line_seq: int
    contractor_id: str
    contractor_name: str
    employer_id: str | None
    member_name: str
    id_number: str
    hire_type: str
    classification: HireClassification
    start_date: date
    reviewed_at: datetime
    status: ComplianceStatus
    direct_count: int
    dispatch_needed: int
    next_hire_dispatch: bool

    @classmethod
    def from_transition(
        cls,
        run_id: UUID,
        line_seq: int,
        hire: HireEvent,
        state: ComplianceState,
    ) -> LedgerEntry:
        return cls(
            run_id=run_id,
            hire_id=hire.hire_id,
            line_seq=line_seq,
            contractor_id=hire.contractor_id,
            contractor_name=hire.contractor_name,
            employer_id=hire.employer_id,
            member_name=hire.member_name,
            id_number=hire.id_number,
            hire_type=hire.hire_type,
            classification=hire.classification,
            start_date=hire.start_date,
            reviewed_at=hire.reviewed_at,
            status=state.status,
            direct_count=state.direct_count,
            dispatch_needed=state.dispatch_needed,
            next_hire_dispatch=state.next_hire_dispatch,
        )


@dataclass(frozen=True)
class SummaryEntry:
    """A contractor's final compliance state for a run."""

    run_id: UUID
    contractor_id: str
    contractor_name: str
    employer_id: str | None
    status: ComplianceStatus
    direct_count: int
    dispatch_needed: int
    next_hire_dispatch: bool

    @classmethod
    def from_state(
        cls,
        run_id: UUID,
        contractor_id: str,
        contractor_name: str,
        employer_id: str | None,
        state: ComplianceState,
    ) -> SummaryEntry:
        return cls(
            run_id=run_id,
            contractor_id=contractor_id,
            contractor_name=contractor_name,
            employer_id=employer_id,
            status=state.status,
            direct_count=state.direct_count,
            dispatch_needed=state.dispatch_needed,
            next_hire_dispatch=state.next_hire_dispatch,
        )
