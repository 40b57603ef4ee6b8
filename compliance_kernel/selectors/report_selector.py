"""
Module: compliance_kernel.selectors.report_selector
Responsibility: Read-only projections over persisted runs for report and
    export surfaces (workbook rendering lives outside this package).
Architecture position: Kernel > Selectors.  No business logic: every method
    is a query plus a DTO conversion.

Projections:
    ledger_for_run   -- ledger rows by contractor, then start date, then
                        replay position.
    summary_for_run  -- summary rows by contractor name.
    get_run          -- the run record (RunNotFoundError if unknown).
    list_runs        -- latest runs first, optionally for one mode.
    last_hires       -- most recent N hires per contractor in a run.
    recent_hires     -- every visible hire starting on/after a date.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from uuid import UUID

from sqlalchemy import select

from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry
from compliance_kernel.domain.values import HireEvent
from compliance_kernel.exceptions import RunNotFoundError
from compliance_kernel.models.hire import HireModel
from compliance_kernel.models.mode import ModeModel
from compliance_kernel.models.run import (
    LedgerEntryModel,
    RunModel,
    SummaryEntryModel,
)
from compliance_kernel.selectors.base import BaseSelector


class ReportSelector(BaseSelector):
    """Read-only report projections."""

    def get_run(self, run_id: UUID) -> RunRecord:
        model = self.session.get(RunModel, run_id)
        if model is None:
            raise RunNotFoundError(str(run_id))
        return model.to_dto()

    def list_runs(self, limit: int = 100, mode_name: str | None = None) -> list[RunRecord]:
        stmt = select(RunModel)
        if mode_name is not None:
            stmt = stmt.join(ModeModel, RunModel.mode_id == ModeModel.id).where(
                ModeModel.name == mode_name
            )
        stmt = stmt.order_by(
            RunModel.created_at.desc(),
            RunModel.cutover_date.desc(),
            RunModel.sequence.desc(),
        ).limit(limit)
        return [m.to_dto() for m in self.session.execute(stmt).unique().scalars()]

    def ledger_for_run(self, run_id: UUID) -> list[LedgerEntry]:
        self.get_run(run_id)
        models = self.session.execute(
            select(LedgerEntryModel)
            .where(LedgerEntryModel.run_id == run_id)
            .order_by(
                LedgerEntryModel.contractor_name,
                LedgerEntryModel.contractor_id,
                LedgerEntryModel.start_date,
                LedgerEntryModel.line_seq,
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def summary_for_run(self, run_id: UUID) -> list[SummaryEntry]:
        self.get_run(run_id)
        models = self.session.execute(
            select(SummaryEntryModel)
            .where(SummaryEntryModel.run_id == run_id)
            .order_by(
                SummaryEntryModel.contractor_name,
                SummaryEntryModel.contractor_id,
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def last_hires(self, run_id: UUID, per_contractor: int = 4) -> list[HireEvent]:
        """
        The latest ``per_contractor`` hires of every contractor summarised in
        the run, oldest first within each contractor, contractors by name.
        """
        summaries = self.summary_for_run(run_id)
        contractor_ids = [s.contractor_id for s in summaries]
        if not contractor_ids:
            return []

        models = self.session.execute(
            select(HireModel).where(
                HireModel.contractor_id.in_(contractor_ids),
                HireModel.is_inactive.is_(False),
                HireModel.excluded_rules.is_(None),
            )
        ).scalars().all()

        by_contractor: dict[str, list[HireEvent]] = defaultdict(list)
        for model in models:
            hire = model.to_dto()
            by_contractor[hire.contractor_id].append(hire)

        result: list[HireEvent] = []
        for summary in summaries:
            hires = sorted(
                by_contractor.get(summary.contractor_id, []),
                key=lambda h: (h.reviewed_at, h.start_date, h.id_number),
            )
            result.extend(hires[-per_contractor:] if per_contractor > 0 else [])
        return result

    def recent_hires(self, since: date) -> list[HireEvent]:
        models = self.session.execute(
            select(HireModel).where(
                HireModel.start_date >= since,
                HireModel.is_inactive.is_(False),
                HireModel.excluded_rules.is_(None),
            )
        ).scalars().all()
        return sorted(
            (m.to_dto() for m in models),
            key=lambda h: (h.start_date, h.reviewed_at, h.contractor_name, h.id_number),
        )
