"""
Module: compliance_kernel.selectors.run_selector
Responsibility: Prior-run lookup and summary reads used to seed a new run.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - The prior run is the same mode's run with the latest cutover date
      strictly earlier than the current one; among those, the highest
      sequence number wins.  Runs on the SAME cutover date are never
      treated as prior, so a re-run of a date seeds from the same place
      as the first run of that date.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select

from compliance_kernel.domain.dtos import RunRecord, SummaryEntry
from compliance_kernel.models.run import RunModel, SummaryEntryModel
from compliance_kernel.selectors.base import BaseSelector


class RunSelector(BaseSelector):
    """Read access to runs and their summaries."""

    def find_prior_run(self, mode_id: UUID, cutover_date: date) -> RunRecord | None:
        model = self.session.execute(
            select(RunModel)
            .where(
                RunModel.mode_id == mode_id,
                RunModel.cutover_date < cutover_date,
            )
            .order_by(RunModel.cutover_date.desc(), RunModel.sequence.desc())
            .limit(1)
        ).unique().scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def get_summary(self, run_id: UUID, contractor_id: str) -> SummaryEntry | None:
        model = self.session.execute(
            select(SummaryEntryModel).where(
                SummaryEntryModel.run_id == run_id,
                SummaryEntryModel.contractor_id == contractor_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def get_summaries(self, run_id: UUID) -> dict[str, SummaryEntry]:
        """All summaries of a run keyed by contractor id."""
        models = self.session.execute(
            select(SummaryEntryModel).where(SummaryEntryModel.run_id == run_id)
        ).scalars().all()
        return {m.contractor_id: m.to_dto() for m in models}

    def sequences_for(self, mode_id: UUID, cutover_date: date) -> list[int]:
        return list(
            self.session.execute(
                select(RunModel.sequence)
                .where(
                    RunModel.mode_id == mode_id,
                    RunModel.cutover_date == cutover_date,
                )
                .order_by(RunModel.sequence)
            ).scalars()
        )
