"""
Module: compliance_kernel.selectors.hire_selector
Responsibility: Decide, for one run, which contractors are evaluated and
    which hire events are replayed for each of them, in what order.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Every contractor with ANY visible hire is evaluated, not only those
      with hires on or after the cutover date.  Contractors without new
      hires still get a carried-forward summary from the orchestrator.
    - Replay order within a contractor is start date, then review
      timestamp, then worker ID number, all ascending; the hire id breaks
      any remaining tie.  The order is applied in Python on top of the SQL
      ORDER BY so it does not depend on database collation.
    - Inactive hires and hires carrying excluded-rule markers are never
      visible.

Failure modes:
    - DataIntegrityError (from HireModel.to_dto) for a visible hire row that
      lacks a contractor id, worker ID number, start date or review time.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select

from compliance_kernel.domain.values import Contractor, HireEvent
from compliance_kernel.models.hire import HireModel
from compliance_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class HireSelection:
    """Contractors to evaluate and their ordered hires for one run."""

    cutover_date: date
    contractors: tuple[Contractor, ...]
    hires_by_contractor: dict[str, tuple[HireEvent, ...]] = field(default_factory=dict)

    def hires_for(self, contractor_id: str) -> tuple[HireEvent, ...]:
        return self.hires_by_contractor.get(contractor_id, ())

    @property
    def hire_count(self) -> int:
        return sum(len(h) for h in self.hires_by_contractor.values())


def _visible():
    return (HireModel.is_inactive.is_(False), HireModel.excluded_rules.is_(None))


class HireSelector(BaseSelector):
    """Read-only hire source for the run orchestrator."""

    def list_all_contractors(self) -> list[Contractor]:
        """
        Every contractor with at least one visible hire, ordered by id.

        Name and employer come from the contractor's most recently
        reviewed hire.
        """
        rows = self.session.execute(
            select(
                HireModel.contractor_id,
                HireModel.contractor_name,
                HireModel.employer_id,
            )
            .where(*_visible())
            .order_by(
                HireModel.contractor_id,
                HireModel.reviewed_at.asc().nulls_first(),
                HireModel.start_date,
                HireModel.id_number,
            )
        ).all()

        latest: dict[str, Contractor] = {}
        for contractor_id, contractor_name, employer_id in rows:
            latest[contractor_id] = Contractor(
                contractor_id=contractor_id,
                contractor_name=contractor_name,
                employer_id=employer_id,
            )
        return [latest[key] for key in sorted(latest)]

    def list_hires(self, contractor_id: str, since: date) -> list[HireEvent]:
        """Visible hires for one contractor starting on/after ``since``, in replay order."""
        models = self.session.execute(
            select(HireModel)
            .where(
                HireModel.contractor_id == contractor_id,
                HireModel.start_date >= since,
                *_visible(),
            )
            .order_by(HireModel.start_date, HireModel.reviewed_at, HireModel.id_number)
        ).scalars().all()
        return sorted((m.to_dto() for m in models), key=lambda h: h.replay_key)

    def select_for_run(self, cutover_date: date) -> HireSelection:
        """Build the full selection for a run in two queries."""
        contractors = tuple(self.list_all_contractors())

        models = self.session.execute(
            select(HireModel)
            .where(HireModel.start_date >= cutover_date, *_visible())
            .order_by(
                HireModel.contractor_id,
                HireModel.start_date,
                HireModel.reviewed_at,
                HireModel.id_number,
            )
        ).scalars().all()

        grouped: dict[str, list[HireEvent]] = defaultdict(list)
        for model in models:
            hire = model.to_dto()
            grouped[hire.contractor_id].append(hire)

        return HireSelection(
            cutover_date=cutover_date,
            contractors=contractors,
            hires_by_contractor={
                contractor_id: tuple(sorted(hires, key=lambda h: h.replay_key))
                for contractor_id, hires in grouped.items()
            },
        )
