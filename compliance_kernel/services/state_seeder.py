"""
StateSeeder -- starting compliance state for each contractor in a run.

A contractor starts from its summary in the prior run when one exists,
otherwise from a fresh Compliant / 0 / 0 state.  The prior run's summaries
are loaded once per seeder and reused for every contractor.

Failure modes:
    - DataIntegrityError when a prior summary carries a negative counter.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from compliance_kernel.domain.dtos import RunRecord, SummaryEntry
from compliance_kernel.domain.values import ComplianceState
from compliance_kernel.exceptions import DataIntegrityError
from compliance_kernel.logging_config import get_logger
from compliance_kernel.selectors.run_selector import RunSelector

logger = get_logger("services.state_seeder")


class StateSeeder:
    """Seeds contractor states from the prior run's summaries."""

    def __init__(self, session: Session):
        self._runs = RunSelector(session)
        self._loaded_run_id: UUID | None = None
        self._summaries: dict[str, SummaryEntry] = {}

    def _summaries_for(self, run_id: UUID) -> dict[str, SummaryEntry]:
        if self._loaded_run_id != run_id:
            self._summaries = self._runs.get_summaries(run_id)
            self._loaded_run_id = run_id
        return self._summaries

    def seed(
        self,
        contractor_id: str,
        prior_run: RunRecord | None,
        allowed_direct: int,
    ) -> ComplianceState:
        if prior_run is None:
            return ComplianceState.fresh(allowed_direct)

        summary = self._summaries_for(prior_run.run_id).get(contractor_id)
        if summary is None:
            return ComplianceState.fresh(allowed_direct)

        if summary.direct_count < 0 or summary.dispatch_needed < 0:
            raise DataIntegrityError(
                "SummaryEntry",
                f"{prior_run.run_id}/{contractor_id}",
                f"negative counters (direct_count={summary.direct_count}, "
                f"dispatch_needed={summary.dispatch_needed})",
            )

        state = ComplianceState(
            status=summary.status,
            direct_count=summary.direct_count,
            dispatch_needed=summary.dispatch_needed,
            allowed_direct=allowed_direct,
        )
        logger.debug(
            "state_seeded",
            extra={
                "contractor_id": contractor_id,
                "prior_run_id": str(prior_run.run_id),
                "status": state.status,
                "direct_count": state.direct_count,
                "dispatch_needed": state.dispatch_needed,
            },
        )
        return state
