"""
Value objects for the compliance domain.

Responsibility:
    Immutable value types shared by the state transition function, the
    selectors and the orchestrator: hire classification, compliance status,
    the ratio rule, the per-contractor compliance state, and hire events.

Architecture position:
    Kernel > Domain -- pure functional core, ZERO I/O.

Invariants enforced:
    - ``ComplianceState.next_hire_dispatch`` is derived from the counters and
      the ratio threshold on every read; it has no setter and no storage.
    - ``HireClassification`` is resolved once, when a hire row becomes a
      ``HireEvent``.  The state machine only ever sees the enum.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from compliance_kernel.exceptions import InvalidRatioError


class HireClassification(str, Enum):
    """How a worker was hired."""

    DIRECT = "direct"
    DISPATCH = "dispatch"

    @classmethod
    def from_raw(cls, raw: str | None) -> HireClassification:
        """
        Resolve a recorded hire-type label.

        Trims and case-folds; only ``dispatch`` is Dispatch.  Every other
        label, including empty and unknown ones, counts as Direct so that
        no hire is ever dropped from the replay.
        """
        if (raw or "").strip().casefold() == "dispatch":
            return cls.DISPATCH
        return cls.DIRECT


class ComplianceStatus(str, Enum):
    """Contractor compliance verdict."""

    COMPLIANT = "Compliant"
    NONCOMPLIANT = "Noncompliant"

    @classmethod
    def from_label(cls, label: str | None) -> ComplianceStatus:
        """Anything starting with ``non`` (any case) is Noncompliant."""
        if (label or "").strip().lower().startswith("non"):
            return cls.NONCOMPLIANT
        return cls.COMPLIANT


@dataclass(frozen=True)
class RatioRule:
    """
    A compliance mode: ``allowed_direct`` direct hires per dispatch hire.

    Loaded once per run and never changed while the run executes.
    """

    mode_id: UUID
    mode_name: str
    allowed_direct: int

    def __post_init__(self) -> None:
        if (
            isinstance(self.allowed_direct, bool)
            or not isinstance(self.allowed_direct, int)
            or self.allowed_direct < 1
        ):
            raise InvalidRatioError(self.mode_name, self.allowed_direct)


@dataclass(frozen=True)
class ComplianceState:
    """
    A contractor's compliance position at one point in time.

    ``allowed_direct`` is the threshold the state was derived under; it is
    what makes ``next_hire_dispatch`` a pure function of the counters.
    """

    status: ComplianceStatus
    direct_count: int
    dispatch_needed: int
    allowed_direct: int

    def __post_init__(self) -> None:
        if self.direct_count < 0 or self.dispatch_needed < 0:
            raise ValueError(
                f"Counters must be >= 0 (direct_count={self.direct_count}, "
                f"dispatch_needed={self.dispatch_needed})"
            )

    @classmethod
    def fresh(cls, allowed_direct: int) -> ComplianceState:
        """Compliant, zero counters."""
        return cls(
            status=ComplianceStatus.COMPLIANT,
            direct_count=0,
            dispatch_needed=0,
            allowed_direct=allowed_direct,
        )

    @property
    def next_hire_dispatch(self) -> bool:
        return self.dispatch_needed > 0 or self.direct_count >= self.allowed_direct

    @property
    def is_compliant(self) -> bool:
        return self.status is ComplianceStatus.COMPLIANT


@dataclass(frozen=True)
class Contractor:
    """A staffing agency whose hires are evaluated."""

    contractor_id: str
    contractor_name: str
    employer_id: str | None = None


@dataclass(frozen=True)
class HireEvent:
    """
    An immutable hire fact as observed by review.

    ``hire_type`` keeps the label exactly as recorded (for the ledger);
    ``classification`` is the resolved enum the state machine consumes.
    """

    hire_id: UUID
    contractor_id: str
    contractor_name: str
    employer_id: str | None
    member_name: str
    id_number: str
    classification: HireClassification
    hire_type: str
    start_date: date
    reviewed_at: datetime

    @property
    def replay_key(self) -> tuple:
        """Replay order: start date, review timestamp, worker ID number."""
        return (self.start_date, self.reviewed_at, self.id_number, str(self.hire_id))
