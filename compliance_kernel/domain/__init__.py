"""Pure domain core: value types, DTOs, clock, and the ratio state machine."""

from compliance_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry
from compliance_kernel.domain.transition import apply_hire, replay
from compliance_kernel.domain.values import (
    ComplianceState,
    ComplianceStatus,
    Contractor,
    HireClassification,
    HireEvent,
    RatioRule,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ComplianceState",
    "ComplianceStatus",
    "Contractor",
    "HireClassification",
    "HireEvent",
    "RatioRule",
    "RunRecord",
    "LedgerEntry",
    "SummaryEntry",
    "apply_hire",
    "replay",
]
