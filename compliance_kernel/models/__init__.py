"""ORM models.  Importing this package registers every table on Base.metadata."""

from compliance_kernel.models.hire import HireModel
from compliance_kernel.models.mode import ModeModel
from compliance_kernel.models.run import (
    LedgerEntryModel,
    RunModel,
    SummaryEntryModel,
)

__all__ = [
    "HireModel",
    "ModeModel",
    "RunModel",
    "LedgerEntryModel",
    "SummaryEntryModel",
]
