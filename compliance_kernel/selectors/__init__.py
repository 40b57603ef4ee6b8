"""Read-only query selectors."""

from compliance_kernel.selectors.base import BaseSelector
from compliance_kernel.selectors.hire_selector import HireSelection, HireSelector
from compliance_kernel.selectors.mode_selector import ModeSelector
from compliance_kernel.selectors.report_selector import ReportSelector
from compliance_kernel.selectors.run_selector import RunSelector

__all__ = [
    "BaseSelector",
    "HireSelection",
    "HireSelector",
    "ModeSelector",
    "ReportSelector",
    "RunSelector",
]
