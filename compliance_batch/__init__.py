"""
compliance_batch -- run orchestration for the compliance engine.

Owns the transaction of a compliance run: resolves the ratio rule,
allocates the run, seeds every contractor from the prior run, replays new
hires and writes ledger and summary rows, then commits (or, for a dry run,
rolls back).

Architecture:
    compliance_batch/ is a top-level package.  Nothing in
    compliance_kernel/ imports from compliance_batch.
"""

from compliance_batch.domain.types import RunResult
from compliance_batch.orchestrator import RunOrchestrator

__all__ = ["RunOrchestrator", "RunResult"]
