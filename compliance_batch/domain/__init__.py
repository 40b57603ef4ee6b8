"""Pure result types for compliance runs."""

from compliance_batch.domain.types import RunResult

__all__ = ["RunResult"]
