"""Kernel services: flush-only writers used inside the caller's transaction."""

from compliance_kernel.services.base import BaseService
from compliance_kernel.services.run_writer import RunWriter
from compliance_kernel.services.sequence_service import (
    SequenceCounter,
    SequenceService,
    run_sequence_name,
)
from compliance_kernel.services.state_seeder import StateSeeder

__all__ = [
    "BaseService",
    "RunWriter",
    "SequenceCounter",
    "SequenceService",
    "StateSeeder",
    "run_sequence_name",
]
