"""
State transition function for the direct/dispatch ratio rule.

Responsibility:
    ``apply_hire`` maps (state, hire classification, allowed_direct) to the
    next ComplianceState.  It is the only place the ratio rule lives.

Architecture position:
    Kernel > Domain -- pure, total, deterministic.  No I/O, no clock, no
    error cases: every (state, classification) pair has a defined result.

Rules (A = allowed_direct):
    Dispatch hire
        - Compliant, or Noncompliant owing exactly one dispatch:
          full reset to Compliant / 0 direct / 0 owed.
        - Noncompliant owing anything else: decrement both counters by one,
          clamped at zero; status stays Noncompliant.
    Direct hire
        - direct_count += 1.
        - Compliant and direct_count == A + 1: Noncompliant, owes 1.
        - direct_count > A + 1: Noncompliant, owes one more than before.
"""

from compliance_kernel.domain.values import (
    ComplianceState,
    ComplianceStatus,
    HireClassification,
)


def apply_hire(
    state: ComplianceState,
    classification: HireClassification,
    allowed_direct: int,
) -> ComplianceState:
    """Return the state after one hire.  ``state`` is not modified."""
    status = state.status
    direct_count = state.direct_count
    dispatch_needed = state.dispatch_needed

    if classification is HireClassification.DISPATCH:
        if status is ComplianceStatus.COMPLIANT or dispatch_needed == 1:
            status = ComplianceStatus.COMPLIANT
            direct_count = 0
            dispatch_needed = 0
        else:
            dispatch_needed = max(0, dispatch_needed - 1)
            direct_count = max(0, direct_count - 1)
    else:
        direct_count += 1
        if status is ComplianceStatus.COMPLIANT and direct_count == allowed_direct + 1:
            status = ComplianceStatus.NONCOMPLIANT
            dispatch_needed = 1
        elif direct_count > allowed_direct + 1:
            status = ComplianceStatus.NONCOMPLIANT
            dispatch_needed += 1

    return ComplianceState(
        status=status,
        direct_count=direct_count,
        dispatch_needed=dispatch_needed,
        allowed_direct=allowed_direct,
    )


def replay(
    state: ComplianceState,
    classifications,
    allowed_direct: int,
) -> list[ComplianceState]:
    """Apply hires in order; return the state after each one."""
    states = []
    for classification in classifications:
        state = apply_hire(state, classification, allowed_direct)
        states.append(state)
    return states
