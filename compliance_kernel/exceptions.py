"""
Typed Exception Hierarchy for the compliance kernel.

Every error carries a ``code`` class attribute (machine-readable, stable
across message wording changes) and stores its context as attributes so
that it survives logging and serialization intact.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ComplianceError (base)
    |
    +-- ConfigurationError
    |   +-- ModeNotFoundError
    |   +-- InvalidRatioError
    |
    +-- DataIntegrityError
    |
    +-- TransactionFailureError
    |
    +-- RunNotFoundError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                   | When Raised
-----------------------|------------------------------------------------------
CONFIGURATION_ERROR    | Settings file or mode definition is unusable
MODE_NOT_FOUND         | Ratio mode name is not registered
INVALID_RATIO          | allowed_direct is missing or < 1
DATA_INTEGRITY_ERROR   | Hire or prior summary row cannot be replayed
TRANSACTION_FAILURE    | Storage failed mid-run; whole run rolled back
RUN_NOT_FOUND          | Report projection requested for an unknown run
IMMUTABILITY_VIOLATION | Update/delete of a committed run, ledger or summary

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        result = orchestrator.execute("2To1", date(2025, 11, 16))
    except ConfigurationError as e:
        # Nothing was written; fix the mode table or the request.
        report(code=e.code, mode=getattr(e, "mode_name", None))
    except TransactionFailureError as e:
        # Nothing was committed; re-running is safe.
        report(code=e.code, run_id=e.run_id)

TransactionFailureError is never retried automatically.  Re-running is the
caller's decision and is safe because no partial state is ever committed.
"""

from datetime import date


class ComplianceError(Exception):
    """
    Base exception for all compliance kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "COMPLIANCE_ERROR"


# Configuration exceptions


class ConfigurationError(ComplianceError):
    """Configuration is unusable; raised before any write happens."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str):
        self.detail = message
        super().__init__(message)


class ModeNotFoundError(ConfigurationError):
    """No ratio mode registered under the requested name."""

    code: str = "MODE_NOT_FOUND"

    def __init__(self, mode_name: str):
        self.mode_name = mode_name
        super().__init__(f"Mode not found: {mode_name}")


class InvalidRatioError(ConfigurationError):
    """A mode carries an allowed_direct value that is not a positive integer."""

    code: str = "INVALID_RATIO"

    def __init__(self, mode_name: str, allowed_direct: object):
        self.mode_name = mode_name
        self.allowed_direct = allowed_direct
        super().__init__(
            f"Invalid allowed_direct for mode {mode_name}: {allowed_direct!r}"
        )


# Data exceptions


class DataIntegrityError(ComplianceError):
    """
    A stored row cannot be replayed through the state machine.

    Unrecognized hire classification labels are NOT integrity errors:
    they resolve to Direct when the hire is read (see HireClassification).
    """

    code: str = "DATA_INTEGRITY_ERROR"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Data integrity error on {entity_type} {entity_id}: {reason}"
        )


# Transaction exceptions


class TransactionFailureError(ComplianceError):
    """
    Storage failed mid-run.  The whole run transaction has been rolled back.
    """

    code: str = "TRANSACTION_FAILURE"

    def __init__(
        self,
        run_id: str | None,
        mode: str,
        cutover_date: date,
        dry_run: bool,
        cause: str,
    ):
        self.run_id = run_id
        self.mode = mode
        self.cutover_date = cutover_date
        self.dry_run = dry_run
        self.cause = cause
        super().__init__(
            f"Run {run_id or '<unallocated>'} for mode {mode} "
            f"cutover {cutover_date.isoformat()} rolled back: {cause}"
        )


# Lookup exceptions


class RunNotFoundError(ComplianceError):
    """Run with given ID was not found."""

    code: str = "RUN_NOT_FOUND"

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


# Immutability exceptions


class ImmutabilityViolationError(ComplianceError):
    """
    Attempted to modify or delete an append-only record.

    Runs, ledger entries and summary entries never change once written.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
