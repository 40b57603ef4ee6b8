"""
ORM-level append-only enforcement for runs, ledger entries and summaries.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners here intercept those events for the three run
tables and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update] --> _block_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _block_delete() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable   | Why
------------------|------------------|-------------------------------------------
RunModel          | ALWAYS           | Sequence slot and cutover define the chain
LedgerEntryModel  | ALWAYS           | Per-hire audit record
SummaryEntryModel | ALWAYS           | Seed for the next run

Rows are only ever INSERTed.  A run that must not stand is discarded by
rolling its transaction back, never by editing it afterwards.

Usage:
    register_immutability_listeners()    # once at startup
    unregister_immutability_listeners()  # tests that need raw access only
"""

from sqlalchemy import event

from compliance_kernel.exceptions import ImmutabilityViolationError
from compliance_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _entity_name(target) -> str:
    return type(target).__name__.removesuffix("Model")


def _block_update(mapper, connection, target):
    """Prevent any UPDATE to an append-only row."""
    entity_type = _entity_name(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows are append-only and cannot be modified",
    )


def _block_delete(mapper, connection, target):
    """Prevent DELETE of an append-only row."""
    entity_type = _entity_name(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows are append-only and cannot be deleted",
    )


def _protected_models():
    from compliance_kernel.models.run import (
        LedgerEntryModel,
        RunModel,
        SummaryEntryModel,
    )

    return (RunModel, LedgerEntryModel, SummaryEntryModel)


def register_immutability_listeners() -> None:
    """
    Register append-only listeners (idempotent).

    Call after models are importable and before any run executes.
    """
    for model in _protected_models():
        if not event.contains(model, "before_update", _block_update):
            event.listen(model, "before_update", _block_update)
        if not event.contains(model, "before_delete", _block_delete):
            event.listen(model, "before_delete", _block_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove append-only listeners.

    WARNING: Only use this in tests that must write raw fixtures.
    """
    for model in _protected_models():
        if event.contains(model, "before_update", _block_update):
            event.remove(model, "before_update", _block_update)
        if event.contains(model, "before_delete", _block_delete):
            event.remove(model, "before_delete", _block_delete)
