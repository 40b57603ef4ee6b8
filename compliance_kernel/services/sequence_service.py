"""
SequenceService -- per-(mode, cutover date) run sequence allocation.

Responsibility:
    Hands out the sequence number of a new run from a dedicated counter
    row, locked with ``SELECT ... FOR UPDATE`` so two concurrent runs for
    the same mode and cutover date never receive the same number.  The
    aggregate max-plus-one query is not used.

Architecture position:
    Kernel > Services.  Called by RunWriter.create_run().

Invariants enforced:
    - The first run for a (mode, cutover date) gets 1; each later run gets
      one more than the last committed one.
    - The increment is transactional.  A dry run rolls back and does not
      consume a value.

Failure modes:
    - IntegrityError while two transactions create the same counter row:
      handled by rolling back a savepoint and re-reading the row.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from compliance_kernel.db.base import Base
from compliance_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


def run_sequence_name(mode_id: UUID, cutover_date: date) -> str:
    """Counter name for the runs of one mode on one cutover date."""
    return f"run:{mode_id}:{cutover_date.isoformat()}"


class SequenceCounter(Base):
    """One named counter and its last allocated value."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Transactional sequence numbers from locked counter rows.

    Usage:
        seq = SequenceService(session).next_value(run_sequence_name(mode_id, cutover))
        # rollback returns seq; commit consumes it
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the counter row, increment it and return the value.

        Returns:
            An integer > 0, strictly greater than every committed value
            previously returned for ``sequence_name``.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; another transaction may be creating the same row.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last allocated value without incrementing, or None if never used."""
        value = self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return value
