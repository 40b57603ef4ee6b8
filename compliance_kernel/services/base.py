"""
BaseService -- abstract base for kernel services that write.

Services receive the caller's Session and persist with ``session.flush()``
only.  Commit and rollback belong to the run orchestrator, which is what
makes a run (and a dry run's discard) all-or-nothing.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT call ``session.commit()`` or ``session.rollback()``.
        - Does NOT provide read-only queries; those live in
          ``compliance_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
