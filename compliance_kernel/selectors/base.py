"""
Module: compliance_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM rows.
    - Session ownership: the caller owns the session and its transaction, so
      a selector used inside a run sees that run's uncommitted writes.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Selectors accept a Session from the caller, perform read-only queries,
    and return DTOs.
    """

    def __init__(self, session: Session):
        self.session = session
