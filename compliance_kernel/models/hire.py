"""
Module: compliance_kernel.models.hire
Responsibility: ORM persistence for reviewed hire events.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value types only.

Hire rows are written by ingestion (outside this package) and are never
mutated by the compliance engine.  ``classification`` holds the resolved
Direct/Dispatch tag; ``hire_type`` keeps the label exactly as recorded.

Rows with ``is_inactive`` set or carrying ``excluded_rules`` are invisible
to the hire selector.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from compliance_kernel.db.base import Base
from compliance_kernel.domain.values import HireClassification, HireEvent
from compliance_kernel.exceptions import DataIntegrityError


class HireModel(Base):
    """A reviewed hire of one worker by one contractor."""

    __tablename__ = "cmp_hires"

    __table_args__ = (
        Index("ix_cmp_hires_contractor_start", "contractor_id", "start_date"),
        Index("ix_cmp_hires_start_date", "start_date"),
    )

    contractor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    member_name: Mapped[str] = mapped_column(String(255), nullable=False)
    id_number: Mapped[str] = mapped_column(String(100), nullable=False)
    hire_type: Mapped[str] = mapped_column(String(50), nullable=False)
    classification: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    is_inactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    excluded_rules: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_dto(self) -> HireEvent:
        """
        Convert to a HireEvent.

        Raises:
            DataIntegrityError: If the row lacks a field the replay orders
                or keys on.
        """
        if not (self.contractor_id or "").strip():
            raise DataIntegrityError("Hire", str(self.id), "missing contractor id")
        if not (self.id_number or "").strip():
            raise DataIntegrityError("Hire", str(self.id), "missing worker ID number")
        if self.start_date is None:
            raise DataIntegrityError("Hire", str(self.id), "missing start date")
        if self.reviewed_at is None:
            raise DataIntegrityError("Hire", str(self.id), "missing review timestamp")

        return HireEvent(
            hire_id=self.id,
            contractor_id=self.contractor_id,
            contractor_name=self.contractor_name,
            employer_id=self.employer_id,
            member_name=self.member_name,
            id_number=self.id_number,
            classification=HireClassification.from_raw(self.classification),
            hire_type=self.hire_type,
            start_date=self.start_date,
            reviewed_at=self.reviewed_at,
        )

    @classmethod
    def from_dto(cls, dto: HireEvent) -> HireModel:
        return cls(
            id=dto.hire_id,
            contractor_id=dto.contractor_id,
            contractor_name=dto.contractor_name,
            employer_id=dto.employer_id,
            member_name=dto.member_name,
            id_number=dto.id_number,
            hire_type=dto.hire_type,
            classification=dto.classification.value,
            start_date=dto.start_date,
            reviewed_at=dto.reviewed_at,
        )
