"""
Module: compliance_kernel.models.run
Responsibility: ORM persistence for compliance runs and their two child
    tables: the per-hire ledger and the per-contractor summary.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - UNIQUE(mode_id, cutover_date, sequence): one run per sequence slot.
    - UNIQUE(run_id, hire_id): a hire is applied at most once per run.
    - UNIQUE(run_id, contractor_id): exactly one summary per contractor.
    - Append-only after commit (see db/immutability.py).

Audit relevance:
    ``allowed_direct`` is snapshotted on the run row so a ledger can be
    re-derived even if the mode table is later edited.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_kernel.db.base import TrackedBase, UUIDString
from compliance_kernel.domain.dtos import LedgerEntry, RunRecord, SummaryEntry
from compliance_kernel.domain.values import ComplianceStatus, HireClassification

if TYPE_CHECKING:
    from compliance_kernel.models.mode import ModeModel


class RunModel(TrackedBase):
    """One execution of the engine."""

    __tablename__ = "cmp_runs"

    __table_args__ = (
        UniqueConstraint(
            "mode_id", "cutover_date", "sequence",
            name="uq_cmp_runs_mode_cutover_sequence",
        ),
        Index("ix_cmp_runs_mode_cutover", "mode_id", "cutover_date"),
    )

    mode_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("cmp_modes.id"), nullable=False,
    )
    cutover_date: Mapped[date] = mapped_column(Date, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    allowed_direct: Mapped[int] = mapped_column(Integer, nullable=False)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)

    mode: Mapped["ModeModel"] = relationship("ModeModel", lazy="joined")

    def to_dto(self) -> RunRecord:
        return RunRecord(
            run_id=self.id,
            mode_id=self.mode_id,
            mode_name=self.mode.name,
            allowed_direct=self.allowed_direct,
            cutover_date=self.cutover_date,
            sequence=self.sequence,
            report_date=self.report_date,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: RunRecord, created_by_id: UUID) -> RunModel:
        return cls(
            id=dto.run_id,
            mode_id=dto.mode_id,
            cutover_date=dto.cutover_date,
            sequence=dto.sequence,
            allowed_direct=dto.allowed_direct,
            report_date=dto.report_date,
            created_at=dto.created_at,
            created_by_id=created_by_id,
        )


class LedgerEntryModel(TrackedBase):
    """One replayed hire and the state it produced."""

    __tablename__ = "cmp_ledger_entries"

    __table_args__ = (
        UniqueConstraint("run_id", "hire_id", name="uq_cmp_ledger_run_hire"),
        Index("ix_cmp_ledger_run_contractor", "run_id", "contractor_id"),
    )

    run_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("cmp_runs.id"), nullable=False,
    )
    hire_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("cmp_hires.id"), nullable=False,
    )
    # Replay position within the run
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    contractor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    member_name: Mapped[str] = mapped_column(String(255), nullable=False)
    id_number: Mapped[str] = mapped_column(String(100), nullable=False)
    hire_type: Mapped[str] = mapped_column(String(50), nullable=False)
    classification: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    # State after applying this hire
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    direct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    dispatch_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    next_hire_dispatch: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def to_dto(self) -> LedgerEntry:
        return LedgerEntry(
            run_id=self.run_id,
            hire_id=self.hire_id,
            line_seq=self.line_seq,
            contractor_id=self.contractor_id,
            contractor_name=self.contractor_name,
            employer_id=self.employer_id,
            member_name=self.member_name,
            id_number=self.id_number,
            hire_type=self.hire_type,
            classification=HireClassification(self.classification),
            start_date=self.start_date,
            reviewed_at=self.reviewed_at,
            status=ComplianceStatus(self.status),
            direct_count=self.direct_count,
            dispatch_needed=self.dispatch_needed,
            next_hire_dispatch=self.next_hire_dispatch,
        )

    @classmethod
    def from_dto(cls, dto: LedgerEntry, created_by_id: UUID) -> LedgerEntryModel:
        return cls(
            run_id=dto.run_id,
            hire_id=dto.hire_id,
            line_seq=dto.line_seq,
            contractor_id=dto.contractor_id,
            contractor_name=dto.contractor_name,
            employer_id=dto.employer_id,
            member_name=dto.member_name,
            id_number=dto.id_number,
            hire_type=dto.hire_type,
            classification=dto.classification.value,
            start_date=dto.start_date,
            reviewed_at=dto.reviewed_at,
            status=dto.status.value,
            direct_count=dto.direct_count,
            dispatch_needed=dto.dispatch_needed,
            next_hire_dispatch=dto.next_hire_dispatch,
            created_by_id=created_by_id,
        )


class SummaryEntryModel(TrackedBase):
    """A contractor's final state for a run."""

    __tablename__ = "cmp_summary_entries"

    __table_args__ = (
        UniqueConstraint(
            "run_id", "contractor_id", name="uq_cmp_summary_run_contractor",
        ),
    )

    run_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("cmp_runs.id"), nullable=False,
    )
    contractor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    direct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    dispatch_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    next_hire_dispatch: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def to_dto(self) -> SummaryEntry:
        return SummaryEntry(
            run_id=self.run_id,
            contractor_id=self.contractor_id,
            contractor_name=self.contractor_name,
            employer_id=self.employer_id,
            status=ComplianceStatus(self.status),
            direct_count=self.direct_count,
            dispatch_needed=self.dispatch_needed,
            next_hire_dispatch=self.next_hire_dispatch,
        )

    @classmethod
    def from_dto(cls, dto: SummaryEntry, created_by_id: UUID) -> SummaryEntryModel:
        return cls(
            run_id=dto.run_id,
            contractor_id=dto.contractor_id,
            contractor_name=dto.contractor_name,
            employer_id=dto.employer_id,
            status=dto.status.value,
            direct_count=dto.direct_count,
            dispatch_needed=dto.dispatch_needed,
            next_hire_dispatch=dto.next_hire_dispatch,
            created_by_id=created_by_id,
        )
