"""
Module: compliance_kernel.models.mode
Responsibility: ORM persistence for ratio modes (e.g. 2To1, 3To1).
Architecture position: Kernel > Models.  May import from db/base.py only.

Rows are written by compliance_config.seed_modes() and read once per run
through ModeSelector.get_ratio_rule().
"""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from compliance_kernel.db.base import Base


class ModeModel(Base):
    """A named direct-to-dispatch ratio."""

    __tablename__ = "cmp_modes"

    name: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)

    # Direct hires permitted before a dispatch hire is owed
    allowed_direct: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<ModeModel {self.name} allowed_direct={self.allowed_direct}>"
