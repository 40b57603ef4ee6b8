"""
Module: compliance_kernel.selectors.mode_selector
Responsibility: Ratio rule lookup by mode name.

Failure modes:
    - ModeNotFoundError when no mode row carries the name.
    - InvalidRatioError when the stored allowed_direct is not >= 1.
"""

from sqlalchemy import select

from compliance_kernel.domain.values import RatioRule
from compliance_kernel.exceptions import ModeNotFoundError
from compliance_kernel.models.mode import ModeModel
from compliance_kernel.selectors.base import BaseSelector


class ModeSelector(BaseSelector):
    """Read access to configured ratio modes."""

    def get_ratio_rule(self, mode_name: str) -> RatioRule:
        model = self.session.execute(
            select(ModeModel).where(ModeModel.name == mode_name)
        ).scalar_one_or_none()
        if model is None:
            raise ModeNotFoundError(mode_name)
        return RatioRule(
            mode_id=model.id,
            mode_name=model.name,
            allowed_direct=model.allowed_direct,
        )

    def list_modes(self) -> list[RatioRule]:
        models = self.session.execute(
            select(ModeModel).order_by(ModeModel.allowed_direct, ModeModel.name)
        ).scalars().all()
        return [
            RatioRule(mode_id=m.id, mode_name=m.name, allowed_direct=m.allowed_direct)
            for m in models
        ]

    def mode_names(self) -> list[str]:
        return list(
            self.session.execute(
                select(ModeModel.name).order_by(ModeModel.name)
            ).scalars()
        )
