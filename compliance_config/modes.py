"""
Mode name normalisation and mode table seeding.

``normalize_mode_name`` accepts what operators type (``2to1``, ``3TO1``,
``3``) and returns the configured spelling.  ``seed_modes`` makes the
mode table match configuration so ``ModeSelector.get_ratio_rule`` has
rows to read.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from compliance_config.schema import ModeDefinition
from compliance_kernel.exceptions import ConfigurationError
from compliance_kernel.logging_config import get_logger
from compliance_kernel.models.mode import ModeModel
from compliance_kernel.models.run import RunModel

logger = get_logger("config.modes")


def normalize_mode_name(raw: str | None, known: Iterable[str] = ("2To1", "3To1")) -> str:
    """
    Canonical mode name for ``raw``.

    Matches known names case-insensitively; a bare number ``N`` means
    ``NTo1``.  Unknown but non-empty input is returned trimmed so the mode
    lookup can report it.
    """
    text = (raw or "").strip()
    if not text:
        raise ConfigurationError("mode name is required")

    by_fold = {name.casefold(): name for name in known}
    if text.casefold() in by_fold:
        return by_fold[text.casefold()]
    if text.isdigit():
        candidate = f"{int(text)}To1"
        return by_fold.get(candidate.casefold(), candidate)
    return text


def seed_modes(session: Session, modes: Iterable[ModeDefinition]) -> list[ModeModel]:
    """
    Insert missing modes and update changed ratios.  Flush only.

    Raises:
        ConfigurationError: If a mode already referenced by a run would
            change its allowed_direct.
    """
    seeded: list[ModeModel] = []
    for definition in modes:
        model = session.execute(
            select(ModeModel).where(ModeModel.name == definition.name)
        ).scalar_one_or_none()

        if model is None:
            model = ModeModel(
                name=definition.name, allowed_direct=definition.allowed_direct,
            )
            session.add(model)
            logger.info(
                "mode_seeded",
                extra={"mode_name": definition.name,
                       "allowed_direct": definition.allowed_direct},
            )
        elif model.allowed_direct != definition.allowed_direct:
            run_count = session.execute(
                select(func.count()).select_from(RunModel)
                .where(RunModel.mode_id == model.id)
            ).scalar_one()
            if run_count:
                raise ConfigurationError(
                    f"mode {definition.name} has {run_count} run(s); "
                    f"allowed_direct cannot change from {model.allowed_direct} "
                    f"to {definition.allowed_direct}"
                )
            logger.info(
                "mode_ratio_updated",
                extra={"mode_name": definition.name,
                       "old_allowed_direct": model.allowed_direct,
                       "allowed_direct": definition.allowed_direct},
            )
            model.allowed_direct = definition.allowed_direct
        seeded.append(model)

    session.flush()
    return seeded
