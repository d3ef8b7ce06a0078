"""Impact classification for detected changes."""

from __future__ import annotations

from src.models.change import ChangeType, ImpactLevel


def _pricing_impact(delta: float) -> ImpactLevel:
    magnitude = abs(delta)
    if magnitude >= 3:
        return ImpactLevel.CRITICAL
    elif magnitude >= 2:
        return ImpactLevel.HIGH
    elif magnitude >= 1:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def _rating_impact(delta: float) -> ImpactLevel:
    # Rounded so that 4.7 - 4.2 lands on the 0.5 band instead of 0.4999...
    magnitude = round(abs(delta), 6)
    if magnitude >= 1.0:
        return ImpactLevel.CRITICAL
    elif magnitude >= 0.5:
        return ImpactLevel.HIGH
    elif magnitude >= 0.2:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def _service_impact(added: int) -> ImpactLevel:
    if added >= 2:
        return ImpactLevel.HIGH
    elif added == 1:
        return ImpactLevel.MEDIUM
    # Removals alone are low impact
    return ImpactLevel.LOW


def classify_impact(
    change_type: ChangeType,
    delta: float = 0.0,
    added: int = 0,
    removed: int = 0,
) -> ImpactLevel:
    """Map a change's magnitude to an impact level.

    Numeric change types use ``delta``; service changes use the number of
    services ``added`` and ``removed``.
    """
    if change_type == ChangeType.PRICING:
        return _pricing_impact(delta)
    if change_type == ChangeType.RATING:
        return _rating_impact(delta)
    if change_type == ChangeType.REVIEW_VOLUME:
        return ImpactLevel.MEDIUM if delta > 5 else ImpactLevel.LOW
    if change_type == ChangeType.SOCIAL_GROWTH:
        return ImpactLevel.HIGH if delta > 500 else ImpactLevel.MEDIUM
    if change_type == ChangeType.SERVICE:
        return _service_impact(added)
    return ImpactLevel.LOW
