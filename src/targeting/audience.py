"""Audience targeting: a user qualifies if they match any listed audience."""

from collections.abc import Mapping, Sequence

from src.datafile.schemas import Audience


def evaluate(audiences: Sequence[Audience], attributes: Mapping | None) -> bool:
    """Return True if no targeting is configured or any audience matches."""
    if not audiences:
        return True
    if not attributes:
        return False
    return any(audience.conditions.evaluate(attributes) for audience in audiences)
