"""Input checks applied before a decision is computed."""

from collections.abc import Mapping

from src.core.errors import InvalidInputError


def validate_user_id(user_id) -> str:
    if not isinstance(user_id, str) or not user_id:
        raise InvalidInputError(f"Provided user ID {user_id!r} is in an invalid format.")
    return user_id


def validate_attributes(attributes) -> Mapping:
    """Return the attribute map, treating ``None`` as no attributes."""
    if attributes is None:
        return {}
    if not isinstance(attributes, Mapping):
        raise InvalidInputError("Provided attributes are in an invalid format.")
    return attributes
