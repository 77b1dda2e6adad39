# shared/uuid_utils.py
"""
UUIDv7 utilities.

UUIDv7 identifiers are time-ordered, so recipes generated in one call sort in
generation order and stay index-friendly once the caller stores them.
"""
from typing import Union
from uuid import UUID

from uuid_extensions import uuid7


def generate_uuid7() -> UUID:
    """
    Generate a UUIDv7 (time-ordered UUID).

    Example:
        >>> recipe_id = generate_uuid7()
        >>> recipe_id.version
        7
    """
    return uuid7()


def is_valid_uuid(value: Union[str, UUID]) -> bool:
    """Check whether a value is a well-formed UUID of any version"""
    if isinstance(value, UUID):
        return True
    try:
        UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False
