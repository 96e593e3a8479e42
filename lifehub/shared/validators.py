"""Shared validation utilities"""

import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def normalize_uuid(value: Optional[str], field_name: str = "id") -> Optional[str]:
    """
    Validate an optional identifier and return it in canonical lowercase form.

    Args:
        value: Identifier string or None
        field_name: Name used in the error message

    Returns:
        Canonical UUID string, or None when no value was given

    Raises:
        ValueError: If the identifier is not a valid UUID
    """
    if value is None or value == "":
        return None

    if not validate_uuid(value):
        raise ValueError(f"{field_name} must be a valid UUID")

    return str(uuid.UUID(value))
