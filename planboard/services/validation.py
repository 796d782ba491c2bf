"""
Input validation helpers shared by the planboard services.
"""

from typing import Iterable, List

from planboard.errors import ValidationError


def require_text(value: str, field: str) -> str:
    """
    Ensure a required text field is non-empty.

    Args:
        value: Text supplied by the caller
        field: Field name used in the error message

    Returns:
        The value unchanged

    Raises:
        ValidationError: If the value is None, empty or whitespace only
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} cannot be empty")
    return value


def require_texts(values: Iterable[str], field: str) -> List[str]:
    """Apply require_text to every value of an iterable."""
    return [require_text(value, field) for value in values]
