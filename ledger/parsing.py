"""Lenient text and number parsing. These helpers never raise."""

from typing import Optional


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Trim whitespace; blank input becomes None."""
    if text is None:
        return None
    stripped = text.strip()
    return stripped or None


def clean_required(text: Optional[str], fallback: str) -> str:
    """Trim whitespace; blank input becomes ``fallback``."""
    return clean_optional(text) or fallback


def parse_int_optional(text: Optional[str]) -> Optional[int]:
    """Parse an integer, e.g. an odometer reading. Invalid input is None."""
    cleaned = clean_optional(text)
    if cleaned is None:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def parse_float(text: Optional[str]) -> Optional[float]:
    """
    Parse a decimal number, accepting a comma as the decimal separator.

    "12,5" and " 12.5 " both give 12.5. Invalid or non-finite input is None.
    """
    cleaned = clean_optional(text)
    if cleaned is None:
        return None
    try:
        value = float(cleaned.replace(",", "."))
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value
