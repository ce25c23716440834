"""Shared utilities used across the queue engine."""

import re


def normalize_plate(value: str) -> str:
    """Normalize a licence plate by uppercasing and dropping separators.

    Examples:
        >>> normalize_plate("abc 12d")
        'ABC12D'
        >>> normalize_plate(" xyz-987 ")
        'XYZ987'
    """
    return re.sub(r"[^0-9A-Za-z]", "", value.strip()).upper()


def display_name(value: str) -> str:
    """Collapse whitespace and title-case a person's name for announcements.

    Examples:
        >>> display_name("  ana   maria lopez ")
        'Ana Maria Lopez'
    """
    return " ".join(part.capitalize() for part in value.split())
