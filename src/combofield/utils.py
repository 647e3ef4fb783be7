"""
Utility functions for the combofield package.
"""

import os
import re

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def get_project_root() -> str:
    """
    Get the project root directory (parent of src/combofield).

    Returns:
        Absolute path to the project root directory
    """
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def parse_leading_int(text: str) -> int:
    """
    Parse the leading integer of a string, ignoring surrounding whitespace.

    Trailing garbage is dropped (" 42abc" -> 42) and text without leading
    digits yields 0.

    Args:
        text: Raw text, usually typed by a user

    Returns:
        The parsed integer, or 0
    """
    match = _LEADING_INT.match(text or "")
    if match is None:
        return 0
    return int(match.group(1))
