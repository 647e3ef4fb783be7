"""Identifier value normalization.

An identifier is either an integer (canonical empty value "0") or a string
(canonical empty value ""). The textual form held by a canonical field is
always normalized before it is used for a lookup.
"""

from combofield.utils import parse_leading_int

__all__ = ["empty_identifier", "normalize_identifier", "is_empty_identifier"]


def empty_identifier(is_string: bool) -> str:
    """Return the canonical empty textual form for an identifier type."""
    return "" if is_string else "0"


def normalize_identifier(raw: str | None, is_string: bool) -> str:
    """Normalize raw field text to the identifier's canonical textual form.

    String identifiers are kept verbatim (None becomes ""). Integer
    identifiers are reduced to their decimal form; malformed text becomes "0".

    Examples:
        >>> normalize_identifier(" 42", False)
        '42'
        >>> normalize_identifier("abc", False)
        '0'
        >>> normalize_identifier(" abc ", True)
        ' abc '
    """
    if raw is None:
        raw = ""
    if is_string:
        return raw
    return str(parse_leading_int(raw))


def is_empty_identifier(raw: str | None, is_string: bool) -> bool:
    """Check whether raw field text denotes the empty identifier."""
    return normalize_identifier(raw, is_string) == empty_identifier(is_string)
