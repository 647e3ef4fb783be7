"""Shared domain types."""

from combofield.domain.types.identifier import (
    empty_identifier,
    is_empty_identifier,
    normalize_identifier,
)
from combofield.domain.types.resolution import Direction, ResolutionRequest, Row
from combofield.domain.types.state import BinderState

__all__ = [
    "BinderState",
    "Direction",
    "ResolutionRequest",
    "Row",
    "empty_identifier",
    "is_empty_identifier",
    "normalize_identifier",
]
