"""Event types published by combobox binders.

Binders publish these on the registry's event bus so hosts can react to
resolution outcomes without subscribing to individual fields.
"""

import time
from dataclasses import dataclass, field

from combofield.domain.types import ResolutionRequest


@dataclass
class Event:
    """Base class for all events.

    The timestamp field is automatically set when the event is created.
    """

    timestamp: float = field(default_factory=time.time, init=False)
    """Timestamp when the event was created (Unix timestamp)."""


@dataclass
class LabelChanged(Event):
    """Published whenever a binder writes a new label into its proxy field.

    Attributes:
        correlation_id: Correlation identifier of the binding
        label: The label now displayed
    """

    correlation_id: int
    label: str


@dataclass
class IdentifierResolved(Event):
    """Published when typed text or a suggestion produced a canonical identifier."""

    correlation_id: int
    value: str
    label: str


@dataclass
class ResolutionFailed(Event):
    """Published when a scheduled resolution failed with an unknown outcome.

    The proxy label is left unchanged; the host may retry via ``refresh()``.
    """

    correlation_id: int
    request: ResolutionRequest
    error: Exception
