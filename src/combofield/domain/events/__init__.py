"""Event system for decoupled binder-to-host communication.

Example:
    ```python
    from combofield.domain.events import EventBus, LabelChanged

    event_bus = EventBus()
    event_bus.subscribe(LabelChanged, lambda e: print(e.label))
    ```
"""

from .bus import EventBus
from .types import (
    Event,
    IdentifierResolved,
    LabelChanged,
    ResolutionFailed,
)

__all__ = [
    "EventBus",
    "Event",
    "IdentifierResolved",
    "LabelChanged",
    "ResolutionFailed",
]
