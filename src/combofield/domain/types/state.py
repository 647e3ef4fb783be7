"""Combobox binder states."""

from enum import Enum

__all__ = ["BinderState"]


class BinderState(Enum):
    """State of a combobox binding.

    IDLE: label reflects the canonical value (or the last outcome)
    RESOLVING_FORWARD: identifier -> label lookup in flight
    USER_EDITING: the user has typed into the proxy field
    RESOLVING_REVERSE: typed text -> identifier lookup in flight
    DETACHED: the binding was torn down; every event is ignored
    """

    IDLE = "idle"
    RESOLVING_FORWARD = "resolving_forward"
    USER_EDITING = "user_editing"
    RESOLVING_REVERSE = "resolving_reverse"
    DETACHED = "detached"

    @property
    def is_resolving(self) -> bool:
        return self in (BinderState.RESOLVING_FORWARD, BinderState.RESOLVING_REVERSE)
