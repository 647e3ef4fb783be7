"""Form node model: fields, affordances and combobox field pairs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

if TYPE_CHECKING:
    from combofield.domain.document import FormDocument

__all__ = [
    "SEQ_ATTR",
    "IDVAL_ATTR",
    "FieldEvent",
    "Listener",
    "FormNode",
    "FormField",
    "ProxyField",
    "AffordanceKind",
    "Affordance",
    "FieldPair",
]

# Data attributes stored on canonical fields
SEQ_ATTR = "combobox-seq"
IDVAL_ATTR = "idval"


@dataclass
class FieldEvent:
    """An event delivered to the listeners of a form node."""

    type: str
    target: "FormNode"
    key: str | None = None
    default_prevented: bool = False

    def prevent_default(self) -> None:
        """Suppress the document's default action (text insertion, focus on mouse-down)."""
        self.default_prevented = True


Listener = Callable[[FieldEvent], None]


class FormNode:
    """Base class for anything placed in a FormDocument."""

    def __init__(self, *, node_id: str | None = None, classes: Iterable[str] = ()):
        self.node_id = node_id
        self.classes: set[str] = set(classes)
        self.data: dict[str, str] = {}
        self.document: FormDocument | None = None
        self._listeners: dict[str, list[Listener]] = {}

    @property
    def is_attached(self) -> bool:
        """Whether the node is currently part of its document."""
        return self.document is not None and self.document.contains(self)

    def listen(self, event_type: str, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it again."""
        self._listeners.setdefault(event_type, []).append(listener)

        def remove() -> None:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

        return remove

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def dispatch(self, event_type: str, *, key: str | None = None) -> FieldEvent:
        """Deliver an event to every listener registered for its type."""
        event = FieldEvent(event_type, self, key)
        for listener in list(self._listeners.get(event_type, [])):
            listener(event)
        return event

    def _attribute_changed(self, name: str, old: object, new: object) -> None:
        if old != new and self.document is not None:
            self.document.notify_attribute(self, name, old, new)


class FormField(FormNode):
    """A single-line text entry field.

    Assigning ``value`` never fires ``change``; use ``set_value`` for the
    equivalent of setting a value and triggering a change.
    """

    def __init__(
        self,
        name: str = "",
        value: str = "",
        *,
        readonly: bool = False,
        disabled: bool = False,
        node_id: str | None = None,
        classes: Iterable[str] = (),
        style: dict[str, str] | None = None,
        tab_index: int = 0,
    ):
        super().__init__(node_id=node_id, classes=classes)
        self.name = name
        self._value = value
        self._readonly = readonly
        self._disabled = disabled
        self.style: dict[str, str] = dict(style or {})
        self.saved_style: dict[str, str] | None = None
        self.tab_index = tab_index

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, value: str | None) -> None:
        old = self._value
        self._value = "" if value is None else str(value)
        self._attribute_changed("value", old, self._value)

    @property
    def readonly(self) -> bool:
        return self._readonly

    @readonly.setter
    def readonly(self, readonly: bool) -> None:
        old = self._readonly
        self._readonly = bool(readonly)
        self._attribute_changed("readonly", old, self._readonly)

    @property
    def disabled(self) -> bool:
        return self._disabled

    @disabled.setter
    def disabled(self, disabled: bool) -> None:
        old = self._disabled
        self._disabled = bool(disabled)
        self._attribute_changed("disabled", old, self._disabled)

    @property
    def editable(self) -> bool:
        return not (self._readonly or self._disabled)

    @property
    def has_focus(self) -> bool:
        return self.document is not None and self.document.focused is self

    def set_value(self, value: str | None, *, notify: bool = True) -> None:
        """Set the value and, unless ``notify`` is False, fire ``change``."""
        self.value = value
        if notify:
            self.dispatch("change")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, value={self._value!r})"


class ProxyField(FormField):
    """The visible search field of a combobox, showing the resolved label."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_label: str | None = None


class AffordanceKind(str, Enum):
    CLEAR = "clear"
    DROPDOWN = "dropdown"


class Affordance(FormNode):
    """A small control next to a proxy field (clear button, dropdown toggle)."""

    def __init__(self, kind: AffordanceKind, *, visible: bool = True, classes: Iterable[str] = ()):
        super().__init__(classes=classes)
        self.kind = kind
        self._visible = visible

    @property
    def visible(self) -> bool:
        return self._visible

    @visible.setter
    def visible(self, visible: bool) -> None:
        old = self._visible
        self._visible = bool(visible)
        self._attribute_changed("visible", old, self._visible)

    def __repr__(self) -> str:
        return f"Affordance(kind={self.kind.value}, visible={self._visible})"


@dataclass
class FieldPair:
    """One logical combobox field: a canonical field and its proxy render target."""

    correlation_id: int
    canonical: FormField
    proxy: ProxyField
    dropdown: Affordance
    clear: Affordance | None = None

    @property
    def is_attached(self) -> bool:
        return self.proxy.is_attached

    def owned_nodes(self) -> list[FormNode]:
        """Nodes created for this pair (everything except the canonical field)."""
        nodes: list[FormNode] = [self.proxy]
        if self.clear is not None:
            nodes.append(self.clear)
        nodes.append(self.dropdown)
        return nodes
