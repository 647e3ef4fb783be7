"""Host form document: node ordering, focus ownership and attribute watching."""

from __future__ import annotations

from typing import Callable, Iterable

from combofield.domain.fields import FieldEvent, FormField, FormNode

__all__ = ["AttributeCallback", "Subscription", "FormDocument"]

AttributeCallback = Callable[[str, object, object], None]


class Subscription:
    """An attribute change-notification subscription, active until cancelled."""

    def __init__(self, document: "FormDocument", node: FormNode, names: Iterable[str], callback: AttributeCallback):
        self._document = document
        self.node = node
        self.names = frozenset(names)
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._document._discard(self)


class FormDocument:
    """An ordered collection of form nodes with a single focus owner.

    The document plays the part of the host UI: it dispatches focus, blur,
    keypress, input and mouse events to node listeners and notifies
    subscribers when node attributes change.
    """

    def __init__(self, nodes: Iterable[FormNode] = ()):
        self._nodes: list[FormNode] = []
        self._focused: FormField | None = None
        self._subscriptions: list[Subscription] = []
        for node in nodes:
            self.add(node)

    @property
    def nodes(self) -> tuple[FormNode, ...]:
        return tuple(self._nodes)

    @property
    def focused(self) -> FormField | None:
        return self._focused

    def contains(self, node: FormNode) -> bool:
        return any(n is node for n in self._nodes)

    def add(self, node: FormNode) -> FormNode:
        self._adopt(node)
        self._nodes.append(node)
        return node

    def insert_after(self, anchor: FormNode, node: FormNode) -> FormNode:
        index = self._index(anchor)
        self._adopt(node)
        self._nodes.insert(index + 1, node)
        return node

    def remove(self, node: FormNode) -> None:
        if not self.contains(node):
            return
        self._nodes.pop(self._index(node))
        node.document = None
        if self._focused is node:
            self._focused = None

    def following(self, anchor: FormNode) -> list[FormNode]:
        """All nodes placed after ``anchor``."""
        return self._nodes[self._index(anchor) + 1 :]

    def _index(self, node: FormNode) -> int:
        for i, n in enumerate(self._nodes):
            if n is node:
                return i
        raise ValueError(f"{node!r} is not part of this document")

    def _adopt(self, node: FormNode) -> None:
        if node.document is not None and node.document is not self:
            node.document.remove(node)
        elif self.contains(node):
            self._nodes.pop(self._index(node))
        node.document = self

    # -- focus and input ---------------------------------------------------

    def focus(self, field: FormField) -> bool:
        """Move focus to ``field``, blurring the previous owner first.

        Returns False when the field cannot take focus (disabled or detached).
        """
        if field.disabled or not self.contains(field):
            return False
        if self._focused is field:
            return True
        previous = self._focused
        self._focused = field
        if previous is not None:
            previous.dispatch("blur")
        if self._focused is field:
            field.dispatch("focus")
        return True

    def blur(self) -> None:
        """Remove focus from the current owner."""
        previous = self._focused
        if previous is None:
            return
        self._focused = None
        previous.dispatch("blur")

    def press_key(self, key: str) -> FieldEvent | None:
        """Deliver one typed character to the focus owner.

        Unless a listener prevents it, the character is appended to the
        field's value and an ``input`` event follows.
        """
        target = self._focused
        if target is None:
            return None
        event = target.dispatch("keypress", key=key)
        if not event.default_prevented and target.editable:
            target.value = target.value + key
            target.dispatch("input")
        return event

    def type_text(self, text: str, *, replace: bool = False) -> None:
        """Type ``text`` into the focus owner, optionally replacing its current content."""
        if replace and self._focused is not None and self._focused.editable:
            self._focused.value = ""
        for char in text:
            self.press_key(char)

    def backspace(self) -> None:
        target = self._focused
        if target is None:
            return
        event = target.dispatch("keypress", key="backspace")
        if not event.default_prevented and target.editable and target.value:
            target.value = target.value[:-1]
            target.dispatch("input")

    def mouse_down(self, node: FormNode) -> FieldEvent:
        """Press the mouse on a node; fields take focus unless a listener prevents it."""
        event = node.dispatch("mousedown")
        if not event.default_prevented and isinstance(node, FormField):
            self.focus(node)
        return event

    def click(self, node: FormNode) -> FieldEvent:
        return node.dispatch("click")

    # -- attribute change notification ---------------------------------------

    def watch(self, node: FormNode, names: Iterable[str], callback: AttributeCallback) -> Subscription:
        """Invoke ``callback(name, old, new)`` whenever a watched attribute of ``node`` changes."""
        subscription = Subscription(self, node, names, callback)
        self._subscriptions.append(subscription)
        return subscription

    def subscription_count(self, node: FormNode | None = None) -> int:
        return sum(1 for s in self._subscriptions if node is None or s.node is node)

    def notify_attribute(self, node: FormNode, name: str, old: object, new: object) -> None:
        for subscription in list(self._subscriptions):
            if subscription.active and subscription.node is node and name in subscription.names:
                subscription.callback(name, old, new)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
