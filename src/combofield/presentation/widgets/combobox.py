"""
ComboboxField - Textual rendering of a bound combobox.

The widget itself plays the canonical field: it is focusable but shows
nothing. The proxy field is rendered by an Input, the clear and dropdown
affordances by two small buttons. Widget events are translated into form
document operations, and model changes flow back through attribute
subscriptions, so the binder never talks to Textual directly.
"""

from __future__ import annotations

from typing import Any, Mapping

from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widgets import Button, Input

from combofield.application import ComboboxBinder, ComboboxRegistry
from combofield.domain.config import BindingConfig
from combofield.domain.document import FormDocument, Subscription
from combofield.domain.fields import FieldEvent, FormField
from combofield.domain.protocols import SuggestionSource
from combofield.logger import get_logger

from .suggestions import ComboboxSuggestions

logger = get_logger("combobox_field")

READONLY_CLASS = "-readonly"


class ComboboxField(Horizontal):
    """A combobox bound to ``field`` through ``registry``."""

    DEFAULT_CSS = """
    ComboboxField {
        height: auto;
        width: 100%;
    }
    ComboboxField > Input.combobox-search {
        width: 1fr;
    }
    ComboboxField > Button {
        min-width: 5;
        width: 5;
    }
    ComboboxField:focus-within > Input.combobox-search {
        border: tall $accent;
    }
    """

    can_focus = True

    def __init__(
        self,
        field: FormField,
        options: BindingConfig | Mapping[str, Any],
        registry: ComboboxRegistry,
        *,
        document: FormDocument | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.field = field
        self.document = field.document or document or FormDocument()
        if not field.is_attached:
            self.document.add(field)
        self._options = options
        self._registry = registry
        self.binder: ComboboxBinder | None = None
        self.suggestions: ComboboxSuggestions | None = None
        self._subscriptions: list[Subscription] = []
        self._remove_focus_listener = None

        self._input = Input(classes="combobox-search")
        self._clear_button = Button("×", classes="combobox-clear")
        self._dropdown_button = Button("▼", classes="combobox-chevron-down")
        # Buttons must not steal focus from the proxy
        self._clear_button.can_focus = False
        self._dropdown_button.can_focus = False

    def compose(self) -> ComposeResult:
        yield self._input
        yield self._clear_button
        yield self._dropdown_button

    @property
    def value(self) -> str:
        return self.field.value

    @value.setter
    def value(self, value: str) -> None:
        self.field.set_value(value)

    @property
    def label(self) -> str:
        return self._input.value

    @property
    def input(self) -> Input:
        return self._input

    def on_mount(self) -> None:
        self.binder = self._registry.bind(self.field, self._options)
        pair = self.binder.pair
        self._subscriptions.append(
            self.document.watch(pair.proxy, ("value", "readonly", "disabled"), self._proxy_attribute_changed)
        )
        if pair.clear is not None:
            self._subscriptions.append(self.document.watch(pair.clear, ("visible",), self._affordance_changed))
        self._subscriptions.append(self.document.watch(pair.dropdown, ("visible",), self._affordance_changed))
        self._remove_focus_listener = pair.proxy.listen("focus", self._proxy_focused)
        self._sync_from_model()

        if isinstance(self.binder.resolver, SuggestionSource):
            self.call_after_refresh(self._mount_suggestions)
        else:
            logger.debug(f"Resolver of combobox {self.binder.correlation_id} cannot search; no suggestions")

    def _mount_suggestions(self) -> None:
        if self.binder is None:
            return
        self.suggestions = ComboboxSuggestions(self._input, self.binder, self.binder.resolver)
        self.screen.mount(self.suggestions)
        self.binder.suggestions = self.suggestions
        logger.debug(f"Mounted suggestions for combobox {self.binder.correlation_id}")

    def on_unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        if self._remove_focus_listener is not None:
            self._remove_focus_listener()
            self._remove_focus_listener = None
        if self.binder is not None:
            self._registry.unbind(self.field)
            self.binder = None

    # -- model -> widgets ------------------------------------------------------

    def _sync_from_model(self) -> None:
        if self.binder is None:
            return
        pair = self.binder.pair
        proxy = pair.proxy
        self._write_input(proxy.value)
        self._input.disabled = proxy.disabled
        self._input.set_class(proxy.readonly, READONLY_CLASS)
        self._clear_button.display = pair.clear is not None and pair.clear.visible
        self._dropdown_button.display = pair.dropdown.visible

    def _write_input(self, value: str) -> None:
        # Programmatic writes must not come back as typing
        if self._input.value != value:
            with self._input.prevent(Input.Changed):
                self._input.value = value

    def _proxy_attribute_changed(self, name: str, old: object, new: object) -> None:
        self._sync_from_model()

    def _affordance_changed(self, name: str, old: object, new: object) -> None:
        self._sync_from_model()

    def _proxy_focused(self, event: FieldEvent) -> None:
        if not self._input.has_focus:
            self._input.focus()

    # -- widgets -> model ------------------------------------------------------

    def on_focus(self, event: events.Focus) -> None:
        if self.binder is not None:
            self.document.focus(self.field)

    def on_key(self, event: events.Key) -> None:
        if self.binder is None or not self.has_focus:
            return
        if event.is_printable and event.character:
            event.stop()
            # The container stands for the canonical field, whatever the model focus says
            if self.document.focused is not self.field:
                self.document.focus(self.field)
            self.document.press_key(event.character)

    def on_descendant_focus(self, event: events.DescendantFocus) -> None:
        if self.binder is None or event.widget is not self._input:
            return
        proxy = self.binder.pair.proxy
        if self.document.focused is not proxy:
            self.document.mouse_down(proxy)

    def on_descendant_blur(self, event: events.DescendantBlur) -> None:
        if self.binder is None or event.widget is not self._input:
            return
        if self.document.focused is self.binder.pair.proxy:
            self.document.blur()

    def on_input_changed(self, event: Input.Changed) -> None:
        if self.binder is None or event.input is not self._input:
            return
        event.stop()
        proxy = self.binder.pair.proxy
        if event.value == proxy.value:
            return
        if not proxy.editable:
            self._write_input(proxy.value)
            return
        proxy.dispatch("keypress")
        proxy.value = event.value
        proxy.dispatch("input")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if self.binder is None:
            return
        pair = self.binder.pair
        if event.button is self._clear_button and pair.clear is not None:
            event.stop()
            self.document.click(pair.clear)
        elif event.button is self._dropdown_button:
            event.stop()
            self.document.mouse_down(pair.dropdown)
