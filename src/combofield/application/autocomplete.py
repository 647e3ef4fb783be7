"""
AutocompleteBinder - a suggestion list on a plain field.

Unlike a combobox, the field keeps holding the chosen value itself: picking
a suggestion writes the row's value into the field and fires a change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from combofield.domain.exceptions import BindingConfigError, BindingTargetError
from combofield.domain.fields import FieldEvent, FormField
from combofield.domain.types import Row
from combofield.logger import get_logger

if TYPE_CHECKING:
    from combofield.application.registry import SuggestionsFactory
    from combofield.domain.protocols import SuggestionList

logger = get_logger("autocomplete")

__all__ = ["AutocompleteBinder"]


class AutocompleteBinder:
    """Attach a suggestion list to a single field."""

    def __init__(
        self,
        field: FormField,
        command: str,
        *,
        minimum_input_length: int = 1,
        page_size: int = 100,
        query_params: dict[str, str] | None = None,
    ):
        if not command:
            raise BindingConfigError("autocomplete_command is required")
        if not isinstance(field, FormField):
            raise BindingTargetError(f"Expected a form field, got {type(field).__name__}")
        self.field = field
        self.command = command
        self.minimum_input_length = minimum_input_length
        self.page_size = page_size
        self.query_params = query_params
        self.suggestions: SuggestionList | None = None
        self._removers: list[Callable[[], None]] = []

    @property
    def input_field(self) -> FormField:
        return self.field

    @property
    def attached(self) -> bool:
        return bool(self._removers)

    def attach(self, suggestions_factory: "SuggestionsFactory | None" = None) -> "AutocompleteBinder":
        if self.attached:
            return self
        if suggestions_factory is not None:
            self.suggestions = suggestions_factory(self)
        self._removers.append(self.field.listen("input", self._field_input))
        logger.debug(f"Autocomplete attached to field {self.field.name!r} ({self.command!r})")
        return self

    def detach(self) -> None:
        for remove in self._removers:
            remove()
        self._removers.clear()
        if self.suggestions is not None and self.suggestions.is_open:
            self.suggestions.close()
        self.suggestions = None

    def select(self, row: Row) -> None:
        """Write the chosen row's value into the field, then focus it."""
        self.field.set_value(row.value)
        if self.field.document is not None:
            self.field.document.focus(self.field)

    def highlight(self, row: Row) -> None:
        """Preview a suggestion by writing its value while the list stays open."""
        self.field.set_value(row.value)

    def _field_input(self, event: FieldEvent) -> None:
        if self.suggestions is None:
            return
        if len(self.field.value) >= self.minimum_input_length:
            self.suggestions.search(self.field.value)
        elif self.suggestions.is_open:
            self.suggestions.close()
