"""
Suggestion drop-down for combobox and autocomplete fields.

Rows are fetched asynchronously from a SuggestionSource and handed to the
textual-autocomplete overlay, which renders them under the target Input.
"""

from __future__ import annotations

import asyncio
from typing import Any

from textual.widgets import Input
from textual_autocomplete import AutoComplete, DropdownItem, TargetState

from combofield.domain.exceptions import ResolverError
from combofield.domain.protocols import SuggestionSource
from combofield.domain.types import Row
from combofield.logger import get_logger

logger = get_logger("suggestions")


class ComboboxSuggestions(AutoComplete):
    """Overlay listing rows that match the text typed into a field.

    ``owner`` is the binder the list belongs to; it provides the command,
    page size, query parameters and minimum input length, and receives the
    chosen row through ``select(row)``.
    """

    def __init__(self, input_widget: Input, owner: Any, source: SuggestionSource):
        self.owner = owner
        self._source = source
        # Parallel to _items; labels need not be unique
        self._rows: list[Row] = []
        self._items: list[DropdownItem] = []
        self._show_all = False
        self._search_task: asyncio.Task | None = None

        super().__init__(
            target=input_widget,
            candidates=self._collect_candidates,
            prevent_default_enter=True,
        )

    # SuggestionList protocol

    @property
    def is_open(self) -> bool:
        return bool(self.display)

    def search(self, term: str) -> None:
        self._show_all = False
        self._fetch(term)

    def show_all(self) -> None:
        self._show_all = True
        self._fetch("")

    def close(self) -> None:
        self._show_all = False
        self.action_hide()

    # Fetching

    def _fetch(self, term: str) -> None:
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = asyncio.create_task(self._load(term))

    async def _load(self, term: str) -> None:
        try:
            rows = await self._source.search(
                self.owner.command,
                term,
                limit=self.owner.page_size,
                params=self.owner.query_params,
            )
        except ResolverError as e:
            logger.warning(f"Suggestion search for {term!r} failed: {e}")
            return

        self._rows = list(rows)
        self._items = [DropdownItem(main=row.label) for row in rows]
        logger.debug(f"Loaded {len(self._items)} suggestion(s) for {term!r}")

        if self.is_mounted:
            self._align_and_rebuild()
            if self._items and (self._show_all or self.target.has_focus):
                self.action_show()
            else:
                self.action_hide()

    def _collect_candidates(self, state: TargetState) -> list[DropdownItem]:
        return list(self._items)

    # AutoComplete hooks

    def get_search_string(self, target_state: TargetState) -> str:
        if self._show_all:
            return ""
        return target_state.text

    def get_matches(
        self,
        target_state: TargetState,
        candidates: list[DropdownItem],
        search_string: str,
    ) -> list[DropdownItem]:
        # The source already filtered the rows
        return candidates

    def should_show_dropdown(self, search_string: str) -> bool:
        if not self._items or not self.target.has_focus:
            return self._show_all and bool(self._items)
        return self._show_all or len(self.target.value) >= self.owner.minimum_input_length

    def chosen_row(self, value: str) -> Row | None:
        """The row behind the highlighted option, or the first row labelled ``value``."""
        index = self.option_list.highlighted if self.is_mounted else None
        if index is not None and 0 <= index < len(self._rows) and self._rows[index].label == value:
            return self._rows[index]
        return next((row for row in self._rows if row.label == value), None)

    def apply_completion(self, value: str, state: TargetState) -> None:
        row = self.chosen_row(value)
        if row is None:
            logger.debug(f"Ignoring completion {value!r} with no matching row")
            return
        self._show_all = False
        self.owner.select(row)

    def _align_and_rebuild(self) -> None:
        self._align_to_target()
        self._target_state = self._get_target_state()
        search_string = self.get_search_string(self._target_state)
        self._rebuild_options(self._target_state, search_string)
