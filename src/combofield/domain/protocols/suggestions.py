"""Suggestion list protocol."""

from typing import Protocol

__all__ = ["SuggestionList"]


class SuggestionList(Protocol):
    """An opaque drop-down of matching rows attached to a proxy field.

    The list reports a chosen row back through the select callback it was
    created with; binders only open, close and query it.
    """

    @property
    def is_open(self) -> bool:
        """Whether the drop-down is currently visible."""
        ...

    def search(self, term: str) -> None:
        """Search for ``term`` and show the matches."""
        ...

    def show_all(self) -> None:
        """Show the first page of rows regardless of the minimum input length."""
        ...

    def close(self) -> None:
        """Hide the drop-down."""
        ...
