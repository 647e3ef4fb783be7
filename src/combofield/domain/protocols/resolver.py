"""Row resolver and suggestion source protocols."""

from typing import Mapping, Protocol, runtime_checkable

from combofield.domain.types import Row

__all__ = ["RowResolver", "SuggestionSource"]


@runtime_checkable
class RowResolver(Protocol):
    """Protocol for remote row lookups by identifier.

    Implementations must tolerate any number of concurrent outstanding calls.
    No ordering contract is required: binders discard stale responses
    themselves.

    Example implementations:
    - InMemoryRowResolver: dict-backed tables for tests and demos
    - HttpRowResolver: REST lookup against an autocomplete endpoint
    """

    async def resolve_by_id(
        self,
        command: str,
        column: str,
        value: str,
        is_string: bool,
        params: Mapping[str, str] | None = None,
    ) -> Row | None:
        """Look up at most one row whose ``column`` equals ``value``.

        Args:
            command: Lookup command naming the searched table
            column: Identifier column to match against
            value: Identifier value (textual form)
            is_string: Whether the column holds strings (otherwise integers)
            params: Extra query parameters for the lookup

        Returns:
            The matching row, or None when nothing matched

        Raises:
            ResolverError: If the outcome is unknown (transport failure, bad response)
        """
        ...


@runtime_checkable
class SuggestionSource(Protocol):
    """Protocol for free-text row searches feeding a suggestion list."""

    async def search(
        self,
        command: str,
        term: str,
        *,
        limit: int,
        params: Mapping[str, str] | None = None,
    ) -> list[Row]:
        """Return up to ``limit`` rows whose label matches ``term``.

        An empty term returns the first page of rows.
        """
        ...
