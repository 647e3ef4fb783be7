"""In-memory row resolver.

Serves lookups and searches from plain Python tables. Used by tests and by
the demo application when no lookup endpoint is configured.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from combofield.domain.exceptions import ResolverError
from combofield.domain.types import Row
from combofield.logger import get_logger
from combofield.utils import parse_leading_int

logger = get_logger("resolvers.memory")


def _matches(cell: Any, value: str, is_string: bool) -> bool:
    if is_string:
        return str(cell) == value
    if isinstance(cell, bool):
        return False
    if isinstance(cell, int):
        return cell == parse_leading_int(value)
    return str(cell) == str(parse_leading_int(value))


class InMemoryRowResolver:
    """Row resolver backed by dictionaries.

    Each command names a table: a list of row dictionaries. ``value_column``
    is the primary identifier returned as ``Row.value`` and ``label_column``
    the text shown to the user.

    Example:
        >>> resolver = InMemoryRowResolver({"companies": [{"id": 42, "code": "ACME", "label": "Acme Corp"}]})
        >>> row = await resolver.resolve_by_id("companies", "code", "ACME", True)
        >>> row.label
        'Acme Corp'
    """

    def __init__(
        self,
        tables: Mapping[str, Sequence[Mapping[str, Any]]],
        *,
        value_column: str = "id",
        label_column: str = "label",
        delay: float = 0.0,
    ):
        self._tables = {command: [dict(row) for row in rows] for command, rows in tables.items()}
        self.value_column = value_column
        self.label_column = label_column
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []

    @classmethod
    def from_json_file(cls, path: str | Path, **kwargs: Any) -> "InMemoryRowResolver":
        """Load tables from a JSON object mapping command names to row lists."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                tables = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ResolverError(f"Could not load lookup tables from {path}: {e}") from e
        if not isinstance(tables, dict):
            raise ResolverError(f"Lookup tables in {path} must be a JSON object")
        logger.info(f"Loaded {len(tables)} lookup table(s) from {path}")
        return cls(tables, **kwargs)

    @property
    def commands(self) -> list[str]:
        return list(self._tables)

    def _table(self, command: str) -> list[dict[str, Any]]:
        rows = self._tables.get(command)
        if rows is None:
            raise ResolverError(f"Unknown lookup command {command!r}", command=command)
        return rows

    def _to_row(self, row: Mapping[str, Any]) -> Row:
        return Row(value=row[self.value_column], label=row[self.label_column])

    async def resolve_by_id(
        self,
        command: str,
        column: str,
        value: str,
        is_string: bool,
        params: Mapping[str, str] | None = None,
    ) -> Row | None:
        self.calls.append((command, column, value))
        if self.delay:
            await asyncio.sleep(self.delay)
        for row in self._table(command):
            if column in row and _matches(row[column], value, is_string):
                return self._to_row(row)
        return None

    async def search(
        self,
        command: str,
        term: str,
        *,
        limit: int,
        params: Mapping[str, str] | None = None,
    ) -> list[Row]:
        if self.delay:
            await asyncio.sleep(self.delay)
        needle = term.strip().lower()
        matches = [
            self._to_row(row)
            for row in self._table(command)
            if needle in str(row.get(self.label_column, "")).lower()
        ]
        return matches[:limit]
