"""Shared fixtures and fakes for combofield tests."""

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pytest

from combofield.application import ComboboxRegistry
from combofield.domain.document import FormDocument
from combofield.domain.exceptions import ResolverError
from combofield.domain.fields import FormField
from combofield.domain.types import Row
from combofield.infrastructure.resolvers import InMemoryRowResolver

TABLES: dict[str, list[dict[str, Any]]] = {
    "companies": [
        {"id": 42, "code": "ACME", "label": "Acme Corp"},
        {"id": 7, "code": "GLOBEX", "label": "Globex Corporation"},
        {"id": 13, "code": "INITECH", "label": "Initech"},
    ],
    "countries": [
        {"id": "ES", "label": "Spain"},
        {"id": "FR", "label": "France"},
    ],
}

_UNSET = object()


@dataclass
class PendingLookup:
    command: str
    column: str
    value: str
    future: asyncio.Future


class ScriptedResolver:
    """Resolver whose lookups stay pending until the test releases them.

    Rows are keyed by ``(column, value)``; releasing a lookup answers it with
    the matching row (or None) unless an explicit row is given.
    """

    def __init__(self, rows: Optional[dict[tuple[str, str], Row]] = None):
        self.rows = rows or {}
        self.pending: list[PendingLookup] = []
        self.calls: list[tuple[str, str, str, Optional[Mapping[str, str]]]] = []
        self.searches: list[str] = []

    async def resolve_by_id(self, command, column, value, is_string, params=None):
        self.calls.append((command, column, value, params))
        lookup = PendingLookup(command, column, value, asyncio.get_running_loop().create_future())
        self.pending.append(lookup)
        return await lookup.future

    async def search(self, command, term, *, limit, params=None):
        self.searches.append(term)
        needle = term.lower()
        return [row for row in self.rows.values() if needle in row.label.lower()][:limit]

    def release(self, index: int = 0, row: Any = _UNSET) -> PendingLookup:
        lookup = self.pending.pop(index)
        if row is _UNSET:
            row = self.rows.get((lookup.column, lookup.value))
        lookup.future.set_result(row)
        return lookup

    def fail(self, index: int = 0, error: Optional[Exception] = None) -> PendingLookup:
        lookup = self.pending.pop(index)
        lookup.future.set_exception(error or ResolverError("backend unavailable", command=lookup.command))
        return lookup


class FakeSuggestions:
    """Records what a binder asks of its suggestion list."""

    def __init__(self, owner: Any = None):
        self.owner = owner
        self.is_open = False
        self.terms: list[str] = []
        self.show_all_calls = 0
        self.close_calls = 0

    def search(self, term: str) -> None:
        self.terms.append(term)
        self.is_open = True

    def show_all(self) -> None:
        self.show_all_calls += 1
        self.is_open = True

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and resolution tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def document():
    return FormDocument()


@pytest.fixture
def company_field(document):
    field = FormField(name="company_id", value="42")
    document.add(field)
    return field


@pytest.fixture
def memory_resolver():
    return InMemoryRowResolver(TABLES)


@pytest.fixture
def registry(memory_resolver):
    return ComboboxRegistry(resolver=memory_resolver)


@pytest.fixture
def scripted():
    return ScriptedResolver(
        {
            ("id", "42"): Row(value="42", label="Acme Corp"),
            ("id", "7"): Row(value="7", label="Globex Corporation"),
            ("id", "13"): Row(value="13", label="Initech"),
            ("code", "ACME"): Row(value="42", label="Acme Corp"),
            ("code", "GLOBEX"): Row(value="7", label="Globex Corporation"),
        }
    )


@pytest.fixture
def scripted_registry(scripted):
    return ComboboxRegistry(resolver=scripted, suggestions_factory=FakeSuggestions)


COMPANY_OPTIONS = {"autocompleteCommand": "companies"}
COMPANY_ALT_OPTIONS = {"autocompleteCommand": "companies", "altIdColumn": "code", "altIdIsString": True}
