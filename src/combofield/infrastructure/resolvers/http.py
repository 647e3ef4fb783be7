"""HTTP row resolver.

Talks to an autocomplete endpoint with plain GET requests:

- lookup: ``?command=<cmd>&idCol=<column>&id=<value>&idIsString=<0|1>``,
  answered with a row object, a list holding at most one row, or ``null``
- search: ``?command=<cmd>&term=<text>&limit=<n>``, answered with a list of rows

Rows are JSON objects with ``value`` and ``label`` keys. Extra query
parameters configured per binding are added to every request.
"""

import asyncio
from typing import Any, Mapping

import requests
from pydantic import ValidationError

from combofield.domain.exceptions import ResolverError
from combofield.domain.types import Row
from combofield.logger import get_logger

logger = get_logger("resolvers.http")


class HttpRowResolver:
    """Row resolver over HTTP using requests.

    Requests run in a worker thread so the event loop never blocks; any
    number of lookups may be outstanding at once.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url
        self.timeout = timeout
        self._session = session

    async def resolve_by_id(
        self,
        command: str,
        column: str,
        value: str,
        is_string: bool,
        params: Mapping[str, str] | None = None,
    ) -> Row | None:
        query = {
            "command": command,
            **(params or {}),
            "idCol": column,
            "id": value,
            "idIsString": "1" if is_string else "0",
        }
        payload = await asyncio.to_thread(self._get_json, query)
        if isinstance(payload, list):
            if len(payload) > 1:
                logger.warning(f"Lookup of {column}={value!r} in {command!r} matched {len(payload)} rows")
            payload = payload[0] if payload else None
        if payload is None:
            return None
        return self._parse_row(payload, command)

    async def search(
        self,
        command: str,
        term: str,
        *,
        limit: int,
        params: Mapping[str, str] | None = None,
    ) -> list[Row]:
        query = {"command": command, **(params or {}), "term": term, "limit": str(limit)}
        payload = await asyncio.to_thread(self._get_json, query)
        if not isinstance(payload, list):
            raise ResolverError(f"Search in {command!r} did not return a list", command=command)
        return [self._parse_row(item, command) for item in payload[:limit]]

    def _get_json(self, query: dict[str, str]) -> Any:
        command = query.get("command")
        getter = self._session.get if self._session is not None else requests.get
        try:
            response = getter(self.base_url, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResolverError(f"Lookup request failed: {e}", command=command) from e

        if response.status_code != 200:
            raise ResolverError(f"Lookup failed with HTTP {response.status_code}", command=command)

        try:
            return response.json()
        except ValueError as e:
            raise ResolverError(f"Lookup returned invalid JSON: {e}", command=command) from e

    @staticmethod
    def _parse_row(payload: Any, command: str) -> Row:
        try:
            return Row.model_validate(payload)
        except ValidationError as e:
            raise ResolverError(f"Malformed row from {command!r}: {e}", command=command) from e
