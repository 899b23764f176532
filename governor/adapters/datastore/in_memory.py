"""Dict-backed data store for local development and tests."""

from __future__ import annotations

import copy
import itertools
from typing import Any, Mapping

from governor.adapters.datastore.base import AbstractDataStore


class InMemoryDataStore(AbstractDataStore):
    """Keeps tables as lists of row dicts. Rows get an integer ``id`` on insert."""

    def __init__(self, tables: Mapping[str, list[dict[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self._ids = itertools.count(1)

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> Any:
        rows = [
            row
            for row in self._tables.get(table, [])
            if all(str(row.get(col)) == str(val) for col, val in (filters or {}).items())
        ]
        if limit is not None:
            rows = rows[:limit]
        projected = [self._project(row, columns) for row in rows]
        if single:
            return projected[0] if projected else None
        return projected

    async def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        stored = dict(row)
        stored.setdefault("id", next(self._ids))
        self._tables.setdefault(table, []).append(stored)
        return copy.deepcopy(stored)

    @staticmethod
    def _project(row: dict[str, Any], columns: str) -> dict[str, Any]:
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        if not wanted or "*" in wanted:
            return copy.deepcopy(row)
        return {c: copy.deepcopy(row.get(c)) for c in wanted}
