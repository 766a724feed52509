"""Data store interface used by the MCP server.

The server never talks to a database directly. It builds ``Query`` objects
and hands them to a ``DataStore`` backend, which either returns rows or
raises ``DataStoreError``.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

_EMBED_PATTERN = re.compile(r"(\w+)\s*\(([^)]*)\)")


@dataclass(frozen=True)
class Filter:
    """A single column predicate."""
    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class Embed:
    """A related table embedded into each selected row."""
    relation: str
    columns: tuple[str, ...]


@dataclass
class Query:
    """
    Fluent select query against one table.

    Filters are combined with AND. The select string follows the PostgREST
    convention, e.g. ``"*, contacts_master(name, email, phone)"`` selects all
    columns plus an embedded related row.
    """
    table: str
    columns: str = "*"
    filters: list[Filter] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    max_rows: Optional[int] = None

    def _add(self, column: str, op: str, value: Any) -> "Query":
        self.filters.append(Filter(column, op, value))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._add(column, "eq", value)

    def in_(self, column: str, values: list[Any]) -> "Query":
        return self._add(column, "in", list(values))

    def ilike(self, column: str, pattern: str) -> "Query":
        """Case-insensitive match; ``%`` is the wildcard."""
        return self._add(column, "ilike", pattern)

    def gte(self, column: str, value: Any) -> "Query":
        return self._add(column, "gte", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._add(column, "lte", value)

    def lt(self, column: str, value: Any) -> "Query":
        return self._add(column, "lt", value)

    def order(self, column: str, descending: bool = False) -> "Query":
        self.order_by = column
        self.descending = descending
        return self

    def limit(self, count: int) -> "Query":
        self.max_rows = count
        return self

    @property
    def base_columns(self) -> list[str]:
        """Plain columns of the select string, without embeds."""
        plain = _EMBED_PATTERN.sub("", self.columns)
        return [c.strip() for c in plain.split(",") if c.strip()]

    @property
    def embeds(self) -> list[Embed]:
        return [
            Embed(match.group(1), tuple(c.strip() for c in match.group(2).split(",") if c.strip()))
            for match in _EMBED_PATTERN.finditer(self.columns)
        ]


class DataStore(ABC):
    """
    Narrow asynchronous access to the backing store.

    Implementations raise ``DataStoreError`` on any failure; they never
    return partial results.
    """

    @abstractmethod
    async def select(self, query: Query) -> list[dict[str, Any]]:
        """Return all rows matching the query."""

    @abstractmethod
    async def select_one(self, query: Query) -> Optional[dict[str, Any]]:
        """
        Return the single matching row, or None.

        Raises:
            DataStoreError: If more than one row matches
        """

    @abstractmethod
    async def insert(
        self,
        table: str,
        row: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        """Insert a row and return it as stored."""

    @abstractmethod
    async def update(
        self,
        table: str,
        column: str,
        value: Any,
        values: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        """
        Update the row where ``column == value`` and return it.

        Raises:
            DataStoreError: If no row, or more than one row, matches
        """

    @abstractmethod
    async def delete(self, table: str, column: str, value: Any) -> int:
        """Delete rows where ``column == value``; return how many were removed."""

    async def close(self) -> None:
        """Release backend resources."""
