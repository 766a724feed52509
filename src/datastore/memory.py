"""In-memory data store.

Backs local development and the test suite. Rows are plain dicts held per
table; ``id`` and ``created_at`` are generated on insert when absent, and
tables may declare extra column defaults (for example a human-readable
ticket number). Many-to-one relations can be embedded into selected rows the
same way the PostgREST backend does.
"""

import re
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from shared.config import load_yaml_config
from shared.logging import get_logger
from datastore.base import DataStore, Embed, Filter, Query
from datastore.errors import DataStoreError

logger = get_logger(__name__)

# Called with the table's current rows; returns the column value for a new row.
ColumnDefault = Callable[[list[dict[str, Any]]], Any]

# relation name -> (foreign key column on this table, key column on the relation)
Relations = dict[str, tuple[str, str]]


def _normalize(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _normalize_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: _normalize(value) for key, value in row.items()}


def _equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    return left == right or str(left) == str(right)


def _comparable(left: Any, right: Any) -> tuple[Any, Any]:
    numeric = (int, float)
    if isinstance(left, numeric) and isinstance(right, numeric):
        return left, right
    return str(left), str(right)


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _matches(row: dict[str, Any], condition: Filter) -> bool:
    value = row.get(condition.column)

    if condition.op == "eq":
        return _equals(value, condition.value)
    if condition.op == "in":
        return any(_equals(value, candidate) for candidate in condition.value)
    if value is None:
        return False
    if condition.op == "ilike":
        return bool(_like_to_regex(str(condition.value)).match(str(value)))

    left, right = _comparable(value, condition.value)
    if condition.op == "gte":
        return left >= right
    if condition.op == "lte":
        return left <= right
    if condition.op == "lt":
        return left < right

    raise DataStoreError(f"Unsupported filter operator: {condition.op}")


class InMemoryDataStore(DataStore):
    """
    Dict-backed data store.

    Mutations complete without yielding to the event loop, so each single
    operation is atomic; sequences of operations are not.
    """

    def __init__(
        self,
        tables: Optional[dict[str, list[dict[str, Any]]]] = None,
        relations: Optional[dict[str, Relations]] = None,
        defaults: Optional[dict[str, dict[str, ColumnDefault]]] = None
    ) -> None:
        """
        Initialize the store.

        Args:
            tables: Initial rows per table
            relations: Embeddable relations per table
            defaults: Column default factories per table
        """
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: [_normalize_row(row) for row in rows]
            for name, rows in (tables or {}).items()
        }
        self._relations = relations or {}
        self._defaults = defaults or {}

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs: Any) -> "InMemoryDataStore":
        """Create a store seeded from a YAML mapping of table name to rows."""
        data = load_yaml_config(path)
        tables = {name: list(rows or []) for name, rows in data.items()}
        logger.info(
            "In-memory data store seeded",
            path=str(path),
            tables={name: len(rows) for name, rows in tables.items()}
        )
        return cls(tables=tables, **kwargs)

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Snapshot of a table's rows."""
        return [dict(row) for row in self._tables.get(table, [])]

    def _table(self, table: str) -> list[dict[str, Any]]:
        return self._tables.setdefault(table, [])

    def _filtered(self, query: Query) -> list[dict[str, Any]]:
        return [
            row for row in self._table(query.table)
            if all(_matches(row, condition) for condition in query.filters)
        ]

    def _embed(self, table: str, row: dict[str, Any], embed: Embed) -> Optional[dict[str, Any]]:
        relation = self._relations.get(table, {}).get(embed.relation)
        if relation is None:
            raise DataStoreError(
                f"Could not find a relationship between '{table}' and '{embed.relation}'"
            )
        foreign_key, key = relation
        target = row.get(foreign_key)
        if target is None:
            return None
        for related in self._table(embed.relation):
            if _equals(related.get(key), target):
                if not embed.columns or "*" in embed.columns:
                    return dict(related)
                return {column: related.get(column) for column in embed.columns}
        return None

    def _project(self, table: str, row: dict[str, Any], columns: str) -> dict[str, Any]:
        shape = Query(table, columns)
        base = shape.base_columns
        if not base or "*" in base:
            projected = dict(row)
        else:
            projected = {column: row.get(column) for column in base}
        for embed in shape.embeds:
            projected[embed.relation] = self._embed(table, row, embed)
        return projected

    async def select(self, query: Query) -> list[dict[str, Any]]:
        rows = self._filtered(query)

        if query.order_by:
            column = query.order_by
            try:
                rows = sorted(
                    rows,
                    key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else ""),
                    reverse=query.descending,
                )
            except TypeError as e:
                raise DataStoreError(f"Cannot order '{query.table}' by '{column}': {e}")

        if query.max_rows is not None:
            rows = rows[: max(0, int(query.max_rows))]

        return [self._project(query.table, row, query.columns) for row in rows]

    async def select_one(self, query: Query) -> Optional[dict[str, Any]]:
        rows = await self.select(query)
        if len(rows) > 1:
            raise DataStoreError(
                "JSON object requested, multiple (or no) rows returned",
                code="PGRST116",
                details=f"Results contain {len(rows)} rows"
            )
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        row: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        rows = self._table(table)
        stored = _normalize_row(row)

        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        for column, factory in self._defaults.get(table, {}).items():
            if stored.get(column) is None:
                stored[column] = factory(rows)

        rows.append(stored)
        logger.debug("Row inserted", table=table, id=stored["id"])
        return self._project(table, stored, columns)

    async def update(
        self,
        table: str,
        column: str,
        value: Any,
        values: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        matches = self._filtered(Query(table).eq(column, value))
        if len(matches) != 1:
            raise DataStoreError(
                "JSON object requested, multiple (or no) rows returned",
                code="PGRST116",
                details=f"Results contain {len(matches)} rows"
            )

        row = matches[0]
        row.update(_normalize_row(values))
        return self._project(table, row, columns)

    async def delete(self, table: str, column: str, value: Any) -> int:
        rows = self._table(table)
        kept = [row for row in rows if not _equals(row.get(column), value)]
        removed = len(rows) - len(kept)
        self._tables[table] = kept
        return removed
