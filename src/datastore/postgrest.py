"""PostgREST (Supabase REST) data store.

Translates ``Query`` objects into PostgREST URL filters and talks to the
``/rest/v1`` endpoint with the service-role key. Every non-2xx response or
transport failure becomes a ``DataStoreError``.
"""

from typing import Any, Optional

import httpx

from shared.logging import get_logger
from datastore.base import DataStore, Filter, Query
from datastore.errors import DataStoreError

logger = get_logger(__name__)

_RESERVED = set(',()".:')


def _literal(value: Any) -> str:
    """Render a filter value the way PostgREST expects it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _list_item(value: Any) -> str:
    text = _literal(value)
    if any(char in _RESERVED for char in text) or text != text.strip():
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_filter(condition: Filter) -> tuple[str, str]:
    """
    Encode one filter as a query-string pair.

    Args:
        condition: Column predicate

    Returns:
        Tuple of (column, "op.value")
    """
    if condition.op == "in":
        items = ",".join(_list_item(v) for v in condition.value)
        return condition.column, f"in.({items})"
    if condition.op == "eq" and condition.value is None:
        return condition.column, "is.null"
    return condition.column, f"{condition.op}.{_literal(condition.value)}"


def encode_query(query: Query) -> list[tuple[str, str]]:
    """Encode a select query as PostgREST query-string parameters."""
    params: list[tuple[str, str]] = [("select", query.columns.replace(" ", ""))]
    params.extend(encode_filter(condition) for condition in query.filters)
    if query.order_by:
        direction = "desc" if query.descending else "asc"
        params.append(("order", f"{query.order_by}.{direction}"))
    if query.max_rows is not None:
        params.append(("limit", str(query.max_rows)))
    return params


class PostgrestDataStore(DataStore):
    """
    Data store backed by a PostgREST API.

    Provides the same semantics as the in-memory store over HTTP.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the store.

        Args:
            url: Project URL (``/rest/v1`` is appended)
            service_key: Service-role API key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = url.rstrip("/") + "/rest/v1"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]],
        json: Any = None,
        prefer: Optional[str] = None
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Data store request failed", method=method, table=table, error=str(e))
            raise DataStoreError(f"Data store request failed: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text}
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "Data store returned an error",
                method=method,
                table=table,
                status_code=response.status_code,
                error=message
            )
            raise DataStoreError(message, code=body.get("code"), details=body.get("details"))

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    @staticmethod
    def _exactly_one(rows: list[dict[str, Any]]) -> dict[str, Any]:
        if len(rows) != 1:
            raise DataStoreError(
                "JSON object requested, multiple (or no) rows returned",
                code="PGRST116",
                details=f"Results contain {len(rows)} rows"
            )
        return rows[0]

    async def select(self, query: Query) -> list[dict[str, Any]]:
        return await self._request("GET", query.table, encode_query(query))

    async def select_one(self, query: Query) -> Optional[dict[str, Any]]:
        rows = await self.select(query)
        if not rows:
            return None
        return self._exactly_one(rows)

    async def insert(
        self,
        table: str,
        row: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        rows = await self._request(
            "POST",
            table,
            [("select", columns.replace(" ", ""))],
            json=row,
            prefer="return=representation",
        )
        return self._exactly_one(rows)

    async def update(
        self,
        table: str,
        column: str,
        value: Any,
        values: dict[str, Any],
        columns: str = "*"
    ) -> dict[str, Any]:
        params = [("select", columns.replace(" ", "")), encode_filter(Filter(column, "eq", value))]
        rows = await self._request(
            "PATCH", table, params, json=values, prefer="return=representation"
        )
        return self._exactly_one(rows)

    async def delete(self, table: str, column: str, value: Any) -> int:
        params = [("select", column), encode_filter(Filter(column, "eq", value))]
        rows = await self._request("DELETE", table, params, prefer="return=representation")
        return len(rows)

    async def close(self) -> None:
        await self._client.aclose()
