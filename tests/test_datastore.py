"""Tests for the data store backends."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from datastore import DataStoreError, Filter, InMemoryDataStore, PostgrestDataStore, Query, create_data_store
from datastore.postgrest import encode_filter, encode_query
from shared.config import DataStoreSettings

from conftest import make_store


class TestQuery:
    """Tests for the query builder."""

    def test_select_string_parsing(self):
        query = Query("support_tickets", "*, contacts_master(name, email, phone)")

        assert query.base_columns == ["*"]
        assert len(query.embeds) == 1
        assert query.embeds[0].relation == "contacts_master"
        assert query.embeds[0].columns == ("name", "email", "phone")

    def test_fluent_filters(self):
        query = Query("t").eq("a", 1).in_("b", ["x", "y"]).ilike("c", "%z%").order("d", descending=True).limit(3)

        assert [f.op for f in query.filters] == ["eq", "in", "ilike"]
        assert query.order_by == "d"
        assert query.descending
        assert query.max_rows == 3


class TestInMemoryDataStore:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_projection(self):
        store = make_store()

        rows = await store.select(Query("ai_agents", "id, name").eq("id", "A1"))

        assert rows == [{"id": "A1", "name": "Agent One"}]

    @pytest.mark.asyncio
    async def test_select_one(self):
        store = make_store()

        assert await store.select_one(Query("ai_agents").eq("id", "missing")) is None
        with pytest.raises(DataStoreError) as excinfo:
            await store.select_one(Query("support_tickets").eq("status", "Open"))
        assert excinfo.value.code == "PGRST116"

    @pytest.mark.asyncio
    async def test_range_filters_skip_null(self):
        store = make_store()

        rated = await store.select(Query("support_tickets").gte("satisfaction", 4))
        low = await store.select(Query("support_tickets").lte("satisfaction", 4))

        assert {r["ticket_id"] for r in rated} == {"TKT-2024-002", "TKT-2024-005"}
        assert [r["ticket_id"] for r in low] == ["TKT-2024-002"]

    @pytest.mark.asyncio
    async def test_eq_null(self):
        store = make_store()

        rows = await store.select(Query("support_tickets").eq("assigned_to", None))

        assert [r["ticket_id"] for r in rows] == ["TKT-2024-004"]

    @pytest.mark.asyncio
    async def test_unknown_relation(self):
        store = make_store()

        with pytest.raises(DataStoreError, match="relationship"):
            await store.select(Query("ai_agents", "*, teams(name)"))

    @pytest.mark.asyncio
    async def test_insert_generates_keys(self):
        store = InMemoryDataStore()

        row = await store.insert("contacts_master", {"phone": "+1", "joined": datetime(2024, 1, 2, 3, 4)})

        assert row["id"]
        assert row["created_at"]
        assert row["joined"] == "2024-01-02T03:04:00+00:00"

    @pytest.mark.asyncio
    async def test_insert_projection(self):
        store = InMemoryDataStore()

        row = await store.insert("contacts_master", {"phone": "+1"}, columns="id")

        assert list(row) == ["id"]

    @pytest.mark.asyncio
    async def test_update_requires_exactly_one_row(self):
        store = make_store()

        updated = await store.update("support_tickets", "ticket_id", "TKT-2024-001", {"status": "Closed"})
        assert updated["status"] == "Closed"

        with pytest.raises(DataStoreError):
            await store.update("support_tickets", "status", "Resolved", {"status": "Closed"})

    @pytest.mark.asyncio
    async def test_delete_counts(self):
        store = make_store()

        assert await store.delete("support_tickets", "status", "Resolved") == 2
        assert await store.delete("support_tickets", "status", "Resolved") == 0

    @pytest.mark.asyncio
    async def test_from_yaml(self, tmp_path):
        seed = tmp_path / "seed.yaml"
        seed.write_text("ai_agents:\n  - id: X\n    name: Seeded\nai_agent_logs: []\n")

        store = InMemoryDataStore.from_yaml(seed)

        assert store.rows("ai_agents") == [{"id": "X", "name": "Seeded"}]
        assert store.rows("ai_agent_logs") == []


class TestPostgrestEncoding:
    """Tests for PostgREST query-string encoding."""

    def test_encode_filter(self):
        assert encode_filter(Filter("status", "eq", "Open")) == ("status", "eq.Open")
        assert encode_filter(Filter("assigned_to", "eq", None)) == ("assigned_to", "is.null")
        assert encode_filter(Filter("priority", "in", ["Critical", "High"])) == ("priority", "in.(Critical,High)")
        assert encode_filter(Filter("subject", "in", ["a,b"])) == ("subject", 'in.("a,b")')
        assert encode_filter(Filter("category", "ilike", "%tech%")) == ("category", "ilike.%tech%")

    def test_encode_query(self):
        query = (
            Query("support_tickets", "*, contacts_master(name, email, phone)")
            .eq("status", "Open")
            .order("created_at", descending=True)
            .limit(5)
        )

        assert encode_query(query) == [
            ("select", "*,contacts_master(name,email,phone)"),
            ("status", "eq.Open"),
            ("order", "created_at.desc"),
            ("limit", "5"),
        ]


class TestPostgrestDataStore:
    """Tests for the PostgREST backend over a mock transport."""

    def make_store(self, handler):
        return PostgrestDataStore(
            url="https://project.supabase.co/",
            service_key="service-key",
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_select(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["apikey"] = request.headers["apikey"]
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[{"id": "A1", "name": "Agent One"}])

        store = self.make_store(handler)
        rows = await store.select(Query("ai_agents", "id, name").eq("id", "A1"))
        await store.close()

        assert rows == [{"id": "A1", "name": "Agent One"}]
        assert seen["path"] == "/rest/v1/ai_agents"
        assert seen["params"] == {"select": "id,name", "id": "eq.A1"}
        assert seen["apikey"] == "service-key"
        assert seen["auth"] == "Bearer service-key"

    @pytest.mark.asyncio
    async def test_error_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "column does not exist", "code": "42703"})

        store = self.make_store(handler)
        with pytest.raises(DataStoreError, match="column does not exist") as excinfo:
            await store.select(Query("support_tickets").eq("nope", 1))

        assert excinfo.value.code == "42703"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = self.make_store(handler)
        with pytest.raises(DataStoreError, match="request failed"):
            await store.select(Query("ai_agents"))

    @pytest.mark.asyncio
    async def test_insert_returns_representation(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.headers["Prefer"] == "return=representation"
            body = json.loads(request.content)
            return httpx.Response(201, json=[{"id": "new", **body}])

        store = self.make_store(handler)
        row = await store.insert("contacts_master", {"phone": "+1"})

        assert row == {"id": "new", "phone": "+1"}

    @pytest.mark.asyncio
    async def test_update_with_no_match(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PATCH"
            assert request.url.params["ticket_id"] == "eq.TKT-1"
            return httpx.Response(200, json=[])

        store = self.make_store(handler)
        with pytest.raises(DataStoreError) as excinfo:
            await store.update("support_tickets", "ticket_id", "TKT-1", {"status": "Closed"})

        assert excinfo.value.code == "PGRST116"

    @pytest.mark.asyncio
    async def test_delete_counts_rows(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(200, json=[{"ticket_id": "TKT-1"}])

        store = self.make_store(handler)

        assert await store.delete("support_tickets", "ticket_id", "TKT-1") == 1


class TestCreateDataStore:
    """Tests for backend selection."""

    def test_postgrest_requires_credentials(self):
        settings = DataStoreSettings(backend="postgrest", url=None, service_key=None)

        with pytest.raises(ValueError, match="requires url and service_key"):
            create_data_store(settings)

    def test_postgrest_backend(self):
        settings = DataStoreSettings(backend="postgrest", url="https://x.supabase.co", service_key="k")

        store = create_data_store(settings)

        assert isinstance(store, PostgrestDataStore)
        assert store.base_url == "https://x.supabase.co/rest/v1"

    def test_memory_backend_with_seed(self, tmp_path):
        seed = tmp_path / "seed.yaml"
        seed.write_text("ai_agents:\n  - id: X\n    name: Seeded\n")

        store = create_data_store(DataStoreSettings(backend="memory", seed_path=str(seed)))

        assert isinstance(store, InMemoryDataStore)
        assert store.rows("ai_agents")[0]["name"] == "Seeded"
