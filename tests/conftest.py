"""Shared fixtures for the test suite."""

import json
from typing import Any

import pytest

from datastore import InMemoryDataStore
from domains.support import SUPPORT_DEFAULTS, SUPPORT_RELATIONS
from shared.config import DataStoreSettings, MCPServerSettings, Settings

ALL_SUPPORT_TOOLS = [
    "get_support_tickets",
    "get_support_summary",
    "create_support_ticket",
    "update_support_ticket",
    "delete_support_ticket",
]


def seed_tables() -> dict[str, list[dict[str, Any]]]:
    """A fresh copy of the seed data used across tests."""
    return {
        "ai_agents": [
            {"id": "A1", "name": "Agent One"},
            {"id": "A2", "name": "Agent Two"},
            {"id": "A3", "name": "Agent Without Permissions"},
            {"id": "A4", "name": "Agent Disabled"},
        ],
        "ai_agent_permissions": [
            {
                "agent_id": "A1",
                "permissions": {"support-server": {"enabled": True, "tools": list(ALL_SUPPORT_TOOLS)}},
            },
            {
                "agent_id": "A2",
                "permissions": {"support-server": {"enabled": True, "tools": ["get_support_tickets"]}},
            },
            {
                "agent_id": "A4",
                "permissions": {"support-server": {"enabled": False, "tools": ["get_support_tickets"]}},
            },
        ],
        "ai_agent_logs": [],
        "contacts_master": [
            {"id": "c1", "name": "Alice", "email": "alice@example.com", "phone": "+1555000001"},
            {"id": "c2", "name": "Bob", "email": "bob@example.com", "phone": "+1555000002"},
        ],
        "support_tickets": [
            {
                "id": "t1", "ticket_id": "TKT-2024-001", "contact_id": "c1",
                "subject": "Login failure", "description": "Cannot log in",
                "status": "Open", "priority": "High", "category": "Technical",
                "assigned_to": "m1", "satisfaction": None,
                "created_at": "2024-06-10T09:00:00+00:00",
            },
            {
                "id": "t2", "ticket_id": "TKT-2024-002", "contact_id": "c2",
                "subject": "Refund request", "description": "Charged twice",
                "status": "Resolved", "priority": "Medium", "category": "Refund",
                "assigned_to": "m2", "satisfaction": 4,
                "created_at": "2024-06-11T10:00:00+00:00",
            },
            {
                "id": "t3", "ticket_id": "TKT-2024-003", "contact_id": "c1",
                "subject": "Feature idea", "description": "Dark mode please",
                "status": "In Progress", "priority": "Low", "category": "Feature Request",
                "assigned_to": "m1", "satisfaction": None,
                "created_at": "2024-06-12T11:00:00+00:00",
            },
            {
                "id": "t4", "ticket_id": "TKT-2024-004", "contact_id": "c2",
                "subject": "Outage", "description": "Site is down",
                "status": "Open", "priority": "Critical", "category": "Technical",
                "assigned_to": None, "satisfaction": None,
                "created_at": "2024-06-13T12:00:00+00:00",
            },
            {
                "id": "t5", "ticket_id": "TKT-2024-005", "contact_id": "c1",
                "subject": "Billing question", "description": "Which plan am I on?",
                "status": "Resolved", "priority": "Low", "category": "General",
                "assigned_to": "m2", "satisfaction": 5,
                "created_at": "2024-06-14T13:00:00+00:00",
            },
        ],
    }


def make_store(tables: dict[str, list[dict[str, Any]]] | None = None) -> InMemoryDataStore:
    return InMemoryDataStore(
        tables=seed_tables() if tables is None else tables,
        relations=SUPPORT_RELATIONS,
        defaults=SUPPORT_DEFAULTS,
    )


def audit_rows(store: InMemoryDataStore, action: str | None = None) -> list[dict[str, Any]]:
    rows = store.rows("ai_agent_logs")
    if action is not None:
        rows = [row for row in rows if row["action"] == action]
    return rows


def tool_payload(result: dict[str, Any]) -> dict[str, Any]:
    """Parse the JSON body out of a ``tools/call`` result."""
    return json.loads(result["content"][0]["text"])


@pytest.fixture
def store() -> InMemoryDataStore:
    return make_store()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        mcp_server=MCPServerSettings(),
        data_store=DataStoreSettings(backend="memory"),
    )


@pytest.fixture
def dispatcher(settings, store):
    from mcp_server.main import build_dispatcher

    return build_dispatcher(settings, store)
