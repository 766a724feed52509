"""Tests for the HTTP transport."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import audit_rows, tool_payload


@pytest.fixture
def app(settings, store):
    from mcp_server.main import create_app

    return create_app(settings, store)


@pytest.fixture
def client(app):
    return TestClient(app)


def post(client, payload, path="/mcp", session_id=None):
    headers = {"Content-Type": "application/json"}
    if session_id:
        headers["Mcp-Session-Id"] = session_id
    body = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)
    return client.post(path, content=body, headers=headers)


class TestTransport:
    """Tests for the FastAPI transport adapter."""

    def test_malformed_json_is_a_parse_error(self, client, app, store):
        response = post(client, "{not json")

        assert response.status_code == 400
        body = response.json()
        assert body["jsonrpc"] == "2.0"
        assert body["id"] is None
        assert body["error"]["code"] == -32700
        assert body["error"]["message"] == "Parse error"
        assert "result" not in body
        assert len(app.state.dispatcher.sessions) == 0
        assert audit_rows(store) == []

    @pytest.mark.parametrize("body", ["[1, 2]", '"ping"', '{"id": 1.5, "method": "ping"}'])
    def test_non_message_bodies_are_parse_errors(self, client, body):
        response = post(client, body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32700

    def test_new_session_id_is_issued(self, client):
        response = post(client, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        assert response.status_code == 200
        assert response.headers["Mcp-Session-Id"].startswith("mcp-session-")
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert len(response.json()["result"]["tools"]) == 5

    def test_session_id_is_echoed(self, client, app):
        response = post(
            client,
            {"jsonrpc": "2.0", "method": "initialize", "params": {"clientInfo": {"agentId": "A1"}}},
            session_id="mcp-session-abc",
        )

        assert response.headers["Mcp-Session-Id"] == "mcp-session-abc"
        assert response.json()["id"] == 1
        assert len(app.state.dispatcher.sessions) == 1

    def test_errors_use_http_200(self, client):
        response = post(client, {"jsonrpc": "2.0", "id": "x", "method": "nope"})

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "x"
        assert body["error"]["code"] == -32603
        assert body["error"]["message"] == "Unknown method: nope"
        assert "result" not in body

    def test_root_path_is_an_alias(self, client):
        response = post(client, {"jsonrpc": "2.0", "id": 2, "method": "ping"}, path="/")

        assert response.json() == {"jsonrpc": "2.0", "id": 2, "result": {}}

    def test_options_preflight(self, client):
        response = client.options("/mcp")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "Mcp-Session-Id" in response.headers["Access-Control-Allow-Headers"]

    def test_browser_preflight(self, client):
        response = client.options(
            "/mcp",
            headers={
                "Origin": "https://crm.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Mcp-Session-Id",
            },
        )

        assert response.status_code == 200
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    def test_health(self, client):
        post(client, {"jsonrpc": "2.0", "method": "ping"}, session_id="s1")

        response = client.get("/health")

        assert response.json() == {
            "status": "healthy",
            "version": "1.0.0",
            "tool_count": 5,
            "session_count": 1,
        }

    def test_round_trip_over_http(self, client, store):
        session = post(
            client, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"agentId": "A1"}}
        ).headers["Mcp-Session-Id"]

        created = post(
            client,
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {
                    "name": "create_support_ticket",
                    "arguments": {
                        "agent_id": "A1",
                        "phone_number": "+1555000001",
                        "contact_phone": "+1555000001",
                        "subject": "Password reset email missing",
                        "description": "No email arrives",
                    },
                },
            },
            session_id=session,
        )

        payload = tool_payload(created.json()["result"])
        assert payload["success"] is True
        assert payload["ticket"]["contact_id"] == "c1"
        rows = audit_rows(store, "create_support_ticket")
        assert len(rows) == 1
        assert rows[0]["result"] == "Success"
        assert rows[0]["user_context"] == "+1555000001"
