"""MCP Server - JSON-RPC dispatch, authorization, and auditing.

The MCP Server is the authoritative component for tool execution.
It tracks sessions, routes JSON-RPC methods, enforces per-agent tool
permissions, and audits every tool call.
"""

from mcp_server.registry import PromptRegistry, ResourceRegistry, ToolRegistry
from mcp_server.router import ToolRouter
from mcp_server.auth import PermissionResolver, authorize_tool_call
from mcp_server.audit import AuditLogger
from mcp_server.sessions import SessionRegistry
from mcp_server.dispatcher import McpDispatcher

__all__ = [
    "AuditLogger",
    "McpDispatcher",
    "PermissionResolver",
    "PromptRegistry",
    "ResourceRegistry",
    "SessionRegistry",
    "ToolRegistry",
    "ToolRouter",
    "authorize_tool_call",
]
