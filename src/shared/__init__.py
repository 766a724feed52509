"""Shared models, configuration, logging and errors for the CRM MCP server."""

from shared.models import (
    AgentIdentity,
    AuditEntry,
    AuditResult,
    JsonRpcRequest,
    JsonRpcResponse,
    SessionState,
    ToolContext,
    ToolDefinition,
    ToolResult,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "AgentIdentity",
    "AuditEntry",
    "AuditResult",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "SessionState",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
