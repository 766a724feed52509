"""Core data models for the CRM MCP server.

This module defines the shared data structures used across the server:
the JSON-RPC envelope, session state, tool/resource/prompt descriptors,
agent permission records and audit entries.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RequestId = Union[str, int]

DEFAULT_REQUEST_ID = 1


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """An inbound JSON-RPC 2.0 message.

    Fields are deliberately lenient: a missing ``method`` is routed to the
    unknown-method error rather than rejected at parse time.
    """
    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    method: Optional[str] = None
    params: Optional[Any] = None

    @property
    def response_id(self) -> RequestId:
        """Identifier echoed back in the response."""
        return DEFAULT_REQUEST_ID if self.id is None else self.id


class JsonRpcErrorObj(BaseModel):
    """JSON-RPC 2.0 error object."""
    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcResponse(BaseModel):
    """
    JSON-RPC 2.0 response.

    Carries exactly one of ``result`` or ``error``.
    """
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[RequestId] = DEFAULT_REQUEST_ID
    result: Optional[Any] = None
    error: Optional[JsonRpcErrorObj] = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> "JsonRpcResponse":
        if (self.result is None) == (self.error is None):
            raise ValueError("response must carry exactly one of result or error")
        return self

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the transport, omitting the absent member."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump()
        else:
            payload["result"] = self.result
        return payload


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionState(BaseModel):
    """Per-connection MCP session state."""
    session_id: str
    initialized: bool = False
    agent_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_seen: datetime = Field(default_factory=datetime.utcnow)


# ---------------------------------------------------------------------------
# Catalog descriptors
# ---------------------------------------------------------------------------


class ExecutionType(str, Enum):
    """Type of tool execution - read operations vs write operations."""
    READ = "read"
    WRITE = "write"


class ToolDefinition(BaseModel):
    """
    Complete definition of an MCP tool.

    The ``name``, ``description`` and ``input_schema`` are a public contract
    consumed by the calling agent runtime to build arguments.
    """
    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="Description written for LLM usage")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for input validation"
    )

    # Audit and authorization metadata
    module: str = Field(default="General", description="Functional domain recorded in audit logs")
    execution_type: ExecutionType = Field(default=ExecutionType.READ)
    permission_phrase: str = Field(
        default="",
        description="What the tool lets an agent do, e.g. 'view support tickets'"
    )

    def as_mcp_dict(self) -> dict[str, Any]:
        """Return the ``tools/list`` representation."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    @property
    def denied_reason(self) -> str:
        return f"No permission to {self.permission_phrase or self.name}"

    @property
    def denied_message(self) -> str:
        return f"Agent does not have permission to {self.permission_phrase or self.name}"


class ResourceDefinition(BaseModel):
    """A readable data view listed by ``resources/list``."""
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    name: str
    description: str = ""
    mime_type: str = Field(default="application/json", alias="mimeType")

    def as_mcp_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class PromptArgument(BaseModel):
    name: str
    description: str = ""
    required: bool = False


class PromptDefinition(BaseModel):
    """A prompt template listed by ``prompts/list``."""
    name: str
    description: str = ""
    arguments: list[PromptArgument] = Field(default_factory=list)

    def as_mcp_dict(self) -> dict[str, Any]:
        return self.model_dump()


# ---------------------------------------------------------------------------
# Agents and authorization
# ---------------------------------------------------------------------------


class ServerPermission(BaseModel):
    """Permissions an agent holds on one server namespace."""
    model_config = ConfigDict(extra="allow")

    enabled: bool = False
    tools: list[str] = Field(default_factory=list)

    @field_validator("enabled", mode="before")
    @classmethod
    def _null_enabled(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("tools", mode="before")
    @classmethod
    def _tool_names(cls, value: Any) -> Any:
        # Only string entries can name a tool; anything else grants nothing.
        if not isinstance(value, list):
            return []
        return [tool for tool in value if isinstance(tool, str)]


class AgentIdentity(BaseModel):
    """An agent resolved from the data store, with its permission record."""
    agent_id: str
    name: str
    permissions: dict[str, ServerPermission] = Field(default_factory=dict)

    def namespace(self, name: str) -> ServerPermission:
        """Permissions for a namespace; a missing namespace grants nothing."""
        return self.permissions.get(name) or ServerPermission()


class ToolContext(BaseModel):
    """
    Context for a single tool invocation.

    Carries the authorized agent, the optional end-user reference used for
    audit traceability, and the session the call arrived on.
    """
    agent_id: str
    agent_name: str
    user_context: Optional[str] = None
    session_id: Optional[str] = None


class ToolResult(BaseModel):
    """
    Outcome of a successful tool execution.

    ``data`` is merged into the ``{"success": true, ...}`` response body;
    ``audit_details`` is what gets written to the audit log.
    """
    data: dict[str, Any] = Field(default_factory=dict)
    audit_details: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditResult(str, Enum):
    """Outcome of a tool-call attempt as recorded in the audit log."""
    SUCCESS = "Success"
    DENIED = "Denied"
    ERROR = "Error"


class AuditEntry(BaseModel):
    """
    Audit log entry for one tool-call attempt.

    Append-only: entries are never updated or deleted by the server.
    """
    agent_id: str
    agent_name: str
    module: str
    action: str
    result: AuditResult
    user_context: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_row(self) -> dict[str, Any]:
        """Row shape for the ``ai_agent_logs`` table."""
        return self.model_dump(mode="json", exclude={"timestamp"})
