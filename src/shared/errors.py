"""Error types for the MCP protocol layer.

Every error raised while handling a JSON-RPC message is an ``McpError``
(or is converted into one). All of them travel on the wire with the
generic internal-error code; only transport-level parse failures use
their own code. Callers distinguish cases by the error message.
"""

from typing import Any, Optional

PARSE_ERROR = -32700
INTERNAL_ERROR = -32603


class McpError(Exception):
    """Base error for everything surfaced through a JSON-RPC ``error``."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    @classmethod
    def from_exception(cls, exc: BaseException, data: Any = None) -> "McpError":
        """Wrap an arbitrary exception, keeping McpError instances as-is."""
        if isinstance(exc, McpError):
            if data is not None and exc.data is None:
                exc.data = data
            return exc
        return cls(str(exc) or "Internal error", data=data)


class ParseError(McpError):
    """The request body could not be read as a JSON-RPC message."""

    code = PARSE_ERROR

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__("Parse error", data=detail)


class MethodNotFoundError(McpError):
    def __init__(self, method: Optional[str]) -> None:
        self.method = method
        super().__init__(f"Unknown method: {method}")


class InvalidParamsError(McpError):
    """Request params are missing or have the wrong shape."""


class ResourceNotFoundError(McpError):
    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Unknown resource: {uri}")


class PromptNotFoundError(McpError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown prompt: {name}")


class ToolNotFoundError(McpError):
    def __init__(self, name: Optional[str]) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ToolInputError(McpError):
    """Tool arguments failed schema validation or a tool precondition."""


class AuthorizationError(McpError):
    """The calling agent could not be identified or is not allowed."""


class AgentNotFoundError(AuthorizationError):
    pass


class PermissionDeniedError(AuthorizationError):
    def __init__(self, message: str, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)
