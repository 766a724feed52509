"""MCP Dispatcher.

Turns one JSON-RPC message into one JSON-RPC response. Each method handler
runs inside ``_run``, which captures its outcome as ``Ok`` or ``Err``;
``_to_response`` is the only place a response object is built, so every
branch ends in exactly one of ``result`` or ``error``.
"""

import json
import traceback
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from shared.errors import (
    InvalidParamsError,
    McpError,
    MethodNotFoundError,
    PromptNotFoundError,
    ResourceNotFoundError,
)
from shared.logging import get_logger
from shared.models import JsonRpcErrorObj, JsonRpcRequest, JsonRpcResponse
from mcp_server.registry import PromptRegistry, ResourceRegistry, ToolRegistry
from mcp_server.router import ToolRouter
from mcp_server.sessions import SessionRegistry

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: McpError


Result = Union[Ok[Any], Err]

Handler = Callable[[dict[str, Any], str], Awaitable[Any]]


@dataclass(frozen=True)
class ServerInfo:
    """Metadata returned by ``initialize``."""
    name: str = "crm-support-mcp-server"
    version: str = "1.0.0"
    protocol_version: str = "2024-11-05"


class McpDispatcher:
    """
    Routes JSON-RPC methods to their handlers.

    Collaborators are injected so tests can build a dispatcher over an
    in-memory data store.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        tools: ToolRegistry,
        router: ToolRouter,
        resources: ResourceRegistry,
        prompts: PromptRegistry,
        server_info: Optional[ServerInfo] = None
    ) -> None:
        self.sessions = sessions
        self.tools = tools
        self.router = router
        self.resources = resources
        self.prompts = prompts
        self.server_info = server_info or ServerInfo()

        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
            "prompts/list": self._prompts_list,
            "prompts/get": self._prompts_get,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    async def dispatch(self, message: JsonRpcRequest, session_id: str) -> JsonRpcResponse:
        """
        Handle one JSON-RPC message.

        Args:
            message: Parsed request
            session_id: Transport session identifier

        Returns:
            Response carrying the request id and exactly one of result/error
        """
        await self.sessions.touch(session_id)
        outcome = await self._run(message, session_id)
        return self._to_response(message, outcome)

    async def _run(self, message: JsonRpcRequest, session_id: str) -> Result:
        try:
            handler = self._methods.get(message.method) if message.method else None
            if handler is None:
                raise MethodNotFoundError(message.method)

            params = message.params if message.params is not None else {}
            if not isinstance(params, dict):
                raise InvalidParamsError("params must be an object")

            return Ok(await handler(params, session_id))
        except Exception as e:
            logger.warning(
                "Request failed",
                rpc_method=message.method,
                error=str(e),
                error_type=type(e).__name__
            )
            return Err(McpError.from_exception(e, data=traceback.format_exc()))

    @staticmethod
    def _to_response(message: JsonRpcRequest, outcome: Result) -> JsonRpcResponse:
        if isinstance(outcome, Err):
            return JsonRpcResponse(
                id=message.response_id,
                error=JsonRpcErrorObj(
                    code=outcome.error.code,
                    message=outcome.error.message,
                    data=outcome.error.data,
                ),
            )
        return JsonRpcResponse(id=message.response_id, result=outcome.value)

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _initialize(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        client_info = params.get("clientInfo")
        agent_id = client_info.get("agentId") if isinstance(client_info, dict) else None
        if not agent_id:
            agent_id = params.get("agentId")

        await self.sessions.initialize(session_id, agent_id)

        return {
            "protocolVersion": self.server_info.protocol_version,
            "capabilities": {
                "tools": {},
                "resources": {},
                "prompts": {},
            },
            "serverInfo": {
                "name": self.server_info.name,
                "version": self.server_info.version,
            },
        }

    async def _ping(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        return {}

    async def _resources_list(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        return {"resources": self.resources.as_mcp_list()}

    async def _resources_read(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        uri = params.get("uri")
        if not uri:
            raise InvalidParamsError("URI is required")

        resource = self.resources.get(uri)
        if resource is None:
            raise ResourceNotFoundError(uri)

        content = await resource.read()
        return {
            "contents": [
                {
                    "uri": uri,
                    "mimeType": resource.definition.mime_type,
                    "text": json.dumps(content, indent=2, default=str),
                }
            ]
        }

    async def _prompts_list(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        return {"prompts": self.prompts.as_mcp_list()}

    async def _prompts_get(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        name = params.get("name")
        prompt = self.prompts.get(name) if name else None
        if prompt is None:
            raise PromptNotFoundError(name)

        arguments = params.get("arguments") or {}
        text = await prompt.render(arguments)
        return {
            "description": prompt.definition.description,
            "messages": [
                {"role": "user", "content": {"type": "text", "text": text}}
            ],
        }

    async def _tools_list(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        return {"tools": self.tools.as_mcp_list()}

    async def _tools_call(self, params: dict[str, Any], session_id: str) -> dict[str, Any]:
        return await self.router.call(
            params.get("name"), params.get("arguments"), session_id=session_id
        )
