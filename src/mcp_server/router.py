"""Tool Router for MCP Server.

Runs a ``tools/call`` request through agent resolution, authorization,
input validation, execution and auditing.
"""

import json
from typing import Any, Optional

from shared.errors import (
    InvalidParamsError,
    PermissionDeniedError,
    ToolInputError,
    ToolNotFoundError,
)
from shared.logging import get_logger
from shared.models import AuditResult, ToolContext
from mcp_server.auth import PermissionResolver, authorize_tool_call
from mcp_server.audit import AuditLogger
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


class ToolRouter:
    """
    Routes tool calls to registered tools.

    Responsibilities:
    - Identify the calling agent from the call arguments
    - Authorize the call against the agent's permission record
    - Validate arguments against the tool's schema
    - Execute the tool
    - Audit every authorized, denied or failed attempt
    """

    def __init__(
        self,
        registry: ToolRegistry,
        permissions: PermissionResolver,
        audit_logger: AuditLogger,
        namespace: str = "support-server"
    ) -> None:
        self.registry = registry
        self.permissions = permissions
        self.audit_logger = audit_logger
        self.namespace = namespace

    async def call(
        self,
        name: Optional[str],
        arguments: Any = None,
        session_id: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Execute a tool call.

        Args:
            name: Tool name
            arguments: Tool arguments, including ``agent_id``
            session_id: Session the call arrived on

        Returns:
            MCP ``tools/call`` result with a single text content item

        Raises:
            McpError: For every failure; the dispatcher converts it
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("Tool arguments must be an object")

        agent_id = arguments.get("agent_id")
        if not agent_id:
            raise InvalidParamsError("agent_id is required in arguments")

        agent = await self.permissions.resolve(str(agent_id))

        tool = self.registry.get(name) if isinstance(name, str) else None
        if tool is None:
            logger.warning("Unknown tool requested", tool=name, agent=agent.agent_id)
            raise ToolNotFoundError(name)

        phone_number = arguments.get("phone_number")
        context = ToolContext(
            agent_id=agent.agent_id,
            agent_name=agent.name,
            user_context=str(phone_number) if phone_number is not None else None,
            session_id=session_id,
        )

        authorized, reason = authorize_tool_call(agent, tool.definition, self.namespace)
        if not authorized:
            await self.audit_logger.record(
                context, tool.definition, AuditResult.DENIED, {"reason": reason}
            )
            raise PermissionDeniedError(tool.definition.denied_message, tool.name)

        logger.debug("Executing tool", tool=tool.name, agent=agent.agent_id)

        try:
            is_valid, errors = self.registry.validate_input(tool.name, arguments)
            if not is_valid:
                raise ToolInputError(f"Invalid arguments: {'; '.join(errors)}")

            result = await tool.execute(arguments, context)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=tool.name,
                agent=agent.agent_id,
                error=str(e)
            )
            await self.audit_logger.record(
                context,
                tool.definition,
                AuditResult.ERROR,
                {"error": str(e), "arguments": arguments}
            )
            raise

        await self.audit_logger.record(
            context, tool.definition, AuditResult.SUCCESS, result.audit_details
        )

        body = {"success": True, **result.data}
        return {
            "content": [
                {"type": "text", "text": json.dumps(body, indent=2, default=str)}
            ]
        }
