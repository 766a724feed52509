"""Authorization for the MCP Server.

Handles:
- Agent resolution (display name and permission record from the data store)
- Tool authorization (per-namespace tool allow-lists)

Authorization is enforced here, never decided by the calling agent.
"""

import time
from typing import Any, Optional

from pydantic import ValidationError

from datastore import DataStore, DataStoreError, Query
from shared.errors import AgentNotFoundError, AuthorizationError
from shared.logging import get_logger
from shared.models import AgentIdentity, ServerPermission, ToolDefinition

logger = get_logger(__name__)

AGENTS_TABLE = "ai_agents"
PERMISSIONS_TABLE = "ai_agent_permissions"


class PermissionResolver:
    """
    Resolves an agent id into an ``AgentIdentity``.

    Lookups hit the data store on every call unless ``cache_ttl_seconds`` is
    positive, in which case resolved identities are reused until they age out.
    """

    def __init__(self, store: DataStore, cache_ttl_seconds: float = 0) -> None:
        self.store = store
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: dict[str, tuple[float, AgentIdentity]] = {}

    def _cached(self, agent_id: str) -> Optional[AgentIdentity]:
        if self.cache_ttl_seconds <= 0:
            return None
        hit = self._cache.get(agent_id)
        if hit is None:
            return None
        stored_at, identity = hit
        if time.monotonic() - stored_at > self.cache_ttl_seconds:
            del self._cache[agent_id]
            return None
        return identity

    def invalidate(self, agent_id: Optional[str] = None) -> None:
        """Drop one cached agent, or all of them."""
        if agent_id is None:
            self._cache.clear()
        else:
            self._cache.pop(agent_id, None)

    async def resolve(self, agent_id: str) -> AgentIdentity:
        """
        Load an agent and its permission record.

        Args:
            agent_id: Agent identifier supplied in the tool arguments

        Returns:
            Resolved agent identity

        Raises:
            AgentNotFoundError: If the agent row is missing or cannot be read
            AuthorizationError: If the agent has no permission record
        """
        cached = self._cached(agent_id)
        if cached is not None:
            return cached

        try:
            agent = await self.store.select_one(
                Query(AGENTS_TABLE, "id, name").eq("id", agent_id)
            )
        except DataStoreError as e:
            logger.warning("Agent lookup failed", agent_id=agent_id, error=e.message)
            raise AgentNotFoundError("Agent not found") from e

        if agent is None:
            logger.warning("Unknown agent", agent_id=agent_id)
            raise AgentNotFoundError("Agent not found")

        try:
            record = await self.store.select_one(
                Query(PERMISSIONS_TABLE, "permissions").eq("agent_id", agent_id)
            )
        except DataStoreError as e:
            logger.warning("Permission lookup failed", agent_id=agent_id, error=e.message)
            raise AuthorizationError("Agent not found or no permissions set") from e

        if record is None:
            logger.warning("Agent has no permission record", agent_id=agent_id)
            raise AuthorizationError("Agent not found or no permissions set")

        # A record with an empty or malformed body grants nothing.
        identity = AgentIdentity(
            agent_id=agent_id,
            name=agent.get("name") or agent_id,
            permissions=_parse_permissions(record.get("permissions"), agent_id),
        )

        if self.cache_ttl_seconds > 0:
            self._cache[agent_id] = (time.monotonic(), identity)

        return identity


def _parse_permissions(raw: Any, agent_id: str) -> dict[str, ServerPermission]:
    if not isinstance(raw, dict):
        return {}

    permissions = {}
    for namespace, value in raw.items():
        if not isinstance(value, dict):
            continue
        try:
            permissions[namespace] = ServerPermission.model_validate(value)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed permission entry",
                agent_id=agent_id,
                namespace=namespace,
                error=str(e)
            )
    return permissions


def authorize_tool_call(
    agent: AgentIdentity,
    tool: ToolDefinition,
    namespace: str
) -> tuple[bool, Optional[str]]:
    """
    Check if an agent is authorized to execute a tool.

    Only membership of the tool name in the namespace's ``tools`` list is
    consulted. The ``enabled`` flag is not.

    Args:
        agent: Resolved agent identity
        tool: Tool definition being called
        namespace: Permission namespace of this server

    Returns:
        Tuple of (is_authorized, denial_reason)
    """
    granted = agent.namespace(namespace)

    if tool.name not in granted.tools:
        logger.warning(
            "Access denied",
            tool=tool.name,
            agent=agent.agent_id,
            namespace=namespace
        )
        return False, tool.denied_reason

    logger.debug(
        "Access granted",
        tool=tool.name,
        agent=agent.agent_id
    )
    return True, None
