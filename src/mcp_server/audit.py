"""Audit logging for MCP Server.

Records every authorized-or-denied tool call attempt in the ``ai_agent_logs``
table. Captures: agent, module, action, result, end-user reference, details.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import aiofiles

from datastore import DataStore, DataStoreError
from shared.logging import get_logger
from shared.models import AuditEntry, AuditResult, ToolContext, ToolDefinition

logger = get_logger(__name__)

AUDIT_TABLE = "ai_agent_logs"


class AuditLogger:
    """
    Audit logger for MCP tool calls.

    Entries are append-only. A failed write is logged and swallowed so the
    caller's outcome is never replaced by an audit error. Optionally every
    entry is mirrored as a JSON line to a local file.
    """

    # Detail keys that should be redacted in audit logs
    SENSITIVE_PARAMS = {"password", "token", "secret", "api_key", "apikey", "credential"}

    def __init__(
        self,
        store: DataStore,
        mirror_path: Optional[str | Path] = None,
        enabled: bool = True
    ) -> None:
        self.store = store
        self.enabled = enabled
        self.mirror_path = Path(mirror_path) if mirror_path else None
        self._lock = asyncio.Lock()

        if self.mirror_path is not None:
            self.mirror_path.parent.mkdir(parents=True, exist_ok=True)

    def _redact_sensitive(self, params: Any) -> Any:
        """Redact sensitive keys, recursing into nested dicts and lists."""
        if isinstance(params, list):
            return [self._redact_sensitive(item) for item in params]
        if not isinstance(params, dict):
            return params
        redacted = {}
        for key, value in params.items():
            if str(key).lower() in self.SENSITIVE_PARAMS:
                redacted[key] = "[REDACTED]"
            else:
                redacted[key] = self._redact_sensitive(value)
        return redacted

    def create_entry(
        self,
        context: ToolContext,
        tool: ToolDefinition,
        result: AuditResult,
        details: dict[str, Any]
    ) -> AuditEntry:
        """
        Create an audit entry for a tool call attempt.

        Args:
            context: Calling agent and end-user reference
            tool: Tool definition
            result: Outcome
            details: Outcome-specific details

        Returns:
            Audit entry
        """
        return AuditEntry(
            agent_id=context.agent_id,
            agent_name=context.agent_name,
            module=tool.module,
            action=tool.name,
            result=result,
            user_context=context.user_context,
            details=self._redact_sensitive(details),
        )

    async def record(
        self,
        context: ToolContext,
        tool: ToolDefinition,
        result: AuditResult,
        details: Optional[dict[str, Any]] = None
    ) -> Optional[AuditEntry]:
        """
        Persist one audit entry.

        Returns:
            The entry, or None when auditing is disabled
        """
        if not self.enabled:
            return None

        entry = self.create_entry(context, tool, result, details or {})

        logger.info(
            "Tool call audited",
            agent=entry.agent_id,
            tool=entry.action,
            module=entry.module,
            result=entry.result.value,
            session_id=context.session_id
        )

        try:
            await self.store.insert(AUDIT_TABLE, entry.to_row())
        except DataStoreError as e:
            logger.error(
                "Failed to write audit log",
                agent=entry.agent_id,
                tool=entry.action,
                error=e.message
            )

        if self.mirror_path is not None:
            await self._mirror(entry)

        return entry

    async def _mirror(self, entry: AuditEntry) -> None:
        async with self._lock:
            try:
                async with aiofiles.open(self.mirror_path, "a") as f:
                    await f.write(entry.model_dump_json() + "\n")
            except OSError as e:
                logger.error("Failed to write audit mirror", path=str(self.mirror_path), error=str(e))
