"""Support Domain - customer support ticket tools, resources and prompts.

Exposes the ``support_tickets`` table (with its ``contacts_master``
relation) to agents through the ``support-server`` permission namespace.
"""

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from datastore import DataStore
from shared.logging import get_logger
from domains.support.prompts import SupportSummaryPrompt
from domains.support.resources import build_support_resources
from domains.support.tools import build_support_tools

if TYPE_CHECKING:
    from mcp_server.registry import PromptRegistry, ResourceRegistry, ToolRegistry

logger = get_logger(__name__)

_TICKET_NUMBER = re.compile(r"^TKT-(\d{4})-(\d+)$")


def next_ticket_id(rows: list[dict[str, Any]]) -> str:
    """Next ``TKT-<year>-<NNN>`` number for the current year."""
    year = datetime.now(timezone.utc).year
    highest = 0
    for row in rows:
        match = _TICKET_NUMBER.match(str(row.get("ticket_id") or ""))
        if match and int(match.group(1)) == year:
            highest = max(highest, int(match.group(2)))
    return f"TKT-{year}-{highest + 1:03d}"


# Embeddable relations and column defaults for the in-memory backend; a real
# database provides both itself.
SUPPORT_RELATIONS = {
    "support_tickets": {"contacts_master": ("contact_id", "id")},
}

SUPPORT_DEFAULTS = {
    "support_tickets": {"ticket_id": next_ticket_id},
}


def register_support_domain(
    store: DataStore,
    tools: "ToolRegistry",
    resources: "ResourceRegistry",
    prompts: "PromptRegistry",
    default_limit: int = 100
) -> None:
    """Register the support domain with the MCP server."""
    tools.register_many(build_support_tools(store, default_limit=default_limit))

    for resource in build_support_resources(store):
        resources.register(resource)

    prompts.register(SupportSummaryPrompt(store))

    logger.info(
        "Support domain registered",
        tool_count=len(tools),
        resource_count=len(resources),
        prompt_count=len(prompts)
    )


__all__ = [
    "SUPPORT_DEFAULTS",
    "SUPPORT_RELATIONS",
    "next_ticket_id",
    "register_support_domain",
]
