"""Application Domains.

Each domain contains:
- Tool implementations and their definitions
- Readable resources
- Prompt templates

Domains only talk to the data store; authorization and auditing belong to
the MCP server.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datastore import DataStore
    from mcp_server.registry import PromptRegistry, ResourceRegistry, ToolRegistry


def load_all_domains(
    store: "DataStore",
    tools: "ToolRegistry",
    resources: "ResourceRegistry",
    prompts: "PromptRegistry",
    default_limit: int = 100
) -> None:
    """
    Load and register all application domains.

    This is called when the MCP Server application is built.
    """
    from domains.support import register_support_domain

    register_support_domain(store, tools, resources, prompts, default_limit=default_limit)


def domain_store_options() -> dict[str, Any]:
    """Relations and column defaults the in-memory store needs for all domains."""
    from domains.support import SUPPORT_DEFAULTS, SUPPORT_RELATIONS

    return {"relations": SUPPORT_RELATIONS, "defaults": SUPPORT_DEFAULTS}


__all__ = ["domain_store_options", "load_all_domains"]
