"""Catalog registries for the MCP Server.

Manages registration and lookup of the tools, resources and prompts exposed
by the domains. Everything is registered at startup; the catalogs are static
afterwards.
"""

from typing import Any, Optional

from domains.base import PromptProvider, ResourceProvider, Tool
from shared.logging import get_logger
from shared.schema import validate_schema

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for MCP tools.

    ``tools/list`` and ``tools/call`` both read from this single mapping, so
    the advertised catalog and the callable set cannot drift apart.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: Tool) -> None:
        """
        Register a tool in the registry.

        Args:
            tool: Tool to register

        Raises:
            ValueError: If tool name is already registered
        """
        name = tool.definition.name

        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")

        self._tools[name] = tool

        logger.info(
            "Tool registered",
            tool=name,
            module=tool.definition.module,
            execution_type=tool.definition.execution_type.value
        )

    def register_many(self, tools: list[Tool]) -> None:
        """Register multiple tools at once."""
        for tool in tools:
            self.register(tool)

    def get(self, tool_name: str) -> Optional[Tool]:
        """
        Get a tool by its name.

        Args:
            tool_name: Tool name

        Returns:
            Tool if found, None otherwise
        """
        return self._tools.get(tool_name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools in registration order."""
        return list(self._tools.values())

    def as_mcp_list(self) -> list[dict[str, Any]]:
        """Tool descriptors in the ``tools/list`` format."""
        return [tool.definition.as_mcp_dict() for tool in self._tools.values()]

    def validate_input(
        self,
        tool_name: str,
        arguments: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Validate arguments against the tool's input schema.

        Args:
            tool_name: Tool name
            arguments: Input arguments to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get(tool_name)
        if not tool:
            return False, [f"Tool '{tool_name}' not found"]

        if not tool.definition.input_schema:
            return True, []

        return validate_schema(arguments, tool.definition.input_schema)


class ResourceRegistry:
    """Registry of readable resources keyed by URI."""

    def __init__(self) -> None:
        self._resources: dict[str, ResourceProvider] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def register(self, resource: ResourceProvider) -> None:
        if resource.uri in self._resources:
            raise ValueError(f"Resource '{resource.uri}' is already registered")
        self._resources[resource.uri] = resource
        logger.info("Resource registered", uri=resource.uri)

    def get(self, uri: str) -> Optional[ResourceProvider]:
        return self._resources.get(uri)

    def as_mcp_list(self) -> list[dict[str, Any]]:
        return [r.definition.as_mcp_dict() for r in self._resources.values()]


class PromptRegistry:
    """Registry of prompt templates keyed by name."""

    def __init__(self) -> None:
        self._prompts: dict[str, PromptProvider] = {}

    def __len__(self) -> int:
        return len(self._prompts)

    def register(self, prompt: PromptProvider) -> None:
        if prompt.name in self._prompts:
            raise ValueError(f"Prompt '{prompt.name}' is already registered")
        self._prompts[prompt.name] = prompt
        logger.info("Prompt registered", prompt=prompt.name)

    def get(self, name: str) -> Optional[PromptProvider]:
        return self._prompts.get(name)

    def as_mcp_list(self) -> list[dict[str, Any]]:
        return [p.definition.as_mcp_dict() for p in self._prompts.values()]
