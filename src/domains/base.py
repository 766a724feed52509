"""Base classes for domain tools, resources and prompts.

All domain code must:
- Talk to the backing store only through ``DataStore``
- Raise on failure rather than return error values
- Never make authorization decisions (the router does that)
- Never write audit entries (the router does that)
"""

from abc import ABC, abstractmethod
from typing import Any

from datastore import DataStore
from shared.models import (
    PromptDefinition,
    ResourceDefinition,
    ToolContext,
    ToolDefinition,
    ToolResult,
)


class Tool(ABC):
    """
    Base class for MCP tools.

    Each tool:
    - Publishes a ``ToolDefinition`` for ``tools/list``
    - Executes one action against the data store
    - Returns the response body and the audit details separately
    """

    definition: ToolDefinition

    def __init__(self, store: DataStore) -> None:
        self.store = store

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def execute(
        self,
        arguments: dict[str, Any],
        context: ToolContext
    ) -> ToolResult:
        """
        Execute the tool.

        Args:
            arguments: Validated tool arguments
            context: Authorized agent and end-user reference

        Returns:
            Response data and audit details
        """


class ResourceProvider(ABC):
    """A readable data view addressed by URI."""

    definition: ResourceDefinition

    def __init__(self, store: DataStore) -> None:
        self.store = store

    @property
    def uri(self) -> str:
        return self.definition.uri

    @abstractmethod
    async def read(self) -> Any:
        """Return the JSON-serializable content of the resource."""


class PromptProvider(ABC):
    """A prompt template that renders into chat messages."""

    definition: PromptDefinition

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def render(self, arguments: dict[str, Any]) -> str:
        """Render the prompt text for the given arguments."""
