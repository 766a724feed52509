"""Support prompt templates."""

from typing import Any

from datastore import DataStore, Query
from domains.base import PromptProvider
from domains.support.stats import compute_ticket_statistics
from domains.support.tools import TICKETS_TABLE
from shared.models import PromptDefinition


class SupportSummaryPrompt(PromptProvider):
    """Asks the model to summarize the current support queue."""

    definition = PromptDefinition(
        name="support_summary",
        description="Provides a comprehensive summary of support tickets",
        arguments=[],
    )

    def __init__(self, store: DataStore) -> None:
        self.store = store

    async def render(self, arguments: dict[str, Any]) -> str:
        tickets = await self.store.select(Query(TICKETS_TABLE))
        stats = compute_ticket_statistics(tickets)

        lines = [
            "Summarize the current state of customer support.",
            "",
            f"Total tickets: {stats.total}",
            f"Resolution rate: {stats.resolution_rate:.1f}%",
            f"Average satisfaction: {stats.avg_satisfaction:.2f}",
        ]
        for title, counts in (
            ("By status", stats.by_status),
            ("By priority", stats.by_priority),
            ("By category", stats.by_category),
        ):
            lines.append("")
            lines.append(f"{title}:")
            lines.extend(f"- {key}: {count}" for key, count in counts.most_common())

        lines.append("")
        lines.append(
            "Highlight open high-priority issues, recurring categories and any "
            "drop in satisfaction."
        )
        return "\n".join(lines)
