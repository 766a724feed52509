"""Support ticket resources readable through ``resources/read``."""

from typing import Any, Optional

from datastore import DataStore, Query
from domains.base import ResourceProvider
from domains.support.stats import compute_ticket_statistics, render_statistics_resource
from domains.support.tools import TICKET_COLUMNS, TICKETS_TABLE
from shared.models import ResourceDefinition


class TicketListResource(ResourceProvider):
    """Tickets newest first, optionally narrowed by one column predicate."""

    def __init__(
        self,
        store: DataStore,
        definition: ResourceDefinition,
        status: Optional[str] = None,
        priorities: Optional[list[str]] = None
    ) -> None:
        super().__init__(store)
        self.definition = definition
        self.status = status
        self.priorities = priorities

    async def read(self) -> list[dict[str, Any]]:
        query = Query(TICKETS_TABLE, TICKET_COLUMNS).order("created_at", descending=True)
        if self.status:
            query.eq("status", self.status)
        if self.priorities:
            query.in_("priority", self.priorities)
        return await self.store.select(query)


class TicketStatisticsResource(ResourceProvider):
    definition = ResourceDefinition(
        uri="support://statistics",
        name="Support Statistics",
        description="Aggregated statistics about support tickets",
    )

    async def read(self) -> dict[str, Any]:
        tickets = await self.store.select(Query(TICKETS_TABLE, TICKET_COLUMNS))
        return render_statistics_resource(compute_ticket_statistics(tickets))


def build_support_resources(store: DataStore) -> list[ResourceProvider]:
    """Instantiate every support resource over one data store."""
    return [
        TicketListResource(
            store,
            ResourceDefinition(
                uri="support://all",
                name="All Support Tickets",
                description="Complete list of all support tickets",
            ),
        ),
        TicketListResource(
            store,
            ResourceDefinition(
                uri="support://open",
                name="Open Tickets",
                description="Support tickets with status Open",
            ),
            status="Open",
        ),
        TicketListResource(
            store,
            ResourceDefinition(
                uri="support://resolved",
                name="Resolved Tickets",
                description="Support tickets with status Resolved",
            ),
            status="Resolved",
        ),
        TicketListResource(
            store,
            ResourceDefinition(
                uri="support://high-priority",
                name="High Priority Tickets",
                description="Critical and High priority tickets",
            ),
            priorities=["Critical", "High"],
        ),
        TicketStatisticsResource(store),
    ]
