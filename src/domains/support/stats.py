"""Support ticket statistics.

One aggregation pass, two renderings: the ``support://statistics`` resource
reports plain counts, the ``get_support_summary`` tool wraps each count in
``{"count": n}`` and adds the latest tickets.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

UNKNOWN = "Unknown"
RESOLVED = "Resolved"

LATEST_TICKET_FIELDS = ("ticket_id", "subject", "status", "priority", "category", "created_at")
LATEST_TICKET_COUNT = 5


@dataclass
class TicketStatistics:
    total: int = 0
    by_status: Counter = field(default_factory=Counter)
    by_priority: Counter = field(default_factory=Counter)
    by_category: Counter = field(default_factory=Counter)
    avg_satisfaction: float = 0
    resolution_rate: float = 0


def _bucket(value: Any) -> str:
    return str(value) if value not in (None, "") else UNKNOWN


def compute_ticket_statistics(tickets: Iterable[dict[str, Any]]) -> TicketStatistics:
    """
    Aggregate a collection of ticket rows.

    Missing or empty status/priority/category values are counted under
    ``"Unknown"``. The satisfaction average only covers tickets that carry a
    rating; with no rated tickets it is ``0``.

    Args:
        tickets: Ticket rows

    Returns:
        Aggregated statistics
    """
    stats = TicketStatistics()
    ratings: list[float] = []
    resolved = 0

    for ticket in tickets:
        stats.total += 1
        status = _bucket(ticket.get("status"))
        stats.by_status[status] += 1
        stats.by_priority[_bucket(ticket.get("priority"))] += 1
        stats.by_category[_bucket(ticket.get("category"))] += 1

        satisfaction = ticket.get("satisfaction")
        if satisfaction is not None:
            ratings.append(float(satisfaction))

        if status == RESOLVED:
            resolved += 1

    if ratings:
        stats.avg_satisfaction = sum(ratings) / len(ratings)
    if stats.total:
        stats.resolution_rate = resolved / stats.total * 100

    return stats


def render_statistics_resource(stats: TicketStatistics) -> dict[str, Any]:
    """Shape used by the ``support://statistics`` resource."""
    return {
        "total": stats.total,
        "by_status": dict(stats.by_status),
        "by_priority": dict(stats.by_priority),
        "by_category": dict(stats.by_category),
        "avg_satisfaction": stats.avg_satisfaction,
        "resolution_rate": stats.resolution_rate,
    }


def render_summary(
    stats: TicketStatistics,
    tickets: list[dict[str, Any]]
) -> dict[str, Any]:
    """
    Shape used by the ``get_support_summary`` tool.

    Args:
        stats: Aggregated statistics
        tickets: The rows the statistics were computed over, newest first

    Returns:
        Summary payload
    """
    def counted(counter: Counter) -> dict[str, dict[str, int]]:
        return {key: {"count": count} for key, count in counter.items()}

    return {
        "total_count": stats.total,
        "by_status": counted(stats.by_status),
        "by_priority": counted(stats.by_priority),
        "by_category": counted(stats.by_category),
        "avg_satisfaction": stats.avg_satisfaction,
        "resolution_rate": stats.resolution_rate,
        "latest_tickets": [
            {key: ticket.get(key) for key in LATEST_TICKET_FIELDS}
            for ticket in tickets[:LATEST_TICKET_COUNT]
        ],
    }
