"""Support ticket tools.

Five tools over the ``support_tickets`` and ``contacts_master`` tables:
ticket search, summary statistics, create, update and delete.
"""

import re
from datetime import date, timedelta
from typing import Any, Optional

from datastore import DataStore, Query
from domains.base import Tool
from domains.support.stats import compute_ticket_statistics, render_summary
from shared.errors import ToolInputError
from shared.logging import get_logger
from shared.models import ExecutionType, ToolContext, ToolDefinition, ToolResult
from shared.schema import tool_input_schema

logger = get_logger(__name__)

MODULE = "Support"

TICKETS_TABLE = "support_tickets"
CONTACTS_TABLE = "contacts_master"
TICKET_COLUMNS = "*, contacts_master(name, email, phone)"

STATUSES = ["Open", "In Progress", "Resolved", "Closed"]
PRIORITIES = ["Low", "Medium", "High", "Critical"]

DEFAULT_PRIORITY = "Medium"
DEFAULT_CATEGORY = "General"
DEFAULT_STATUS = "Open"

# Arguments that identify the caller or the row, never columns to write.
NON_UPDATABLE_ARGUMENTS = {"agent_id", "phone_number", "ticket_id"}

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def apply_date_range(
    query: Query,
    from_date: Optional[str],
    to_date: Optional[str],
    column: str = "created_at"
) -> Query:
    """
    Narrow a query to an inclusive ``created_at`` range.

    A bare ``YYYY-MM-DD`` upper bound covers that whole day.
    """
    if from_date:
        query.gte(column, from_date)
    if to_date:
        if _BARE_DATE.match(to_date):
            try:
                next_day = date.fromisoformat(to_date) + timedelta(days=1)
            except ValueError as e:
                raise ToolInputError(f"Invalid to_date: {to_date}") from e
            query.lt(column, next_day.isoformat())
        else:
            query.lte(column, to_date)
    return query


class GetSupportTicketsTool(Tool):
    definition = ToolDefinition(
        name="get_support_tickets",
        description=(
            "Retrieve individual support ticket records with filtering. Returns full ticket "
            "details including ticket_id, contact info, subject, description, status, priority, "
            "category, attachments. Use this to get specific tickets or filtered lists. For "
            "statistics and summaries, use get_support_summary instead."
        ),
        input_schema=tool_input_schema({
            "ticket_id": {"type": "string", "description": "Get a specific ticket by ticket_id"},
            "status": {"type": "string", "enum": STATUSES, "description": "Filter by ticket status"},
            "priority": {"type": "string", "enum": PRIORITIES, "description": "Filter by priority level"},
            "category": {
                "type": "string",
                "description": "Filter by category (e.g., Technical, General, Feature Request, Refund)",
            },
            "contact_email": {"type": "string", "description": "Filter by contact email address"},
            "contact_phone": {"type": "string", "description": "Filter by contact phone number"},
            "from_date": {"type": "string", "description": "Start date for filtering (YYYY-MM-DD format)"},
            "to_date": {"type": "string", "description": "End date for filtering (YYYY-MM-DD format)"},
            "assigned_to": {"type": "string", "description": "Filter by assigned team member ID"},
            "limit": {"type": "number", "description": "Maximum number of tickets to return (default: 100)"},
        }),
        module=MODULE,
        execution_type=ExecutionType.READ,
        permission_phrase="view support tickets",
    )

    def __init__(self, store: DataStore, default_limit: int = 100) -> None:
        super().__init__(store)
        self.default_limit = default_limit

    async def _contact_ids(self, email: Optional[str], phone: Optional[str]) -> list[Any]:
        query = Query(CONTACTS_TABLE, "id")
        if email:
            query.eq("email", email)
        if phone:
            query.eq("phone", phone)
        return [row["id"] for row in await self.store.select(query)]

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        query = Query(TICKETS_TABLE, TICKET_COLUMNS).order("created_at", descending=True)

        for column in ("ticket_id", "status", "priority", "assigned_to"):
            if arguments.get(column):
                query.eq(column, arguments[column])
        if arguments.get("category"):
            query.ilike("category", f"%{arguments['category']}%")
        apply_date_range(query, arguments.get("from_date"), arguments.get("to_date"))

        email = arguments.get("contact_email")
        phone = arguments.get("contact_phone")
        if email or phone:
            contact_ids = await self._contact_ids(email, phone)
            if not contact_ids:
                logger.debug("No contact matches ticket filter", email=email, phone=phone)
                return self._result(arguments, [])
            query.in_("contact_id", contact_ids)

        limit = arguments.get("limit")
        query.limit(int(limit) if limit else self.default_limit)

        tickets = await self.store.select(query)
        return self._result(arguments, tickets)

    @staticmethod
    def _result(arguments: dict[str, Any], tickets: list[dict[str, Any]]) -> ToolResult:
        return ToolResult(
            data={"data": tickets, "count": len(tickets)},
            audit_details={"filters": arguments, "result_count": len(tickets)},
        )


class GetSupportSummaryTool(Tool):
    definition = ToolDefinition(
        name="get_support_summary",
        description=(
            "Get aggregated support ticket statistics and breakdowns. Returns total count, "
            "breakdown by status/priority/category, average satisfaction score, resolution rate, "
            "and latest tickets. Use this for questions about support summaries, statistics, or "
            "ticket counts."
        ),
        input_schema=tool_input_schema({
            "from_date": {"type": "string", "description": "Start date for summary (YYYY-MM-DD format, optional)"},
            "to_date": {"type": "string", "description": "End date for summary (YYYY-MM-DD format, optional)"},
            "status": {"type": "string", "description": "Filter summary by specific status (optional)"},
            "priority": {"type": "string", "description": "Filter summary by specific priority (optional)"},
        }),
        module=MODULE,
        execution_type=ExecutionType.READ,
        permission_phrase="view support summaries",
    )

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        query = Query(TICKETS_TABLE).order("created_at", descending=True)
        apply_date_range(query, arguments.get("from_date"), arguments.get("to_date"))
        if arguments.get("status"):
            query.eq("status", arguments["status"])
        if arguments.get("priority"):
            query.eq("priority", arguments["priority"])

        tickets = await self.store.select(query)
        summary = render_summary(compute_ticket_statistics(tickets), tickets)

        return ToolResult(
            data={"summary": summary},
            audit_details={"filters": arguments, "total_tickets": summary["total_count"]},
        )


class CreateSupportTicketTool(Tool):
    definition = ToolDefinition(
        name="create_support_ticket",
        description=(
            "Create a new support ticket. IMPORTANT: Infer the category from the description. "
            "Common mappings: technical issue/bug/error → Technical, question/how to → General, "
            "new feature/improvement → Feature Request, refund/payment → Refund. Set priority "
            "based on urgency indicators: urgent/asap/critical → High, important → Medium, "
            "general → Low."
        ),
        input_schema=tool_input_schema(
            {
                "contact_phone": {
                    "type": "string",
                    "description": "Contact phone number (required) - will look up or create contact",
                },
                "contact_email": {"type": "string", "description": "Contact email (optional)"},
                "contact_name": {"type": "string", "description": "Contact name (optional)"},
                "subject": {"type": "string", "description": "Ticket subject/title (required)"},
                "description": {"type": "string", "description": "Detailed ticket description (required)"},
                "priority": {
                    "type": "string",
                    "enum": PRIORITIES,
                    "description": "Priority level - infer from description. Default: Medium",
                },
                "category": {
                    "type": "string",
                    "description": (
                        "Ticket category - infer from description. Common: Technical, General, "
                        "Feature Request, Refund. Default: General"
                    ),
                },
                "status": {"type": "string", "enum": STATUSES, "description": "Ticket status (default: Open)"},
            },
            required=["contact_phone", "subject", "description"],
        ),
        module=MODULE,
        execution_type=ExecutionType.WRITE,
        permission_phrase="create support tickets",
    )

    async def _resolve_contact(self, arguments: dict[str, Any]) -> Any:
        # Lookup-then-insert is not atomic; two concurrent calls for the same
        # phone number can both create a contact.
        phone = arguments["contact_phone"]
        existing = await self.store.select(
            Query(CONTACTS_TABLE, "id").eq("phone", phone).limit(1)
        )
        if existing:
            return existing[0]["id"]

        contact = await self.store.insert(
            CONTACTS_TABLE,
            {
                "phone": phone,
                "email": arguments.get("contact_email"),
                "name": arguments.get("contact_name"),
            },
            columns="id",
        )
        logger.info("Contact created", contact_id=contact["id"])
        return contact["id"]

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        contact_id = await self._resolve_contact(arguments)

        ticket = await self.store.insert(
            TICKETS_TABLE,
            {
                "contact_id": contact_id,
                "subject": arguments["subject"],
                "description": arguments["description"],
                "priority": arguments.get("priority") or DEFAULT_PRIORITY,
                "category": arguments.get("category") or DEFAULT_CATEGORY,
                "status": arguments.get("status") or DEFAULT_STATUS,
            },
            columns=TICKET_COLUMNS,
        )

        return ToolResult(
            data={"message": "Support ticket created successfully", "ticket": ticket},
            audit_details={"ticket_id": ticket.get("ticket_id"), "subject": arguments["subject"]},
        )


class UpdateSupportTicketTool(Tool):
    definition = ToolDefinition(
        name="update_support_ticket",
        description=(
            "Update an existing support ticket. Can update status, priority, category, "
            "description, assigned team member, and add satisfaction ratings."
        ),
        input_schema=tool_input_schema(
            {
                "ticket_id": {"type": "string", "description": "Ticket ID to update (required)"},
                "status": {"type": "string", "enum": STATUSES},
                "priority": {"type": "string", "enum": PRIORITIES},
                "category": {"type": "string"},
                "subject": {"type": "string"},
                "description": {"type": "string"},
                "assigned_to": {"type": "string"},
                "satisfaction": {"type": "number", "description": "Satisfaction rating (1-5)"},
                "response_time": {"type": "string"},
            },
            required=["ticket_id"],
        ),
        module=MODULE,
        execution_type=ExecutionType.WRITE,
        permission_phrase="update support tickets",
    )

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        ticket_id = arguments["ticket_id"]
        updates = {
            key: value for key, value in arguments.items()
            if key not in NON_UPDATABLE_ARGUMENTS
        }
        if not updates:
            raise ToolInputError("No fields to update")

        ticket = await self.store.update(
            TICKETS_TABLE, "ticket_id", ticket_id, updates, columns=TICKET_COLUMNS
        )

        return ToolResult(
            data={"message": "Support ticket updated successfully", "ticket": ticket},
            audit_details={"ticket_id": ticket_id, "updates": updates},
        )


class DeleteSupportTicketTool(Tool):
    definition = ToolDefinition(
        name="delete_support_ticket",
        description="Delete a support ticket by ticket_id",
        input_schema=tool_input_schema(
            {"ticket_id": {"type": "string", "description": "Ticket ID to delete"}},
            required=["ticket_id"],
        ),
        module=MODULE,
        execution_type=ExecutionType.WRITE,
        permission_phrase="delete support tickets",
    )

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        ticket_id = arguments["ticket_id"]
        deleted = await self.store.delete(TICKETS_TABLE, "ticket_id", ticket_id)

        return ToolResult(
            data={"message": "Support ticket deleted successfully", "ticket_id": ticket_id},
            audit_details={"ticket_id": ticket_id, "deleted_count": deleted},
        )


def build_support_tools(store: DataStore, default_limit: int = 100) -> list[Tool]:
    """Instantiate every support tool over one data store."""
    return [
        GetSupportTicketsTool(store, default_limit=default_limit),
        GetSupportSummaryTool(store),
        CreateSupportTicketTool(store),
        UpdateSupportTicketTool(store),
        DeleteSupportTicketTool(store),
    ]
