"""Support ticket tools."""

from typing import Literal

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore, Ticket
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult

TicketStatus = Literal["OPEN", "IN_PROGRESS", "WAITING_CLIENT", "RESOLVED", "CLOSED"]
TicketPriority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]


class ListTicketsInput(BaseModel):
    status: TicketStatus | None = Field(None, description="Filter by status")
    priority: TicketPriority | None = Field(None, description="Filter by priority")
    unassigned: bool = Field(False, description="Only tickets without an assignee")
    limit: int = Field(20, ge=1, le=50, description="Maximum number of results")


class CreateTicketInput(BaseModel):
    subject: str = Field(..., min_length=1, description="Ticket subject (required)")
    description: str = Field(..., min_length=1, description="Problem description (required)")
    priority: TicketPriority = Field("MEDIUM", description="Priority (default MEDIUM)")
    category: str | None = Field(None, description="Category (e.g. bug, billing, question)")
    assignee_id: str | None = Field(None, alias="assigneeId", description="Assignee user ID")

    model_config = {"populate_by_name": True}


class TicketIdInput(BaseModel):
    ticket_id: str = Field(..., alias="ticketId", description="Ticket ID or code (e.g. TK-0001)")

    model_config = {"populate_by_name": True}


def serialize_ticket(ticket: Ticket, store: InMemoryPlatformStore) -> dict:
    return {
        "id": ticket.id,
        "code": ticket.code,
        "subject": ticket.subject,
        "status": ticket.status,
        "priority": ticket.priority,
        "assignee": store.user_name(ticket.assignee_id),
        "createdAt": ticket.created_at.isoformat(),
    }


def create_support_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    def find_ticket(ref: str) -> Ticket | None:
        return store.tickets.get(ref) or next((t for t in store.tickets.values() if t.code == ref), None)

    async def list_tickets(params: ListTicketsInput, context: ToolContext) -> ToolResult:
        tickets = sorted(store.tickets.values(), key=lambda t: t.created_at, reverse=True)
        if params.status:
            tickets = [t for t in tickets if t.status == params.status]
        if params.priority:
            tickets = [t for t in tickets if t.priority == params.priority]
        if params.unassigned:
            tickets = [t for t in tickets if t.assignee_id is None]
        tickets = tickets[: params.limit]
        return ToolResult.ok({"tickets": [serialize_ticket(t, store) for t in tickets], "total": len(tickets)})

    async def create_ticket(params: CreateTicketInput, context: ToolContext) -> ToolResult:
        ticket = store.add_ticket(
            subject=params.subject,
            description=params.description,
            priority=params.priority,
            category=params.category,
            assignee_id=params.assignee_id,
            requester_id=context.user_id,
        )
        return ToolResult.ok(serialize_ticket(ticket, store))

    async def get_ticket_details(params: TicketIdInput, context: ToolContext) -> ToolResult:
        ticket = find_ticket(params.ticket_id)
        if ticket is None:
            return ToolResult.fail(f"Ticket {params.ticket_id} not found")
        details = serialize_ticket(ticket, store)
        details.update(
            description=ticket.description,
            category=ticket.category,
            requester=store.user_name(ticket.requester_id),
        )
        return ToolResult.ok(details)

    return [
        ToolDefinition(
            name="list_tickets",
            description="List support tickets filtered by status, priority or assignment.",
            input_schema_class=ListTicketsInput,
            module="support",
            required_permission="read",
            handler=list_tickets,
        ),
        ToolDefinition(
            name="create_ticket",
            description="Open a new support ticket.",
            input_schema_class=CreateTicketInput,
            module="support",
            required_permission="write",
            handler=create_ticket,
        ),
        ToolDefinition(
            name="get_ticket_details",
            description="Get the details of a support ticket by ID or code.",
            input_schema_class=TicketIdInput,
            module="support",
            required_permission="read",
            handler=get_ticket_details,
        ),
    ]
