"""Cross-module report tools."""

from datetime import UTC, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore
from console_ai.tools.base import EmptyInput, ToolContext, ToolDefinition, ToolResult
from console_ai.tools.calendar import serialize_event
from console_ai.tools.tasks import serialize_task

OPEN_TASK_STATUSES = {"TODO", "IN_PROGRESS", "IN_REVIEW"}


class SearchPlatformInput(BaseModel):
    query: str = Field(..., min_length=2, description="Text to search for (required)")
    scope: Literal["all", "tasks", "leads", "tickets"] = Field("all", description="Where to search")
    limit: int = Field(10, ge=1, le=30, description="Maximum results per scope")


def create_report_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    async def get_my_day_summary(params: EmptyInput, context: ToolContext) -> ToolResult:
        now = datetime.now(UTC)
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
        my_tasks = [
            t for t in store.tasks.values() if t.assignee_id == context.user_id and t.status in OPEN_TASK_STATUSES
        ]
        due_today = [t for t in my_tasks if t.due_date and now.date() == t.due_date.date()]
        overdue = [t for t in my_tasks if t.due_date and t.due_date < now and t not in due_today]
        events = sorted(
            (
                e
                for e in store.events.values()
                if (e.owner_id == context.user_id or context.user_id in e.attendee_ids)
                and now <= e.end
                and e.start <= end_of_day
            ),
            key=lambda e: e.start,
        )
        hours_today = sum(
            e.hours for e in store.time_entries.values() if e.user_id == context.user_id and e.date == now.date()
        )
        return ToolResult.ok(
            {
                "date": now.date().isoformat(),
                "openTasks": len(my_tasks),
                "dueToday": [serialize_task(t, store) for t in due_today],
                "overdue": [serialize_task(t, store) for t in overdue],
                "eventsToday": [serialize_event(e) for e in events],
                "hoursLoggedToday": hours_today,
                "tomorrow": (now + timedelta(days=1)).date().isoformat(),
            }
        )

    async def search_platform(params: SearchPlatformInput, context: ToolContext) -> ToolResult:
        needle = params.query.lower()
        results: dict[str, list[dict]] = {}
        if params.scope in ("all", "tasks"):
            results["tasks"] = [
                {"id": t.id, "title": t.title, "status": t.status}
                for t in store.tasks.values()
                if needle in t.title.lower() or needle in (t.description or "").lower()
            ][: params.limit]
        if params.scope in ("all", "leads"):
            results["leads"] = [
                {"id": lead.id, "companyName": lead.company_name, "status": lead.status}
                for lead in store.leads.values()
                if needle in lead.company_name.lower() or needle in lead.contact_name.lower()
            ][: params.limit]
        if params.scope in ("all", "tickets"):
            results["tickets"] = [
                {"id": t.id, "code": t.code, "subject": t.subject, "status": t.status}
                for t in store.tickets.values()
                if needle in t.subject.lower() or needle in t.description.lower()
            ][: params.limit]
        return ToolResult.ok({"query": params.query, "results": results, "total": sum(map(len, results.values()))})

    return [
        ToolDefinition(
            name="get_my_day_summary",
            description=(
                "Overview of the current user's day: open tasks, tasks due today, "
                "overdue tasks, today's events and hours logged."
            ),
            input_schema_class=EmptyInput,
            module="pm",
            required_permission="read",
            handler=get_my_day_summary,
        ),
        ToolDefinition(
            name="search_platform",
            description="Search tasks, leads and tickets by text.",
            input_schema_class=SearchPlatformInput,
            module="pm",
            required_permission="read",
            handler=search_platform,
        ),
    ]
