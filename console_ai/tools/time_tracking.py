"""Time tracking tools."""

from datetime import UTC, date, datetime, timedelta

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult


class LogTimeInput(BaseModel):
    hours: float = Field(..., gt=0, le=24, description="Hours worked (required, max 24)")
    task_id: str | None = Field(None, alias="taskId", description="Task the time was spent on")
    entry_date: date | None = Field(None, alias="date", description="Day of work (YYYY-MM-DD, default today)")
    description: str | None = Field(None, description="What was done")
    billable: bool = Field(True, description="Whether the time is billable")

    model_config = {"populate_by_name": True}


class ListTimeEntriesInput(BaseModel):
    days: int = Field(7, ge=1, le=90, description="How many days back to include (default 7)")
    user_id: str | None = Field(None, alias="userId", description="User ID (default: current user)")

    model_config = {"populate_by_name": True}


def create_time_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    async def log_time(params: LogTimeInput, context: ToolContext) -> ToolResult:
        if params.task_id and params.task_id not in store.tasks:
            return ToolResult.fail(f"Task {params.task_id} not found")
        entry = store.add_time_entry(
            user_id=context.user_id,
            hours=params.hours,
            date=params.entry_date or datetime.now(UTC).date(),
            task_id=params.task_id,
            description=params.description,
            billable=params.billable,
        )
        return ToolResult.ok({"id": entry.id, "hours": entry.hours, "date": entry.date.isoformat()})

    async def list_time_entries(params: ListTimeEntriesInput, context: ToolContext) -> ToolResult:
        user_id = params.user_id or context.user_id
        since = datetime.now(UTC).date() - timedelta(days=params.days)
        entries = sorted(
            (e for e in store.time_entries.values() if e.user_id == user_id and e.date >= since),
            key=lambda e: e.date,
            reverse=True,
        )
        return ToolResult.ok(
            {
                "entries": [
                    {
                        "id": e.id,
                        "date": e.date.isoformat(),
                        "hours": e.hours,
                        "taskId": e.task_id,
                        "description": e.description,
                        "billable": e.billable,
                    }
                    for e in entries
                ],
                "totalHours": round(sum(e.hours for e in entries), 2),
                "billableHours": round(sum(e.hours for e in entries if e.billable), 2),
            }
        )

    return [
        ToolDefinition(
            name="log_time",
            description="Log hours worked by the current user, optionally against a task.",
            input_schema_class=LogTimeInput,
            module="pm",
            required_permission="write",
            handler=log_time,
        ),
        ToolDefinition(
            name="list_time_entries",
            description="List time entries for a user over the last N days with totals.",
            input_schema_class=ListTimeEntriesInput,
            module="pm",
            required_permission="read",
            handler=list_time_entries,
        ),
    ]
