"""Calendar tools."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field, model_validator

from console_ai.services.platform import CalendarEvent, InMemoryPlatformStore
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult


class ListEventsInput(BaseModel):
    start: datetime | None = Field(None, description="Range start (ISO 8601, default now)")
    end: datetime | None = Field(None, description="Range end (ISO 8601, default start + 7 days)")


class CreateEventInput(BaseModel):
    title: str = Field(..., min_length=1, description="Event title (required)")
    start: datetime = Field(..., description="Start (ISO 8601, required)")
    end: datetime | None = Field(None, description="End (ISO 8601, default start + 1 hour)")
    location: str | None = Field(None, description="Location or meeting link")
    description: str | None = Field(None, description="Event description")
    attendee_ids: list[str] = Field(default_factory=list, alias="attendeeIds", description="Attendee user IDs")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def check_range(self) -> "CreateEventInput":
        if self.end is not None and self.end <= self.start:
            raise ValueError("Event end must be after its start")
        return self


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def serialize_event(event: CalendarEvent) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "location": event.location,
        "attendeeIds": event.attendee_ids,
    }


def create_calendar_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    async def list_calendar_events(params: ListEventsInput, context: ToolContext) -> ToolResult:
        start = _aware(params.start) if params.start else datetime.now(UTC)
        end = _aware(params.end) if params.end else start + timedelta(days=7)
        events = [
            event
            for event in store.events.values()
            if (event.owner_id == context.user_id or context.user_id in event.attendee_ids)
            and event.end >= start
            and event.start <= end
        ]
        events.sort(key=lambda event: event.start)
        return ToolResult.ok({"events": [serialize_event(e) for e in events], "total": len(events)})

    async def create_calendar_event(params: CreateEventInput, context: ToolContext) -> ToolResult:
        start = _aware(params.start)
        end = _aware(params.end) if params.end else start + timedelta(hours=1)
        event = store.add_event(
            title=params.title,
            start=start,
            end=end,
            owner_id=context.user_id,
            location=params.location,
            description=params.description,
            attendee_ids=list(params.attendee_ids),
        )
        return ToolResult.ok(serialize_event(event))

    return [
        ToolDefinition(
            name="list_calendar_events",
            description="List the current user's calendar events in a date range (default: next 7 days).",
            input_schema_class=ListEventsInput,
            module="pm",
            required_permission="read",
            handler=list_calendar_events,
        ),
        ToolDefinition(
            name="create_calendar_event",
            description="Create a calendar event for the current user, optionally inviting colleagues.",
            input_schema_class=CreateEventInput,
            module="pm",
            required_permission="write",
            handler=create_calendar_event,
        ),
    ]
