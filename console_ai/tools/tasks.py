"""Task management tools."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore, Task
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult

TaskStatus = Literal["TODO", "IN_PROGRESS", "IN_REVIEW", "DONE", "CANCELLED"]
TaskPriority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]

PRIORITY_ORDER = {"URGENT": 0, "HIGH": 1, "MEDIUM": 2, "LOW": 3}


class ListTasksInput(BaseModel):
    status: TaskStatus | None = Field(None, description="Filter by status")
    priority: TaskPriority | None = Field(None, description="Filter by priority")
    assignee_id: str | None = Field(None, alias="assigneeId", description="Filter by assignee user ID")
    mine: bool = Field(False, description="Only tasks created by or assigned to the current user")
    limit: int = Field(20, ge=1, le=50, description="Maximum number of results (default 20, max 50)")

    model_config = {"populate_by_name": True}


class CreateTaskInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description="Task title (required)")
    description: str | None = Field(None, description="Detailed description")
    priority: TaskPriority = Field("MEDIUM", description="Priority (default MEDIUM)")
    assignee_id: str | None = Field(None, alias="assigneeId", description="Assignee user ID (default: current user)")
    project_id: str | None = Field(None, alias="projectId", description="Project ID")
    due_date: datetime | None = Field(None, alias="dueDate", description="Due date (ISO 8601)")

    model_config = {"populate_by_name": True}


class UpdateTaskInput(BaseModel):
    task_id: str = Field(..., alias="taskId", description="ID of the task to update (required)")
    status: TaskStatus | None = Field(None, description="New status")
    priority: TaskPriority | None = Field(None, description="New priority")
    assignee_id: str | None = Field(None, alias="assigneeId", description="New assignee user ID")
    due_date: datetime | None = Field(None, alias="dueDate", description="New due date (ISO 8601)")
    title: str | None = Field(None, description="New title")

    model_config = {"populate_by_name": True}


class TaskIdInput(BaseModel):
    task_id: str = Field(..., alias="taskId", description="Task ID")

    model_config = {"populate_by_name": True}


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def serialize_task(task: Task, store: InMemoryPlatformStore) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "dueDate": task.due_date.isoformat() if task.due_date else None,
        "assignee": store.user_name(task.assignee_id),
        "projectId": task.project_id,
    }


def create_task_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    async def list_tasks(params: ListTasksInput, context: ToolContext) -> ToolResult:
        tasks = list(store.tasks.values())
        if params.status:
            tasks = [t for t in tasks if t.status == params.status]
        if params.priority:
            tasks = [t for t in tasks if t.priority == params.priority]
        if params.assignee_id:
            tasks = [t for t in tasks if t.assignee_id == params.assignee_id]
        if params.mine:
            tasks = [t for t in tasks if context.user_id in (t.creator_id, t.assignee_id)]

        tasks.sort(key=lambda t: (PRIORITY_ORDER[t.priority], -t.updated_at.timestamp()))
        tasks = tasks[: params.limit]
        return ToolResult.ok({"tasks": [serialize_task(t, store) for t in tasks], "total": len(tasks)})

    async def create_task(params: CreateTaskInput, context: ToolContext) -> ToolResult:
        task = store.add_task(
            title=params.title,
            description=params.description,
            priority=params.priority,
            assignee_id=params.assignee_id or context.user_id,
            creator_id=context.user_id,
            project_id=params.project_id,
            due_date=_aware(params.due_date),
        )
        return ToolResult.ok({"id": task.id, "title": task.title, "status": task.status})

    async def update_task(params: UpdateTaskInput, context: ToolContext) -> ToolResult:
        task = store.tasks.get(params.task_id)
        if task is None:
            return ToolResult.fail(f"Task {params.task_id} not found")

        if params.status:
            task.status = params.status
            if params.status == "DONE":
                task.completed_at = datetime.now(UTC)
        if params.priority:
            task.priority = params.priority
        if params.assignee_id:
            task.assignee_id = params.assignee_id
        if params.due_date:
            task.due_date = _aware(params.due_date)
        if params.title:
            task.title = params.title
        task.updated_at = datetime.now(UTC)

        return ToolResult.ok({"id": task.id, "title": task.title, "status": task.status, "priority": task.priority})

    async def get_task_details(params: TaskIdInput, context: ToolContext) -> ToolResult:
        task = store.tasks.get(params.task_id)
        if task is None:
            return ToolResult.fail(f"Task {params.task_id} not found")
        details = serialize_task(task, store)
        details.update(
            description=task.description,
            creator=store.user_name(task.creator_id),
            createdAt=task.created_at.isoformat(),
            completedAt=task.completed_at.isoformat() if task.completed_at else None,
        )
        return ToolResult.ok(details)

    return [
        ToolDefinition(
            name="list_tasks",
            description=(
                "List tasks filtered by status, priority or assignee. "
                "Returns title, status, priority, assignee and due date."
            ),
            input_schema_class=ListTasksInput,
            module="pm",
            required_permission="read",
            handler=list_tasks,
        ),
        ToolDefinition(
            name="create_task",
            description="Create a new task with title, description, priority, assignee and due date.",
            input_schema_class=CreateTaskInput,
            module="pm",
            required_permission="write",
            handler=create_task,
        ),
        ToolDefinition(
            name="update_task",
            description="Update an existing task (status, priority, assignee, due date, title).",
            input_schema_class=UpdateTaskInput,
            module="pm",
            required_permission="write",
            handler=update_task,
        ),
        ToolDefinition(
            name="get_task_details",
            description="Get the full details of a task by ID.",
            input_schema_class=TaskIdInput,
            module="pm",
            required_permission="read",
            handler=get_task_details,
        ),
    ]
