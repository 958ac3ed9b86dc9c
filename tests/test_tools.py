"""Tests for the console tools."""

from datetime import UTC, date, datetime, timedelta

import pytest
from pydantic import ValidationError

from console_ai.services.permissions import PermissionGate
from console_ai.tools.base import ToolContext
from console_ai.tools.registry import build_catalog

PM = ToolContext(user_id="user_pm", role="PM")
SALES = ToolContext(user_id="user_sales", role="COMMERCIALE")


@pytest.fixture
def catalog(platform_store):
    return build_catalog(platform_store, PermissionGate())


async def run(catalog, name, context=PM, **tool_input):
    return await catalog.find(name).execute(tool_input, context)


class TestTaskTools:
    """Tests for task management tools."""

    @pytest.mark.asyncio
    async def test_create_task_defaults(self, catalog, platform_store):
        """Test default assignee, status and priority."""
        result = await run(catalog, "create_task", title="Write release notes")

        assert result.success
        task = platform_store.tasks[result.data["id"]]
        assert task.assignee_id == "user_pm"
        assert task.creator_id == "user_pm"
        assert task.status == "TODO"
        assert task.priority == "MEDIUM"

    @pytest.mark.asyncio
    async def test_create_task_naive_due_date(self, catalog, platform_store):
        """Test that a due date without timezone is stored as UTC."""
        result = await run(catalog, "create_task", title="Ship it", dueDate="2026-10-20T17:00:00")

        task = platform_store.tasks[result.data["id"]]
        assert task.due_date == datetime(2026, 10, 20, 17, 0, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_list_tasks_sorted_by_priority(self, catalog):
        """Test that urgent tasks come first and filters apply."""
        await run(catalog, "create_task", title="Low one", priority="LOW")
        await run(catalog, "create_task", title="Urgent one", priority="URGENT")
        await run(catalog, "create_task", title="Someone else's", assigneeId="user_dev", context=SALES)

        result = await run(catalog, "list_tasks", mine=True)

        assert [t["title"] for t in result.data["tasks"]] == ["Urgent one", "Low one"]
        assert result.data["tasks"][0]["assignee"] == "Marco Bianchi"

    @pytest.mark.asyncio
    async def test_update_task_to_done(self, catalog, platform_store):
        """Test that completing a task stamps its completion time."""
        created = await run(catalog, "create_task", title="Review PR")

        result = await run(catalog, "update_task", taskId=created.data["id"], status="DONE")

        assert result.data["status"] == "DONE"
        assert platform_store.tasks[created.data["id"]].completed_at is not None

    @pytest.mark.asyncio
    async def test_update_missing_task(self, catalog):
        """Test that updating an unknown task is a failed result."""
        result = await run(catalog, "update_task", taskId="nope", status="DONE")

        assert not result.success
        assert result.error == "Task nope not found"

    @pytest.mark.asyncio
    async def test_task_details(self, catalog):
        """Test the detail view of a task."""
        created = await run(catalog, "create_task", title="Plan sprint", description="Two weeks")

        result = await run(catalog, "get_task_details", taskId=created.data["id"])

        assert result.data["description"] == "Two weeks"
        assert result.data["creator"] == "Marco Bianchi"
        assert result.data["completedAt"] is None

    @pytest.mark.asyncio
    async def test_invalid_priority(self, catalog):
        """Test that schema violations raise validation errors."""
        with pytest.raises(ValidationError):
            await run(catalog, "create_task", title="Bad", priority="SOMEDAY")


class TestCrmTools:
    """Tests for CRM tools."""

    @pytest.mark.asyncio
    async def test_create_and_search_leads(self, catalog):
        """Test lead creation and search."""
        await run(catalog, "create_lead", SALES, companyName="Acme Srl", contactName="Anna Conti", source="website")
        await run(catalog, "create_lead", SALES, companyName="Globex", contactName="Hank Scorpio")

        result = await run(catalog, "list_leads", SALES, search="acme")

        assert [lead["companyName"] for lead in result.data["leads"]] == ["Acme Srl"]
        assert result.data["leads"][0]["status"] == "NEW"

    @pytest.mark.asyncio
    async def test_update_lead_status(self, catalog, platform_store):
        """Test status changes append notes."""
        created = await run(catalog, "create_lead", SALES, companyName="Acme", contactName="Anna", notes="Met at fair")

        result = await run(
            catalog, "update_lead_status", SALES, leadId=created.data["id"], status="QUALIFIED", notes="Budget ok"
        )

        assert result.data["status"] == "QUALIFIED"
        assert platform_store.leads[created.data["id"]].notes == "Met at fair\nBudget ok"

    @pytest.mark.asyncio
    async def test_list_deals_pipeline_value(self, catalog, platform_store):
        """Test the pipeline total and ordering by value."""
        platform_store.add_deal(title="Website", client_name="Acme", owner_id="user_sales", value=5000.0)
        platform_store.add_deal(
            title="ERP rollout", client_name="Globex", owner_id="user_sales", value=40000.0, stage="NEGOTIATION"
        )

        result = await run(catalog, "list_deals", SALES)

        assert [d["title"] for d in result.data["deals"]] == ["ERP rollout", "Website"]
        assert result.data["pipelineValue"] == 45000.0

        negotiating = await run(catalog, "list_deals", SALES, stage="NEGOTIATION")
        assert negotiating.data["total"] == 1


class TestQuoteTools:
    """Tests for ERP quote tools."""

    @pytest.mark.asyncio
    async def test_create_quote_totals(self, catalog, platform_store):
        """Test line totals, VAT and numbering of a new quote."""
        result = await run(
            catalog,
            "create_quote",
            context=SALES,
            clientName="Acme",
            title="Website redesign",
            items=[
                {"description": "Design", "quantity": 2, "unitPrice": 500},
                {"description": "Hosting", "unitPrice": 100},
            ],
        )

        assert result.success
        assert result.data["subtotal"] == 1100.0
        assert result.data["taxAmount"] == 242.0
        assert result.data["total"] == 1342.0
        assert result.data["status"] == "DRAFT"
        assert result.data["number"] == f"QT-{datetime.now(UTC).year}-001"
        assert platform_store.quotes[result.data["id"]].creator_id == "user_sales"

    @pytest.mark.asyncio
    async def test_quote_needs_lines(self, catalog):
        """Test that a quote without lines is rejected."""
        with pytest.raises(ValidationError):
            await run(catalog, "create_quote", context=SALES, clientName="Acme", title="Empty", items=[])

    @pytest.mark.asyncio
    async def test_approve_by_number(self, catalog, platform_store):
        """Test approving a quote by its number, once."""
        created = await run(
            catalog,
            "create_quote",
            context=SALES,
            clientName="Acme",
            title="Support plan",
            items=[{"description": "Support", "unitPrice": 300}],
        )
        director = ToolContext(user_id="user_admin", role="ADMIN")

        approved = await run(catalog, "approve_quote", context=director, quoteId=created.data["number"])
        again = await run(catalog, "approve_quote", context=director, quoteId=created.data["id"])

        assert approved.data["status"] == "APPROVED"
        assert platform_store.quotes[created.data["id"]].approved_by == "user_admin"
        assert not again.success
        assert "cannot be approved" in again.error

        details = await run(catalog, "get_quote_details", context=director, quoteId=created.data["id"])
        assert details.data["approvedBy"] == "Giulia Rossi"
        assert details.data["lines"][0]["total"] == 300.0

    @pytest.mark.asyncio
    async def test_list_quotes_by_status(self, catalog):
        """Test filtering quotes by status."""
        for title in ("One", "Two"):
            await run(
                catalog,
                "create_quote",
                context=SALES,
                clientName="Acme",
                title=title,
                items=[{"description": "Work", "unitPrice": 10}],
            )

        drafts = await run(catalog, "list_quotes", context=SALES, status="DRAFT")
        approved = await run(catalog, "list_quotes", context=SALES, status="APPROVED")

        assert drafts.data["total"] == 2
        assert approved.data["quotes"] == []


class TestCalendarTools:
    """Tests for calendar tools."""

    @pytest.mark.asyncio
    async def test_create_event_default_end(self, catalog):
        """Test that events default to one hour."""
        result = await run(catalog, "create_calendar_event", title="Standup", start="2026-10-20T09:00:00+02:00")

        assert result.data["end"] == "2026-10-20T10:00:00+02:00"

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, catalog):
        """Test that inverted ranges are invalid input."""
        with pytest.raises(ValidationError):
            await run(
                catalog,
                "create_calendar_event",
                title="Backwards",
                start="2026-10-20T10:00:00+00:00",
                end="2026-10-20T09:00:00+00:00",
            )

    @pytest.mark.asyncio
    async def test_list_events_in_range(self, catalog):
        """Test that events outside the range are excluded."""
        now = datetime.now(UTC)
        await run(catalog, "create_calendar_event", title="Soon", start=(now + timedelta(days=1)).isoformat())
        await run(catalog, "create_calendar_event", title="Later", start=(now + timedelta(days=30)).isoformat())

        result = await run(catalog, "list_calendar_events")

        assert [e["title"] for e in result.data["events"]] == ["Soon"]


class TestSupportTools:
    """Tests for support ticket tools."""

    @pytest.mark.asyncio
    async def test_ticket_codes_and_lookup(self, catalog):
        """Test sequential codes and lookup by code."""
        support = ToolContext(user_id="user_support", role="SUPPORT")
        first = await run(catalog, "create_ticket", support, subject="Login fails", description="Error 500")
        await run(catalog, "create_ticket", support, subject="Invoice wrong", description="VAT missing")

        assert first.data["code"] == "TK-0001"
        details = await run(catalog, "get_ticket_details", support, ticketId="TK-0002")
        assert details.data["subject"] == "Invoice wrong"
        assert details.data["requester"] == "Paolo Gallo"

    @pytest.mark.asyncio
    async def test_unassigned_filter(self, catalog):
        """Test listing unassigned tickets."""
        support = ToolContext(user_id="user_support", role="SUPPORT")
        await run(catalog, "create_ticket", support, subject="A", description="a", assigneeId="user_support")
        await run(catalog, "create_ticket", support, subject="B", description="b")

        result = await run(catalog, "list_tickets", support, unassigned=True)

        assert [t["subject"] for t in result.data["tickets"]] == ["B"]


class TestTimeAndReportTools:
    """Tests for time tracking and reports."""

    @pytest.mark.asyncio
    async def test_log_time_and_list(self, catalog):
        """Test logging hours and the weekly totals."""
        await run(catalog, "log_time", hours=2.5)
        await run(catalog, "log_time", hours=1, billable=False)

        result = await run(catalog, "list_time_entries")

        assert result.data["totalHours"] == 3.5
        assert result.data["billableHours"] == 2.5

    @pytest.mark.asyncio
    async def test_log_time_unknown_task(self, catalog):
        """Test that time cannot be logged on a missing task."""
        result = await run(catalog, "log_time", hours=1, taskId="missing", date=date(2026, 10, 19).isoformat())

        assert result.error == "Task missing not found"

    @pytest.mark.asyncio
    async def test_my_day_summary(self, catalog):
        """Test the daily overview."""
        now = datetime.now(UTC)
        await run(catalog, "create_task", title="Overdue", dueDate=(now - timedelta(days=2)).isoformat())
        await run(catalog, "create_task", title="No date")
        await run(catalog, "log_time", hours=3)

        result = await run(catalog, "get_my_day_summary")

        assert result.data["openTasks"] == 2
        assert [t["title"] for t in result.data["overdue"]] == ["Overdue"]
        assert result.data["hoursLoggedToday"] == 3

    @pytest.mark.asyncio
    async def test_search_platform(self, catalog):
        """Test cross-module search."""
        await run(catalog, "create_task", title="Renew Acme contract")
        await run(catalog, "create_lead", SALES, companyName="Acme", contactName="Anna")

        result = await run(catalog, "search_platform", query="acme")

        assert result.data["total"] == 2
        assert set(result.data["results"]) == {"tasks", "leads", "tickets"}

        scoped = await run(catalog, "search_platform", query="acme", scope="leads")
        assert list(scoped.data["results"]) == ["leads"]
