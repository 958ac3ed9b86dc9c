"""Follow-up prompt suggestions keyed by the tools used in a turn."""

from collections.abc import Iterable

MAX_SUGGESTIONS = 3

TOOL_FOLLOWUPS: dict[str, tuple[str, ...]] = {
    # Tasks
    "list_tasks": ("Show overdue tasks", "Create a new task", "Which tasks are urgent?"),
    "create_task": ("Notify the assignee", "Create another task", "Show my open tasks"),
    "update_task": ("Show my open tasks", "Log time on this task", "Notify the assignee"),
    "get_task_details": ("Update the task status", "Log time on this task", "Reassign this task"),
    # CRM
    "list_leads": ("Convert a lead into a client", "How many leads this month?", "Leads by source"),
    "create_lead": ("Schedule a call with the lead", "Show all new leads", "Create a deal"),
    "update_lead_status": ("Show qualified leads", "Create a follow-up task", "Leads by source"),
    "list_deals": ("Total pipeline value", "Deals closing this week", "CRM statistics"),
    # ERP
    "list_quotes": ("Show quotes awaiting approval", "Create a new quote", "Quotes for a client"),
    "get_quote_details": ("Approve this quote", "Create a follow-up task", "Show all sent quotes"),
    "create_quote": ("Show the quote details", "Create another quote", "List draft quotes"),
    "approve_quote": ("List approved quotes", "Create a follow-up task", "Show the quote details"),
    # Calendar
    "list_calendar_events": ("Find a free slot", "Create an event", "What do I have tomorrow?"),
    "create_calendar_event": ("Show my week", "Invite a colleague", "Create a prep task"),
    # Support
    "list_tickets": ("Open a ticket", "Urgent open tickets", "Unassigned tickets"),
    "get_ticket_details": ("Update the ticket status", "Assign the ticket", "Reply to the ticket"),
    "create_ticket": ("List open tickets", "Assign to a colleague", "Tickets by client"),
    # Time tracking
    "list_time_entries": ("Log hours", "Weekly summary", "Hours by project"),
    "log_time": ("Hours logged today", "Hours logged this week", "Active tasks"),
    # Reports
    "get_my_day_summary": ("Which tasks should I finish today?", "Show tomorrow's calendar", "Weekly report"),
    "search_platform": ("Search in a specific area", "Show result details", "Filter by status"),
}


def generate_followups(tool_names: Iterable[str]) -> list[str]:
    """Up to three suggestions, deduplicated in first-seen order."""
    suggestions: list[str] = []
    seen: set[str] = set()
    for name in tool_names:
        for suggestion in TOOL_FOLLOWUPS.get(name, ()):
            if suggestion not in seen:
                seen.add(suggestion)
                suggestions.append(suggestion)
    return suggestions[:MAX_SUGGESTIONS]
