"""In-memory platform data used by the assistant's tools.

The real console keeps tasks, CRM records, quotes, calendar, tickets and timesheets in a
relational store; this module provides the same shapes in memory so the assistant can
run standalone and under test.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from cuid2 import cuid_wrapper

cuid = cuid_wrapper()

QUOTE_TAX_RATE = 22.0


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class User:
    id: str
    first_name: str
    last_name: str
    role: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Task:
    id: str
    title: str
    creator_id: str
    assignee_id: str
    description: str | None = None
    status: str = "TODO"  # TODO, IN_PROGRESS, IN_REVIEW, DONE, CANCELLED
    priority: str = "MEDIUM"  # LOW, MEDIUM, HIGH, URGENT
    project_id: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class Lead:
    id: str
    company_name: str
    contact_name: str
    owner_id: str
    email: str | None = None
    source: str | None = None
    status: str = "NEW"  # NEW, CONTACTED, QUALIFIED, PROPOSAL, WON, LOST
    estimated_value: float | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_now)


@dataclass
class Deal:
    id: str
    title: str
    client_name: str
    owner_id: str
    value: float = 0.0
    stage: str = "QUALIFICATION"  # QUALIFICATION, PROPOSAL, NEGOTIATION, CLOSED_WON, CLOSED_LOST
    expected_close_date: date | None = None
    created_at: datetime = field(default_factory=_now)


@dataclass
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    owner_id: str
    location: str | None = None
    description: str | None = None
    attendee_ids: list[str] = field(default_factory=list)


@dataclass
class Ticket:
    id: str
    code: str
    subject: str
    description: str
    requester_id: str
    priority: str = "MEDIUM"
    status: str = "OPEN"  # OPEN, IN_PROGRESS, WAITING_CLIENT, RESOLVED, CLOSED
    category: str | None = None
    assignee_id: str | None = None
    created_at: datetime = field(default_factory=_now)


@dataclass
class TimeEntry:
    id: str
    user_id: str
    hours: float
    date: date
    task_id: str | None = None
    description: str | None = None
    billable: bool = True


@dataclass
class QuoteLine:
    description: str
    quantity: float
    unit_price: float

    @property
    def total(self) -> float:
        return round(self.quantity * self.unit_price, 2)


@dataclass
class Quote:
    id: str
    number: str
    title: str
    client_name: str
    creator_id: str
    lines: list[QuoteLine] = field(default_factory=list)
    tax_rate: float = QUOTE_TAX_RATE
    status: str = "DRAFT"  # DRAFT, SENT, APPROVED, REJECTED, EXPIRED, INVOICED
    notes: str | None = None
    valid_until: date | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime = field(default_factory=_now)

    @property
    def subtotal(self) -> float:
        return round(sum(line.total for line in self.lines), 2)

    @property
    def tax_amount(self) -> float:
        return round(self.subtotal * self.tax_rate / 100, 2)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.tax_amount, 2)


class InMemoryPlatformStore:
    """In-memory platform data, seeded with a small team."""

    def __init__(self, users: list[User] | None = None):
        self.users: dict[str, User] = {user.id: user for user in (users or self._create_default_users())}
        self.tasks: dict[str, Task] = {}
        self.leads: dict[str, Lead] = {}
        self.deals: dict[str, Deal] = {}
        self.events: dict[str, CalendarEvent] = {}
        self.tickets: dict[str, Ticket] = {}
        self.time_entries: dict[str, TimeEntry] = {}
        self.quotes: dict[str, Quote] = {}

    def new_id(self) -> str:
        return cuid()

    def add_task(self, **fields: Any) -> Task:
        task = Task(id=self.new_id(), **fields)
        self.tasks[task.id] = task
        return task

    def add_lead(self, **fields: Any) -> Lead:
        lead = Lead(id=self.new_id(), **fields)
        self.leads[lead.id] = lead
        return lead

    def add_deal(self, **fields: Any) -> Deal:
        deal = Deal(id=self.new_id(), **fields)
        self.deals[deal.id] = deal
        return deal

    def add_event(self, **fields: Any) -> CalendarEvent:
        event = CalendarEvent(id=self.new_id(), **fields)
        self.events[event.id] = event
        return event

    def add_ticket(self, **fields: Any) -> Ticket:
        code = f"TK-{len(self.tickets) + 1:04d}"
        ticket = Ticket(id=self.new_id(), code=code, **fields)
        self.tickets[ticket.id] = ticket
        return ticket

    def add_time_entry(self, **fields: Any) -> TimeEntry:
        entry = TimeEntry(id=self.new_id(), **fields)
        self.time_entries[entry.id] = entry
        return entry

    def add_quote(self, **fields: Any) -> Quote:
        year = _now().year
        sequence = sum(1 for quote in self.quotes.values() if quote.number.startswith(f"QT-{year}-")) + 1
        quote = Quote(id=self.new_id(), number=f"QT-{year}-{sequence:03d}", **fields)
        self.quotes[quote.id] = quote
        return quote

    def user_name(self, user_id: str | None) -> str | None:
        if user_id is None:
            return None
        user = self.users.get(user_id)
        return user.full_name if user else None

    @staticmethod
    def _create_default_users() -> list[User]:
        return [
            User(id="user_admin", first_name="Giulia", last_name="Rossi", role="ADMIN"),
            User(id="user_pm", first_name="Marco", last_name="Bianchi", role="PM"),
            User(id="user_dev", first_name="Luca", last_name="Verdi", role="DEVELOPER"),
            User(id="user_sales", first_name="Sara", last_name="Neri", role="COMMERCIALE"),
            User(id="user_support", first_name="Paolo", last_name="Gallo", role="SUPPORT"),
        ]
