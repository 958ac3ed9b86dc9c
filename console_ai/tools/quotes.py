"""ERP tools: customer quotes."""

from datetime import UTC, date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore, Quote, QuoteLine
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult

QuoteStatus = Literal["DRAFT", "SENT", "APPROVED", "REJECTED", "EXPIRED", "INVOICED"]

APPROVABLE_STATUSES = {"DRAFT", "SENT"}


class ListQuotesInput(BaseModel):
    status: QuoteStatus | None = Field(None, description="Filter by quote status")
    limit: int = Field(20, ge=1, le=50, description="Maximum number of results")


class QuoteIdInput(BaseModel):
    quote_id: str = Field(..., alias="quoteId", description="Quote ID or number (e.g. QT-2026-001)")

    model_config = {"populate_by_name": True}


class QuoteLineInput(BaseModel):
    description: str = Field(..., min_length=1, description="Line description")
    quantity: float = Field(1, gt=0, description="Quantity (default 1)")
    unit_price: float = Field(..., alias="unitPrice", ge=0, description="Unit price in EUR")

    model_config = {"populate_by_name": True}


class CreateQuoteInput(BaseModel):
    client_name: str = Field(..., alias="clientName", min_length=1, description="Client company (required)")
    title: str = Field(..., min_length=1, description="Quote title (required)")
    items: list[QuoteLineInput] = Field(..., min_length=1, description="Quote lines (at least one)")
    notes: str | None = Field(None, description="Additional notes")
    valid_until: date | None = Field(None, alias="validUntil", description="Expiry date (YYYY-MM-DD)")

    model_config = {"populate_by_name": True}


def serialize_quote(quote: Quote) -> dict:
    return {
        "id": quote.id,
        "number": quote.number,
        "title": quote.title,
        "client": quote.client_name,
        "status": quote.status,
        "total": quote.total,
        "itemsCount": len(quote.lines),
        "createdAt": quote.created_at.isoformat(),
    }


def create_quote_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    def find_quote(ref: str) -> Quote | None:
        return store.quotes.get(ref) or next((q for q in store.quotes.values() if q.number == ref), None)

    async def list_quotes(params: ListQuotesInput, context: ToolContext) -> ToolResult:
        quotes = sorted(store.quotes.values(), key=lambda q: q.created_at, reverse=True)
        if params.status:
            quotes = [q for q in quotes if q.status == params.status]
        quotes = quotes[: params.limit]
        return ToolResult.ok({"quotes": [serialize_quote(q) for q in quotes], "total": len(quotes)})

    async def get_quote_details(params: QuoteIdInput, context: ToolContext) -> ToolResult:
        quote = find_quote(params.quote_id)
        if quote is None:
            return ToolResult.fail(f"Quote {params.quote_id} not found")
        details = serialize_quote(quote)
        details.update(
            lines=[
                {
                    "description": line.description,
                    "quantity": line.quantity,
                    "unitPrice": line.unit_price,
                    "total": line.total,
                }
                for line in quote.lines
            ],
            subtotal=quote.subtotal,
            taxRate=quote.tax_rate,
            taxAmount=quote.tax_amount,
            notes=quote.notes,
            validUntil=quote.valid_until.isoformat() if quote.valid_until else None,
            creator=store.user_name(quote.creator_id),
            approvedBy=store.user_name(quote.approved_by),
        )
        return ToolResult.ok(details)

    async def create_quote(params: CreateQuoteInput, context: ToolContext) -> ToolResult:
        quote = store.add_quote(
            title=params.title,
            client_name=params.client_name,
            creator_id=context.user_id,
            lines=[QuoteLine(item.description, item.quantity, item.unit_price) for item in params.items],
            notes=params.notes,
            valid_until=params.valid_until,
        )
        data = serialize_quote(quote)
        data.update(subtotal=quote.subtotal, taxAmount=quote.tax_amount)
        return ToolResult.ok(data)

    async def approve_quote(params: QuoteIdInput, context: ToolContext) -> ToolResult:
        quote = find_quote(params.quote_id)
        if quote is None:
            return ToolResult.fail(f"Quote {params.quote_id} not found")
        if quote.status not in APPROVABLE_STATUSES:
            return ToolResult.fail(f"Quote {quote.number} is {quote.status} and cannot be approved")
        quote.status = "APPROVED"
        quote.approved_by = context.user_id
        quote.approved_at = datetime.now(UTC)
        return ToolResult.ok(serialize_quote(quote))

    return [
        ToolDefinition(
            name="list_quotes",
            description="List quotes by status, newest first, with client and total.",
            input_schema_class=ListQuotesInput,
            module="erp",
            required_permission="read",
            handler=list_quotes,
        ),
        ToolDefinition(
            name="get_quote_details",
            description="Get a quote's lines, amounts, status and creator by ID or number.",
            input_schema_class=QuoteIdInput,
            module="erp",
            required_permission="read",
            handler=get_quote_details,
        ),
        ToolDefinition(
            name="create_quote",
            description="Create a draft quote from line items. Totals and 22% VAT are computed automatically.",
            input_schema_class=CreateQuoteInput,
            module="erp",
            required_permission="write",
            handler=create_quote,
        ),
        ToolDefinition(
            name="approve_quote",
            description="Approve a draft or sent quote. Requires approval rights on the ERP module.",
            input_schema_class=QuoteIdInput,
            module="erp",
            required_permission="approve",
            handler=approve_quote,
        ),
    ]
