"""CRM tools: leads and deals."""

from typing import Literal

from pydantic import BaseModel, Field

from console_ai.services.platform import InMemoryPlatformStore, Lead
from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult

LeadStatus = Literal["NEW", "CONTACTED", "QUALIFIED", "PROPOSAL", "WON", "LOST"]
DealStage = Literal["QUALIFICATION", "PROPOSAL", "NEGOTIATION", "CLOSED_WON", "CLOSED_LOST"]


class ListLeadsInput(BaseModel):
    status: LeadStatus | None = Field(None, description="Filter by lead status")
    source: str | None = Field(None, description="Filter by lead source (e.g. website, referral)")
    search: str | None = Field(None, description="Search in company or contact name")
    limit: int = Field(20, ge=1, le=50, description="Maximum number of results")


class CreateLeadInput(BaseModel):
    company_name: str = Field(..., alias="companyName", min_length=1, description="Company name (required)")
    contact_name: str = Field(..., alias="contactName", min_length=1, description="Contact person (required)")
    email: str | None = Field(None, description="Contact email")
    source: str | None = Field(None, description="Where the lead came from")
    estimated_value: float | None = Field(None, alias="estimatedValue", ge=0, description="Estimated value in EUR")
    notes: str | None = Field(None, description="Free-form notes")

    model_config = {"populate_by_name": True}


class UpdateLeadStatusInput(BaseModel):
    lead_id: str = Field(..., alias="leadId", description="Lead ID (required)")
    status: LeadStatus = Field(..., description="New status (required)")
    notes: str | None = Field(None, description="Notes to append")

    model_config = {"populate_by_name": True}


class ListDealsInput(BaseModel):
    stage: DealStage | None = Field(None, description="Filter by pipeline stage")
    min_value: float | None = Field(None, alias="minValue", ge=0, description="Minimum deal value")
    limit: int = Field(20, ge=1, le=50, description="Maximum number of results")

    model_config = {"populate_by_name": True}


def serialize_lead(lead: Lead) -> dict:
    return {
        "id": lead.id,
        "companyName": lead.company_name,
        "contactName": lead.contact_name,
        "email": lead.email,
        "source": lead.source,
        "status": lead.status,
        "estimatedValue": lead.estimated_value,
    }


def create_crm_tools(store: InMemoryPlatformStore) -> list[ToolDefinition]:
    async def list_leads(params: ListLeadsInput, context: ToolContext) -> ToolResult:
        leads = sorted(store.leads.values(), key=lambda lead: lead.created_at, reverse=True)
        if params.status:
            leads = [lead for lead in leads if lead.status == params.status]
        if params.source:
            leads = [lead for lead in leads if (lead.source or "").lower() == params.source.lower()]
        if params.search:
            needle = params.search.lower()
            leads = [
                lead for lead in leads if needle in lead.company_name.lower() or needle in lead.contact_name.lower()
            ]
        leads = leads[: params.limit]
        return ToolResult.ok({"leads": [serialize_lead(lead) for lead in leads], "total": len(leads)})

    async def create_lead(params: CreateLeadInput, context: ToolContext) -> ToolResult:
        lead = store.add_lead(
            company_name=params.company_name,
            contact_name=params.contact_name,
            email=params.email,
            source=params.source,
            estimated_value=params.estimated_value,
            notes=params.notes,
            owner_id=context.user_id,
        )
        return ToolResult.ok(serialize_lead(lead))

    async def update_lead_status(params: UpdateLeadStatusInput, context: ToolContext) -> ToolResult:
        lead = store.leads.get(params.lead_id)
        if lead is None:
            return ToolResult.fail(f"Lead {params.lead_id} not found")
        lead.status = params.status
        if params.notes:
            lead.notes = f"{lead.notes}\n{params.notes}" if lead.notes else params.notes
        return ToolResult.ok({"id": lead.id, "companyName": lead.company_name, "status": lead.status})

    async def list_deals(params: ListDealsInput, context: ToolContext) -> ToolResult:
        deals = sorted(store.deals.values(), key=lambda deal: deal.value, reverse=True)
        if params.stage:
            deals = [deal for deal in deals if deal.stage == params.stage]
        if params.min_value is not None:
            deals = [deal for deal in deals if deal.value >= params.min_value]
        deals = deals[: params.limit]
        return ToolResult.ok(
            {
                "deals": [
                    {
                        "id": deal.id,
                        "title": deal.title,
                        "clientName": deal.client_name,
                        "value": deal.value,
                        "stage": deal.stage,
                        "expectedCloseDate": deal.expected_close_date.isoformat()
                        if deal.expected_close_date
                        else None,
                    }
                    for deal in deals
                ],
                "total": len(deals),
                "pipelineValue": sum(deal.value for deal in deals),
            }
        )

    return [
        ToolDefinition(
            name="list_leads",
            description="List CRM leads filtered by status, source or name.",
            input_schema_class=ListLeadsInput,
            module="crm",
            required_permission="read",
            handler=list_leads,
        ),
        ToolDefinition(
            name="create_lead",
            description="Create a new CRM lead for a prospective client.",
            input_schema_class=CreateLeadInput,
            module="crm",
            required_permission="write",
            handler=create_lead,
        ),
        ToolDefinition(
            name="update_lead_status",
            description="Move a lead to a new status, optionally appending notes.",
            input_schema_class=UpdateLeadStatusInput,
            module="crm",
            required_permission="write",
            handler=update_lead_status,
        ),
        ToolDefinition(
            name="list_deals",
            description="List pipeline deals by stage and value, with the total pipeline value.",
            input_schema_class=ListDealsInput,
            module="crm",
            required_permission="read",
            handler=list_deals,
        ),
    ]
