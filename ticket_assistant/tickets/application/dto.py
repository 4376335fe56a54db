"""
Tickets Application DTOs
=========================

Request and response models for the ticket endpoints.

Staff (moderators, admins) get the full ticket; plain users get a
summary view of their own tickets.
"""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ticket_assistant.tickets.domain.entities import Ticket

# ========== Type Aliases for Literals ==========
TicketStatusStr = Literal["TODO", "IN_PROGRESS", "DONE"]
PriorityStr = Literal["low", "medium", "high"]


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for ticket creation."""
    title: str = Field(..., min_length=1, max_length=200, description="Short title")
    description: str = Field(..., min_length=1, max_length=10000, description="Problem description")

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class TicketUpdateRequest(BaseModel):
    """
    Partial ticket update. Only fields present in the body are applied;
    ``assigned_to: null`` unassigns the ticket.
    """
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    helpful_notes: Optional[str] = Field(None, max_length=10000)
    assigned_to: Optional[str] = None

    def to_fields(self) -> dict:
        fields = {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key == "assigned_to"
        }
        if isinstance(fields.get("assigned_to"), str) and not fields["assigned_to"].strip():
            fields["assigned_to"] = None
        return fields


class TicketBulkDeleteRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)

    def normalized_ids(self) -> List[str]:
        """Non-blank ids, duplicates removed, order kept."""
        seen: List[str] = []
        for ticket_id in self.ids:
            ticket_id = ticket_id.strip()
            if ticket_id and ticket_id not in seen:
                seen.append(ticket_id)
        return seen


# ========== Response DTOs ==========

class AssigneeInfo(BaseModel):
    id: str
    email: Optional[str] = None


class TicketResponse(BaseModel):
    """Full ticket view for moderators and admins."""
    id: str
    title: str
    description: str
    status: Optional[str]
    priority: Optional[str]
    summary: Optional[str]
    helpful_notes: Optional[str]
    related_skills: List[str]
    assigned_to: Optional[AssigneeInfo]
    created_by: str
    triage_state: str
    triage_error: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        assignee = None
        if ticket.assigned_to:
            assignee = AssigneeInfo(id=ticket.assigned_to, email=ticket.assigned_to_email)
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            priority=ticket.priority,
            summary=ticket.summary,
            helpful_notes=ticket.helpful_notes,
            related_skills=list(ticket.related_skills),
            assigned_to=assignee,
            created_by=ticket.created_by,
            triage_state=ticket.triage_state,
            triage_error=ticket.triage_error,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


class TicketSummaryResponse(BaseModel):
    """What a ticket's creator sees."""
    id: str
    title: str
    description: str
    status: Optional[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketSummaryResponse":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            created_at=ticket.created_at,
        )


# Full view first: a summary payload lacks its required fields
TicketView = Union[TicketResponse, TicketSummaryResponse]


class TicketEnvelope(BaseModel):
    ticket: TicketView


class TicketCreatedResponse(BaseModel):
    message: str
    ticket: TicketView


class TicketListResponse(BaseModel):
    tickets: List[TicketView]
    page: int
    total_pages: int
    total: int
    page_size: int


class MessageResponse(BaseModel):
    message: str


class BulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int
