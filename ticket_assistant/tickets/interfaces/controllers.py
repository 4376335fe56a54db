"""
Tickets Controllers (API Routes)
=================================

FastAPI routes for ticket endpoints.

Controllers are thin - they delegate to the ticket service and, on
creation, to the triage dispatcher.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure import SQLAlchemyUserRepository
from ticket_assistant.infrastructure.database import get_session
from ticket_assistant.shared.api.dependencies import get_current_user
from ticket_assistant.shared.application import PageRequest
from ticket_assistant.shared.infrastructure.logging import get_logger
from ticket_assistant.tickets.application import (
    TicketService,
    TicketCreateRequest, TicketUpdateRequest, TicketBulkDeleteRequest,
    TicketEnvelope, TicketCreatedResponse, TicketListResponse,
    MessageResponse, BulkDeleteResponse,
    view_for
)
from ticket_assistant.tickets.infrastructure import SQLAlchemyTicketRepository
from ticket_assistant.triage.application import ITriageDispatcher, TicketCreatedEvent

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "Login page broken",
    "description": "Users get a 500 error from the auth API after submitting the login form."
}


# ========== Dependencies ==========

def get_ticket_service(session: AsyncSession = Depends(get_session)) -> TicketService:
    return TicketService(SQLAlchemyTicketRepository(session), SQLAlchemyUserRepository(session))


def get_triage_dispatcher(request: Request) -> ITriageDispatcher:
    dispatcher = getattr(request.app.state, "triage_dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Triage pipeline not initialized"
        )
    return dispatcher


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="Stores the ticket and starts AI triage (inline or queued, per `PROCESSING_MODE`).",
    responses={201: {"description": "Ticket created"}, 422: {"description": "Empty title or description"}},
    openapi_extra={"requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}}
)
async def create_ticket(
    payload: TicketCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
    dispatcher: ITriageDispatcher = Depends(get_triage_dispatcher)
):
    ticket = await service.create_ticket(user, payload)

    # Triage runs in its own sessions and must see the row
    await session.commit()

    await dispatcher.dispatch(TicketCreatedEvent(
        ticket_id=ticket.id,
        title=ticket.title,
        description=ticket.description,
        created_by=ticket.created_by
    ))

    return TicketCreatedResponse(
        message="Ticket created and processing started",
        ticket=view_for(user, ticket)
    )


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="""
    Paginated ticket list, newest first.

    - `page` >= 1, `limit` clamped to 1..100 (default 10)
    - `status=all` means no filter; other values are upper-cased
    - `search` matches title or description, case-insensitive
    - users only see their own tickets, in summary form
    """
)
async def list_tickets(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.list_tickets(user, PageRequest.from_query(page, limit), status_filter, search)


@router.get("/{ticket_id}", response_model=TicketEnvelope, summary="Get a ticket")
async def get_ticket(
    ticket_id: str,
    user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service)
):
    return TicketEnvelope(ticket=await service.get_ticket(user, ticket_id))


@router.patch(
    "/{ticket_id}",
    response_model=TicketEnvelope,
    summary="Update a ticket (moderator/admin)",
    responses={403: {"description": "Caller is not staff"}, 422: {"description": "Assignee is not staff"}}
)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service)
):
    return TicketEnvelope(ticket=await service.update_ticket(user, ticket_id, payload))


@router.delete("/{ticket_id}", response_model=MessageResponse, summary="Delete a ticket (admin)")
async def delete_ticket(
    ticket_id: str,
    user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service)
):
    await service.delete_ticket(user, ticket_id)
    return MessageResponse(message="Ticket deleted")


@router.delete("", response_model=BulkDeleteResponse, summary="Delete many tickets (admin)")
async def delete_tickets(
    payload: TicketBulkDeleteRequest,
    user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.delete_tickets(user, payload.normalized_ids())


tickets_router = router
