"""
Tickets Application Services
=============================

Ticket CRUD with role scoping:
- users create tickets and read their own (summary view)
- moderators and admins read everything and update tickets
- admins delete
"""

from typing import List, Optional

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure.repositories import SQLAlchemyUserRepository
from ticket_assistant.core import (
    DomainException, PermissionDenied, ResourceNotFoundException, ValidationException
)
from ticket_assistant.shared.application import PageRequest, page_window
from ticket_assistant.shared.infrastructure.logging import get_logger
from ticket_assistant.tickets.application.dto import (
    TicketCreateRequest, TicketUpdateRequest,
    TicketResponse, TicketSummaryResponse, TicketView, TicketListResponse,
    BulkDeleteResponse
)
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

logger = get_logger(__name__)


def normalize_status_filter(status: Optional[str]) -> Optional[str]:
    """``all`` and blank mean no filter; anything else is upper-cased."""
    if status is None:
        return None
    status = status.strip()
    if not status or status.lower() == "all":
        return None
    return status.upper()


def view_for(user: User, ticket: Ticket) -> TicketView:
    if user.is_staff:
        return TicketResponse.from_domain(ticket)
    return TicketSummaryResponse.from_domain(ticket)


class TicketService:
    """Application service for ticket CRUD."""

    def __init__(
        self,
        tickets: SQLAlchemyTicketRepository,
        users: SQLAlchemyUserRepository
    ):
        self._tickets = tickets
        self._users = users

    async def create_ticket(self, user: User, request: TicketCreateRequest) -> Ticket:
        ticket = await self._tickets.create(request.title, request.description, user.id)
        logger.info("Ticket created", extra={"ticket_id": ticket.id, "created_by": user.id})
        return ticket

    async def list_tickets(
        self,
        user: User,
        request: PageRequest,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> TicketListResponse:
        created_by = None if user.is_staff else user.id
        status = normalize_status_filter(status)
        search = search.strip() if search else None

        total = await self._tickets.count(created_by=created_by, status=status, search=search)
        window = page_window(request, total)
        tickets = await self._tickets.list(
            created_by=created_by,
            status=status,
            search=search,
            limit=window.limit,
            offset=window.offset
        )

        return TicketListResponse(
            tickets=[view_for(user, t) for t in tickets],
            page=window.page,
            total_pages=window.total_pages,
            total=total,
            page_size=window.limit,
        )

    async def get_ticket(self, user: User, ticket_id: str) -> TicketView:
        created_by = None if user.is_staff else user.id
        ticket = await self._tickets.get_by_id(ticket_id, created_by=created_by)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return view_for(user, ticket)

    async def update_ticket(self, user: User, ticket_id: str, request: TicketUpdateRequest) -> TicketResponse:
        if not user.is_staff:
            raise PermissionDenied()

        fields = request.to_fields()
        assignee_id = fields.get("assigned_to")
        if assignee_id is not None:
            assignee = await self._users.get_by_id(assignee_id)
            if assignee is None or not assignee.is_assignable:
                raise DomainException(
                    "assigned_to must reference a moderator or admin",
                    {"assigned_to": assignee_id}
                )

        if fields:
            ticket = await self._tickets.update(ticket_id, fields)
        else:
            ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        logger.info(
            "Ticket updated",
            extra={"ticket_id": ticket_id, "updated_by": user.id, "fields": sorted(fields)}
        )
        return TicketResponse.from_domain(ticket)

    async def delete_ticket(self, user: User, ticket_id: str) -> None:
        if not user.is_admin:
            raise PermissionDenied()

        if not await self._tickets.delete(ticket_id):
            raise ResourceNotFoundException("Ticket", ticket_id)
        logger.info("Ticket deleted", extra={"ticket_id": ticket_id, "deleted_by": user.id})

    async def delete_tickets(self, user: User, ticket_ids: List[str]) -> BulkDeleteResponse:
        if not user.is_admin:
            raise PermissionDenied()
        if not ticket_ids:
            raise ValidationException("No ticket IDs provided")

        deleted = await self._tickets.delete_many(ticket_ids)
        logger.info("Tickets deleted", extra={"requested": len(ticket_ids), "deleted": deleted})
        return BulkDeleteResponse(
            message=f"Deleted {deleted} ticket{'' if deleted == 1 else 's'}",
            deleted_count=deleted,
        )
