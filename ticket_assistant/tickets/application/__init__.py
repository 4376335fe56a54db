"""
Tickets Application Layer
==========================

Contains:
- Services: ticket CRUD with role scoping
- DTOs: request/response models
"""

from ticket_assistant.tickets.application.dto import (
    TicketCreateRequest,
    TicketUpdateRequest,
    TicketBulkDeleteRequest,
    AssigneeInfo,
    TicketResponse,
    TicketSummaryResponse,
    TicketView,
    TicketEnvelope,
    TicketCreatedResponse,
    TicketListResponse,
    MessageResponse,
    BulkDeleteResponse,
)
from ticket_assistant.tickets.application.services import (
    TicketService,
    normalize_status_filter,
    view_for,
)

__all__ = [
    # DTOs
    "TicketCreateRequest",
    "TicketUpdateRequest",
    "TicketBulkDeleteRequest",
    "AssigneeInfo",
    "TicketResponse",
    "TicketSummaryResponse",
    "TicketView",
    "TicketEnvelope",
    "TicketCreatedResponse",
    "TicketListResponse",
    "MessageResponse",
    "BulkDeleteResponse",
    # Services
    "TicketService",
    "normalize_status_filter",
    "view_for",
]
