"""
Tickets Infrastructure Layer
=============================

SQLAlchemy model and request-scoped repository for tickets.
"""

from ticket_assistant.tickets.infrastructure.models import TicketModel
from ticket_assistant.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    parse_uuid,
    to_ticket_entity,
    to_column_values,
)

__all__ = [
    "TicketModel",
    "SQLAlchemyTicketRepository",
    "parse_uuid",
    "to_ticket_entity",
    "to_column_values",
]
