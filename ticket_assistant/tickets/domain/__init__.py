"""Tickets domain layer."""

from ticket_assistant.tickets.domain.entities import Ticket

__all__ = ["Ticket"]
