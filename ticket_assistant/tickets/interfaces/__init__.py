"""
Tickets Interfaces Layer
========================

Contains:
- Controllers: FastAPI route handlers
"""

from ticket_assistant.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
