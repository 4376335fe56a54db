"""
Accounts Interfaces Layer
=========================

Contains:
- Controllers: FastAPI route handlers
"""

from ticket_assistant.accounts.interfaces.controllers import accounts_router

__all__ = ["accounts_router"]
