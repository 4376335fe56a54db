"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for the ticket triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from ticket_assistant.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
