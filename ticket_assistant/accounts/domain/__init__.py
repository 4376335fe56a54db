"""Accounts domain layer."""

from ticket_assistant.accounts.domain.entities import User

__all__ = ["User"]
