"""
Accounts Infrastructure Layer
==============================

SQLAlchemy model and repository for user identities.
"""

from ticket_assistant.accounts.infrastructure.models import UserModel
from ticket_assistant.accounts.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    to_user_entity,
)

__all__ = ["UserModel", "SQLAlchemyUserRepository", "to_user_entity"]
