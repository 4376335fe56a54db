"""
Accounts Domain Entities
========================

Pure Python user entity used by ticket handlers and the assignment resolver.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from ticket_assistant.config import UserRole, ASSIGNABLE_ROLES


@dataclass
class User:
    """
    An actor of the system.

    Skills are free-text tags; they only matter for moderators during
    ticket assignment.
    """
    id: str
    email: str
    role: str = UserRole.USER
    skills: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Moderators and admins manage tickets."""
        return self.role in ASSIGNABLE_ROLES

    @property
    def is_assignable(self) -> bool:
        return self.role in ASSIGNABLE_ROLES
