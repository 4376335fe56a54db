"""
Accounts Infrastructure Models
==============================

SQLAlchemy ORM model for user identities.
"""

from datetime import datetime, timezone
from typing import List
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Uuid, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ticket_assistant.infrastructure.database import Base
from ticket_assistant.config import UserRole


class UserModel(Base):
    """
    Database model for the User entity.

    Credentials live with the upstream identity provider; only role and
    skills are kept here.
    """
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER, index=True)
    skills: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
