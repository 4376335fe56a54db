"""
Tickets Infrastructure Models
=============================

SQLAlchemy ORM model for support tickets.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Text, Uuid, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticket_assistant.infrastructure.database import Base
from ticket_assistant.accounts.infrastructure.models import UserModel
from ticket_assistant.config import TriageState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """
    Database model for the Ticket entity.

    ``status`` stays NULL until triage starts; ``triage_state`` records
    how far the triage pipeline got.
    """
    __tablename__ = "tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    priority: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    helpful_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    related_skills: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    triage_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TriageState.CREATED, index=True
    )
    triage_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_to_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    assigned_to: Mapped[Optional[UserModel]] = relationship(
        UserModel, foreign_keys=[assigned_to_id], lazy="selectin"
    )
