"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementations of the ticket store and user directory the
triage pipeline talks to.

Unlike the request-scoped repositories, each call opens its own session
and commits on return: a triage run must persist every step on its own.
"""

from datetime import datetime, timezone
from typing import Any, AsyncContextManager, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure.models import UserModel
from ticket_assistant.accounts.infrastructure.repositories import to_user_entity
from ticket_assistant.config import UserRole
from ticket_assistant.core import RepositoryException
from ticket_assistant.infrastructure.database import get_session_context
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.tickets.infrastructure.models import TicketModel
from ticket_assistant.tickets.infrastructure.repositories import (
    parse_uuid, to_ticket_entity, to_column_values
)
from ticket_assistant.triage.application import ITicketStore, IUserDirectory

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class SQLAlchemyTicketStore(ITicketStore):
    """Ticket store issuing one short transaction per call."""

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    async def create(self, ticket: Ticket) -> Ticket:
        creator = parse_uuid(ticket.created_by)
        if creator is None:
            raise RepositoryException(f"Invalid user ID: {ticket.created_by}")

        async with self._session_factory() as session:
            model = TicketModel(
                id=parse_uuid(ticket.id) or uuid4(),
                title=ticket.title,
                description=ticket.description,
                created_by_id=creator,
                related_skills=list(ticket.related_skills),
                triage_state=ticket.triage_state,
            )
            session.add(model)
            await session.flush()
            return to_ticket_entity(model)

    async def find_by_id(self, ticket_id: str) -> Optional[Ticket]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        async with self._session_factory() as session:
            result = await session.execute(select(TicketModel).where(TicketModel.id == ticket_uuid))
            model = result.scalar_one_or_none()
            return to_ticket_entity(model) if model else None

    async def update_by_id(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        values = to_column_values(fields)
        values["updated_at"] = datetime.now(timezone.utc)

        async with self._session_factory() as session:
            result = await session.execute(
                update(TicketModel)
                .where(TicketModel.id == ticket_uuid)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                return None

        return await self.find_by_id(ticket_id)

    async def find_stale(self, states: Sequence[str], older_than: datetime) -> List[Ticket]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketModel)
                .where(TicketModel.triage_state.in_(list(states)))
                .where(TicketModel.updated_at < older_than)
                .order_by(TicketModel.created_at)
            )
            return [to_ticket_entity(m) for m in result.scalars().all()]


class SQLAlchemyUserDirectory(IUserDirectory):
    """Read-only user queries ordered by (created_at, email)."""

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    async def find_moderators(self) -> List[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserModel)
                .where(UserModel.role == UserRole.MODERATOR)
                .order_by(UserModel.created_at, UserModel.email)
            )
            return [to_user_entity(m) for m in result.scalars().all()]

    async def find_admin(self) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserModel)
                .where(UserModel.role == UserRole.ADMIN)
                .order_by(UserModel.created_at, UserModel.email)
                .limit(1)
            )
            model = result.scalar_one_or_none()
            return to_user_entity(model) if model else None
