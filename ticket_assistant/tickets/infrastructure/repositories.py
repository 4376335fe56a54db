"""
Tickets Infrastructure Repositories
===================================

SQLAlchemy implementation of the ticket repository used by the CRUD
handlers. Operates inside the request's session.
"""

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import select, delete, func, or_, inspect
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.core import RepositoryException
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.tickets.infrastructure.models import TicketModel


def parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if value is None:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def to_ticket_entity(model: TicketModel) -> Ticket:
    """Map a row to the domain entity; the assignee is only read if already loaded."""
    assignee = None if "assigned_to" in inspect(model).unloaded else model.assigned_to
    return Ticket(
        id=str(model.id),
        title=model.title,
        description=model.description,
        created_by=str(model.created_by_id),
        status=model.status,
        priority=model.priority,
        summary=model.summary,
        helpful_notes=model.helpful_notes,
        related_skills=list(model.related_skills or []),
        assigned_to=str(model.assigned_to_id) if model.assigned_to_id else None,
        assigned_to_email=assignee.email if assignee is not None else None,
        triage_state=model.triage_state,
        triage_error=model.triage_error,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate entity field names to column names for partial updates."""
    values = dict(fields)
    if "assigned_to" in values:
        assignee = values.pop("assigned_to")
        values["assigned_to_id"] = parse_uuid(assignee) if assignee else None
        if assignee and values["assigned_to_id"] is None:
            raise RepositoryException(f"Invalid user ID: {assignee}")
    return values


class SQLAlchemyTicketRepository:
    """SQLAlchemy ticket repository bound to one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, ticket_id: str) -> Optional[TicketModel]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None
        stmt = select(TicketModel).where(TicketModel.id == ticket_uuid)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, ticket_id: str, created_by: Optional[str] = None) -> Optional[Ticket]:
        """Get ticket by ID, optionally restricted to its creator."""
        model = await self._get_model(ticket_id)
        if model is None:
            return None
        if created_by is not None and str(model.created_by_id) != created_by:
            return None
        return to_ticket_entity(model)

    async def create(self, title: str, description: str, created_by: str) -> Ticket:
        creator = parse_uuid(created_by)
        if creator is None:
            raise RepositoryException(f"Invalid user ID: {created_by}")

        model = TicketModel(
            id=uuid4(),
            title=title,
            description=description,
            created_by_id=creator,
            related_skills=[],
        )
        self._session.add(model)
        await self._session.flush()
        return to_ticket_entity(model)

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        model = await self._get_model(ticket_id)
        if model is None:
            return None

        for column, value in to_column_values(fields).items():
            setattr(model, column, value)

        await self._session.flush()
        await self._session.refresh(model, attribute_names=["assigned_to", "updated_at"])
        return to_ticket_entity(model)

    async def delete(self, ticket_id: str) -> bool:
        model = await self._get_model(ticket_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    async def delete_many(self, ticket_ids: Sequence[str]) -> int:
        uuids = [u for u in (parse_uuid(t) for t in ticket_ids) if u is not None]
        if not uuids:
            return 0
        result = await self._session.execute(delete(TicketModel).where(TicketModel.id.in_(uuids)))
        return result.rowcount or 0

    async def list(
        self,
        *,
        created_by: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets newest first."""
        stmt = self._apply_filters(select(TicketModel), created_by, status, search)
        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.id).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return [to_ticket_entity(m) for m in result.scalars().all()]

    async def count(
        self,
        *,
        created_by: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> int:
        stmt = self._apply_filters(select(func.count(TicketModel.id)), created_by, status, search)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def count_by_triage_state(self, states: Sequence[str]) -> Dict[str, int]:
        stmt = (
            select(TicketModel.triage_state, func.count(TicketModel.id))
            .where(TicketModel.triage_state.in_(list(states)))
            .group_by(TicketModel.triage_state)
        )
        result = await self._session.execute(stmt)
        counts = {state: 0 for state in states}
        counts.update({state: int(n) for state, n in result.all()})
        return counts

    @staticmethod
    def _apply_filters(stmt, created_by: Optional[str], status: Optional[str], search: Optional[str]):
        conditions = []
        if created_by is not None:
            conditions.append(TicketModel.created_by_id == parse_uuid(created_by))
        if status:
            conditions.append(TicketModel.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(TicketModel.title).like(pattern),
                func.lower(TicketModel.description).like(pattern),
            ))
        return stmt.where(*conditions) if conditions else stmt

