"""
Accounts Infrastructure Repositories
====================================

SQLAlchemy implementation of the user repository used by the identity
dependency and the admin endpoints.
"""

from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure.models import UserModel


def to_user_entity(model: UserModel) -> User:
    return User(
        id=str(model.id),
        email=model.email,
        role=model.role,
        skills=list(model.skills or []),
        created_at=model.created_at,
    )


class SQLAlchemyUserRepository:
    """SQLAlchemy user repository bound to one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            user_uuid = UUID(str(user_id))
        except ValueError:
            return None

        stmt = select(UserModel).where(UserModel.id == user_uuid)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_user_entity(model) if model else None

    async def _get_model_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(func.lower(UserModel.email) == email.strip().lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        model = await self._get_model_by_email(email)
        return to_user_entity(model) if model else None

    async def create(self, email: str, role: str, skills: Sequence[str]) -> User:
        model = UserModel(id=uuid4(), email=email.strip().lower(), role=role, skills=list(skills))
        self._session.add(model)
        await self._session.flush()
        return to_user_entity(model)

    async def update_by_email(
        self,
        email: str,
        *,
        role: Optional[str] = None,
        skills: Optional[Sequence[str]] = None
    ) -> Optional[User]:
        model = await self._get_model_by_email(email)
        if model is None:
            return None
        if role is not None:
            model.role = role
        if skills is not None:
            model.skills = list(skills)
        await self._session.flush()
        return to_user_entity(model)

    async def list(self, *, search: Optional[str] = None, limit: int = 10, offset: int = 0) -> List[User]:
        """List users newest first."""
        stmt = select(UserModel)
        if search:
            stmt = stmt.where(func.lower(UserModel.email).like(f"%{search.lower()}%"))
        stmt = stmt.order_by(UserModel.created_at.desc(), UserModel.email).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return [to_user_entity(m) for m in result.scalars().all()]

    async def count(self, *, search: Optional[str] = None) -> int:
        stmt = select(func.count(UserModel.id))
        if search:
            stmt = stmt.where(func.lower(UserModel.email).like(f"%{search.lower()}%"))
        result = await self._session.execute(stmt)
        return int(result.scalar_one())
