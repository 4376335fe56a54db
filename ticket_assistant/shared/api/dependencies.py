"""
Shared API Dependencies
=======================

Caller identity for route handlers.

Authentication happens upstream (gateway or identity provider); the
verified user id arrives in the ``X-User-ID`` header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure.repositories import SQLAlchemyUserRepository
from ticket_assistant.core import PermissionDenied
from ticket_assistant.infrastructure.database import get_session


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session)
) -> User:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-ID header")

    user = await SQLAlchemyUserRepository(session).get_by_id(x_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


async def require_staff(user: User = Depends(get_current_user)) -> User:
    """Moderators and admins."""
    if not user.is_staff:
        raise PermissionDenied()
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDenied()
    return user
