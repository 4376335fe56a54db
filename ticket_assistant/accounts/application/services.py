"""
Accounts Application Services
==============================

User administration: listing, registering identities and changing roles
and skills. Callers are expected to be admins; the routers enforce that.
"""

from typing import Optional

from ticket_assistant.accounts.application.dto import (
    UserCreateRequest, UserUpdateRequest, UserResponse, UserListResponse
)
from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure.repositories import SQLAlchemyUserRepository
from ticket_assistant.config import UserRole
from ticket_assistant.core import ResourceNotFoundException, ValidationException
from ticket_assistant.shared.application import PageRequest, page_window
from ticket_assistant.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AccountService:
    """Application service for user administration."""

    def __init__(self, repository: SQLAlchemyUserRepository):
        self._repository = repository

    async def list_users(self, request: PageRequest, search: Optional[str] = None) -> UserListResponse:
        search = search.strip() if search else None
        total = await self._repository.count(search=search)
        window = page_window(request, total)
        users = await self._repository.list(search=search, limit=window.limit, offset=window.offset)

        return UserListResponse(
            users=[UserResponse.from_domain(u) for u in users],
            page=window.page,
            total_pages=window.total_pages,
            total=total,
            page_size=window.limit,
        )

    async def create_user(self, request: UserCreateRequest) -> UserResponse:
        if await self._repository.get_by_email(request.email):
            raise ValidationException(f"User with email '{request.email}' already exists")

        user = await self._repository.create(request.email, request.role, request.skills)
        logger.info("User registered", extra={"user_id": user.id, "role": user.role})
        return UserResponse.from_domain(user)

    async def update_user(self, request: UserUpdateRequest) -> UserResponse:
        user = await self._repository.update_by_email(
            request.email,
            role=request.role,
            skills=request.skills or None,
        )
        if user is None:
            raise ResourceNotFoundException("User", request.email)

        logger.info("User updated", extra={"user_id": user.id, "role": user.role, "skills": user.skills})
        return UserResponse.from_domain(user)

    async def ensure_admin(self, email: str) -> User:
        """Create ``email`` as admin unless a user with that email exists."""
        existing = await self._repository.get_by_email(email)
        if existing is not None:
            return existing

        user = await self._repository.create(email, UserRole.ADMIN, [])
        logger.info("Bootstrap admin created", extra={"user_id": user.id})
        return user
