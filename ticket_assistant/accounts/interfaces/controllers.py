"""
Accounts Controllers (API Routes)
==================================

FastAPI routes for user administration. Admin only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.application import (
    AccountService,
    UserCreateRequest, UserUpdateRequest,
    UserResponse, UserListResponse
)
from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.accounts.infrastructure import SQLAlchemyUserRepository
from ticket_assistant.infrastructure.database import get_session
from ticket_assistant.shared.api.dependencies import require_admin
from ticket_assistant.shared.application import PageRequest

router = APIRouter(prefix="/users", tags=["Users"])


# ========== Dependencies ==========

def get_account_service(session: AsyncSession = Depends(get_session)) -> AccountService:
    return AccountService(SQLAlchemyUserRepository(session))


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="Paginated user list, newest first. `search` matches emails case-insensitively."
)
async def list_users(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    _: User = Depends(require_admin),
    service: AccountService = Depends(get_account_service)
):
    return await service.list_users(PageRequest.from_query(page, limit), search)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user identity"
)
async def create_user(
    payload: UserCreateRequest,
    _: User = Depends(require_admin),
    service: AccountService = Depends(get_account_service)
):
    return await service.create_user(payload)


@router.patch(
    "",
    response_model=UserResponse,
    summary="Update role and skills by email",
    description="An empty skills list keeps the current skills."
)
async def update_user(
    payload: UserUpdateRequest,
    _: User = Depends(require_admin),
    service: AccountService = Depends(get_account_service)
):
    return await service.update_user(payload)


accounts_router = router
