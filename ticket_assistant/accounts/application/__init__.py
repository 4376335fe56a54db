"""
Accounts Application Layer
===========================

Contains:
- Services: user administration
- DTOs: request/response models
"""

from ticket_assistant.accounts.application.dto import (
    UserCreateRequest,
    UserUpdateRequest,
    UserResponse,
    UserListResponse,
    clean_skills,
)
from ticket_assistant.accounts.application.services import AccountService

__all__ = [
    "UserCreateRequest",
    "UserUpdateRequest",
    "UserResponse",
    "UserListResponse",
    "clean_skills",
    "AccountService",
]
