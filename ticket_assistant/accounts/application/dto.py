"""
Accounts Application DTOs
==========================

Request and response models for the user administration endpoints.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ticket_assistant.accounts.domain.entities import User

RoleStr = Literal["user", "moderator", "admin"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def clean_skills(skills: List[str]) -> List[str]:
    """Strip, drop blanks and duplicates (first occurrence wins)."""
    cleaned: List[str] = []
    for skill in skills:
        skill = skill.strip()
        if skill and skill not in cleaned:
            cleaned.append(skill)
    return cleaned


# ========== Request DTOs ==========

class UserCreateRequest(BaseModel):
    """Register an identity verified by the upstream identity provider."""
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    role: RoleStr = Field(default="user")
    skills: List[str] = Field(default_factory=list)

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: List[str]) -> List[str]:
        return clean_skills(v)


class UserUpdateRequest(BaseModel):
    """
    Update role and skills of the user with ``email``.

    An empty (or missing) skills list keeps the current skills.
    """
    email: str = Field(..., min_length=3)
    role: Optional[RoleStr] = None
    skills: Optional[List[str]] = None

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return clean_skills(v) if v is not None else None


# ========== Response DTOs ==========

class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    skills: List[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            skills=list(user.skills),
            created_at=user.created_at,
        )


class UserListResponse(BaseModel):
    users: List[UserResponse]
    page: int
    total_pages: int
    total: int
    page_size: int
