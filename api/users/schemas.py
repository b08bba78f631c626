"""
Dashboard user-management schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserUpdateRequest(BaseModel):
    newUsername: str | None = Field(default=None, max_length=50)
    newEmail: str | None = Field(default=None, max_length=100)


class UserListItem(BaseModel):
    id: int
    username: str
    email: str


class UserPage(BaseModel):
    page: int
    limit: int
    totalUsers: int
    totalPages: int
    users: list[UserListItem]
