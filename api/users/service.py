"""
Dashboard user management: paginated listing, add, rename and delete.

These routes carry no authentication, same as the dashboard they back.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import HTTPException, status

from auth import repository as auth_repository
from auth import schemas as auth_schemas
from auth import service as auth_service
from core import pagination, uploads
from core.db import Database

from . import repository, schemas

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 5

logger = logging.getLogger(__name__)


async def list_users(db: Database, *, page_raw: str | None, limit_raw: str | None) -> schemas.UserPage:
    page = pagination.parse_page_param(page_raw, DEFAULT_PAGE)
    limit = pagination.parse_page_param(limit_raw, DEFAULT_LIMIT)

    rows = await repository.list_users(db, limit=limit, offset=pagination.page_offset(page, limit))
    total = await repository.count_users(db)
    return schemas.UserPage(
        page=page,
        limit=limit,
        totalUsers=total,
        totalPages=pagination.total_pages(total, limit),
        users=[schemas.UserListItem(**row) for row in rows],
    )


async def add_user(db: Database, payload: auth_schemas.RegisterRequest) -> dict:
    await auth_service.create_account(db, payload)
    return {"message": "Dashboard user added successfully"}


async def update_user(db: Database, username: str, payload: schemas.UserUpdateRequest) -> dict:
    if not payload.newUsername or not payload.newEmail:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both username and email are required",
        )

    if payload.newUsername != username and await auth_repository.username_exists(db, payload.newUsername):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    try:
        user_row = await repository.rename_user(
            db,
            username,
            new_username=payload.newUsername,
            new_email=payload.newEmail,
        )
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists") from exc

    if user_row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("user_updated user_id=%s", user_row["id"])
    return {"message": "User updated successfully", "user": auth_service.public_user(user_row)}


async def delete_user(db: Database, username: str) -> dict:
    row = await repository.delete_user(db, username)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    uploads.delete_file(uploads.profile_dir(), row.get("profile_image"))
    logger.info("user_deleted user_id=%s", row["id"])
    return {"message": "User deleted successfully"}
