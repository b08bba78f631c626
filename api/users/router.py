"""
Dashboard user-management endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from auth import schemas as auth_schemas
from core.db import Database, get_db

from . import schemas, service

router = APIRouter()


@router.get("/dashboard/add-users", response_model=schemas.UserPage)
async def list_users(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    db: Database = Depends(get_db),
) -> schemas.UserPage:
    """
    Users ordered by id. `page` defaults to 1, `limit` to 5; unusable values fall back to those.
    """
    return await service.list_users(db, page_raw=page, limit_raw=limit)


@router.post("/dashboard/add-user", status_code=status.HTTP_201_CREATED, response_model=auth_schemas.MessageResponse)
async def add_user(
    payload: auth_schemas.RegisterRequest,
    db: Database = Depends(get_db),
) -> dict:
    return await service.add_user(db, payload)


@router.put("/users/{username}")
async def update_user(
    username: str,
    payload: schemas.UserUpdateRequest,
    db: Database = Depends(get_db),
) -> dict:
    return await service.update_user(db, username, payload)


@router.delete("/users/{username}", response_model=auth_schemas.MessageResponse)
async def delete_user(
    username: str,
    db: Database = Depends(get_db),
) -> dict:
    return await service.delete_user(db, username)
