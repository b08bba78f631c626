"""
Auth and own-profile endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from core.db import Database, get_db

from . import dependencies, schemas, service

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.MessageResponse)
async def register(
    payload: schemas.RegisterRequest,
    db: Database = Depends(get_db),
) -> dict:
    return await service.register(db, payload)


@router.post("/login", response_model=schemas.LoginResponse)
async def login(
    payload: schemas.LoginRequest,
    db: Database = Depends(get_db),
) -> schemas.LoginResponse:
    return await service.login(db, payload)


@router.post("/token/refresh", response_model=schemas.TokenPairResponse)
async def refresh(
    payload: schemas.RefreshRequest,
    db: Database = Depends(get_db),
) -> schemas.TokenPairResponse:
    return await service.refresh_tokens(db, payload)


@router.post("/logout", response_model=schemas.MessageResponse)
async def logout(
    payload: schemas.LogoutRequest,
    db: Database = Depends(get_db),
) -> dict:
    return await service.logout(db, payload)


@router.get("/profile", response_model=schemas.UserResponse)
async def read_profile(
    claims: dict = Depends(dependencies.get_current_claims),
    db: Database = Depends(get_db),
) -> dict:
    return await service.get_profile(db, int(claims["id"]))


@router.put("/profile", response_model=schemas.ProfileUpdateResponse)
async def update_profile(
    username: str | None = Form(default=None, max_length=50),
    email: str | None = Form(default=None, max_length=100),
    profile_image: UploadFile | None = File(default=None),
    claims: dict = Depends(dependencies.get_current_claims),
    db: Database = Depends(get_db),
) -> dict:
    """
    Multipart form: optional `username`, `email` and a single `profile_image`.
    """
    return await service.update_profile(
        db,
        int(claims["id"]),
        username=username,
        email=email,
        image=profile_image,
    )


@router.put("/change-password", response_model=schemas.MessageResponse)
async def change_password(
    payload: schemas.ChangePasswordRequest,
    claims: dict = Depends(dependencies.get_current_claims),
    db: Database = Depends(get_db),
) -> dict:
    return await service.change_password(db, int(claims["id"]), payload)
