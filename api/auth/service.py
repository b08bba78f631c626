"""
Auth business logic: accounts, login, tokens and the caller's own profile.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import asyncpg
from fastapi import HTTPException, UploadFile, status

from core import uploads
from core.db import Database, Executor

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _blank_to_none(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def public_user(user_row: dict) -> dict:
    """
    Drop the password hash (and anything else not meant for clients).
    """
    return schemas.UserResponse(
        id=int(user_row["id"]),
        username=str(user_row["username"]),
        email=str(user_row["email"]),
        profile_image=user_row.get("profile_image"),
    ).model_dump()


async def _issue_token_pair(conn: Executor, *, user_row: dict) -> schemas.TokenPairResponse:
    user_id = int(user_row["id"])

    access_token = security.build_access_token(
        user_id=user_id,
        username=user_row.get("username"),
        email=str(user_row["email"]),
    )
    raw_refresh_token = security.build_refresh_token()
    await repository.insert_refresh_token(
        conn,
        user_id=user_id,
        token_hash=security.hash_refresh_token(raw_refresh_token),
        expires_at=_utc_now() + timedelta(days=security.refresh_token_expire_days()),
    )
    return schemas.TokenPairResponse(token=access_token, refresh_token=raw_refresh_token)


async def create_account(db: Database, payload: schemas.RegisterRequest) -> dict:
    """
    Shared by self-registration and the dashboard's add-user.
    """
    username = payload.username or ""
    email = payload.email or ""
    password = payload.password or ""
    if not username or not email or not password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required",
        )

    if await repository.username_exists(db, username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )

    password_hash = security.hash_password(password)
    try:
        user_row = await repository.create_user(
            db,
            username=username,
            email=email,
            password_hash=password_hash,
        )
    except asyncpg.UniqueViolationError as exc:
        # Lost a race with a concurrent registration of the same name.
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        ) from exc

    logger.info("user_created user_id=%s", user_row["id"])
    return user_row


async def register(db: Database, payload: schemas.RegisterRequest) -> dict:
    await create_account(db, payload)
    return {"message": "User registered successfully"}


async def login(db: Database, payload: schemas.LoginRequest) -> schemas.LoginResponse:
    if not payload.email or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required",
        )

    user_row = await repository.get_user_by_email(db, payload.email)
    if user_row is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email")

    if payload.username is not None and payload.username != user_row["username"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid username")

    if not security.verify_password(payload.password, str(user_row.get("password") or "")):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")

    tokens = await _issue_token_pair(db, user_row=user_row)
    logger.info("user_logged_in user_id=%s", user_row["id"])
    return schemas.LoginResponse(
        message="Login successful",
        user=schemas.UserResponse(**public_user(user_row)),
        token=tokens.token,
        refresh_token=tokens.refresh_token,
    )


async def refresh_tokens(db: Database, payload: schemas.RefreshRequest) -> schemas.TokenPairResponse:
    incoming_hash = security.hash_refresh_token(payload.refresh_token.strip())

    async with db.transaction() as conn:
        old_token_row = await repository.get_refresh_token_by_hash(conn, incoming_hash)
        if old_token_row is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

        if old_token_row.get("revoked_at") is not None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token is revoked")

        expires_at = old_token_row.get("expires_at")
        if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token is expired")

        user_row = await repository.get_user_by_id(conn, int(old_token_row["user_id"]))
        if user_row is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

        await repository.revoke_refresh_token_by_id(conn, int(old_token_row["id"]))
        return await _issue_token_pair(conn, user_row=user_row)


async def logout(db: Database, payload: schemas.LogoutRequest) -> dict:
    token_hash = security.hash_refresh_token(payload.refresh_token.strip())
    await repository.revoke_refresh_token_by_hash(db, token_hash)
    return {"message": "Logged out"}


async def get_profile(db: Database, user_id: int) -> dict:
    user_row = await repository.get_profile(db, user_id)
    if user_row is None:
        # Token outlived the account.
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return public_user(user_row)


async def update_profile(
    db: Database,
    user_id: int,
    *,
    username: str | None,
    email: str | None,
    image: UploadFile | None,
) -> dict:
    """
    Store the new image first, then update the row in one transaction.

    The previous image file is removed only after the commit, and only as a
    best effort; a failed delete never fails the request.
    """
    directory = uploads.profile_dir()
    stored: list[str] = []
    if image is not None and image.filename:
        stored = await uploads.save_images([image], directory)
    new_image = stored[0] if stored else None

    try:
        async with db.transaction() as conn:
            current = await repository.lock_profile_image(conn, user_id)
            if current is None:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

            user_row = await repository.update_profile(
                conn,
                user_id,
                username=_blank_to_none(username),
                email=_blank_to_none(email),
                profile_image=new_image,
            )
            if user_row is None:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    except asyncpg.UniqueViolationError as exc:
        uploads.discard_files(directory, stored)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        ) from exc
    except BaseException:
        uploads.discard_files(directory, stored)
        raise

    old_image = current.get("profile_image")
    if new_image and old_image and old_image != new_image:
        uploads.delete_file(directory, old_image)

    logger.info("profile_updated user_id=%s image_replaced=%s", user_id, bool(new_image))
    return {"message": "Profile updated successfully", "user": public_user(user_row)}


async def change_password(db: Database, user_id: int, payload: schemas.ChangePasswordRequest) -> dict:
    if not payload.oldPassword or not payload.newPassword:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required",
        )

    user_row = await repository.get_user_by_id(db, user_id)
    if user_row is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if not security.verify_password(payload.oldPassword, str(user_row.get("password") or "")):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Old password is incorrect",
        )

    password_hash = security.hash_password(payload.newPassword)
    async with db.transaction() as conn:
        await repository.update_password(conn, user_id, password_hash)
        await repository.revoke_all_refresh_tokens_for_user(conn, user_id)

    logger.info("password_changed user_id=%s", user_id)
    return {"message": "Password changed successfully"}
