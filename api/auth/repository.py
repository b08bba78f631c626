"""
Auth persistence helpers.

Every function takes the executor first: the pool-backed `Database` for
single statements, or a transaction `Connection` inside a unit of work.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.db import Executor

# Columns safe to send to clients. `password` is never part of a response.
PUBLIC_USER_COLUMNS = "id, username, email, profile_image"


async def create_user(conn: Executor, *, username: str, email: str, password_hash: str) -> dict:
    row = await conn.fetch_one(
        f"""
        INSERT INTO users (username, email, password)
        VALUES ($1, $2, $3)
        RETURNING {PUBLIC_USER_COLUMNS}
        """,
        username,
        email,
        password_hash,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def username_exists(conn: Executor, username: str) -> bool:
    row = await conn.fetch_one("SELECT id FROM users WHERE username = $1", username)
    return row is not None


async def get_user_by_username(conn: Executor, username: str) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, username, email, password, profile_image
        FROM users
        WHERE username = $1
        """,
        username,
    )


async def get_user_by_email(conn: Executor, email: str) -> dict | None:
    # email is not unique; the oldest account wins.
    return await conn.fetch_one(
        """
        SELECT id, username, email, password, profile_image
        FROM users
        WHERE email = $1
        ORDER BY id
        LIMIT 1
        """,
        email,
    )


async def get_user_by_id(conn: Executor, user_id: int) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, username, email, password, profile_image
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def get_profile(conn: Executor, user_id: int) -> dict | None:
    return await conn.fetch_one(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM users WHERE id = $1",
        user_id,
    )


async def lock_profile_image(conn: Executor, user_id: int) -> dict | None:
    """
    Current profile image, row-locked until the surrounding transaction ends.
    """
    return await conn.fetch_one(
        "SELECT id, profile_image FROM users WHERE id = $1 FOR UPDATE",
        user_id,
    )


async def update_profile(
    conn: Executor,
    user_id: int,
    *,
    username: str | None,
    email: str | None,
    profile_image: str | None,
) -> dict | None:
    """
    NULL parameters keep the stored value (COALESCE).
    """
    return await conn.fetch_one(
        f"""
        UPDATE users
        SET username = COALESCE($1, username),
            email = COALESCE($2, email),
            profile_image = COALESCE($3, profile_image)
        WHERE id = $4
        RETURNING {PUBLIC_USER_COLUMNS}
        """,
        username,
        email,
        profile_image,
        user_id,
    )


async def update_password(conn: Executor, user_id: int, password_hash: str) -> bool:
    row = await conn.fetch_one(
        "UPDATE users SET password = $1 WHERE id = $2 RETURNING id",
        password_hash,
        user_id,
    )
    return row is not None


async def insert_refresh_token(
    conn: Executor,
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
) -> dict:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    row = await conn.fetch_one(
        """
        INSERT INTO refresh_tokens (user_id, token_hash, expires_at)
        VALUES ($1, $2, $3)
        RETURNING id, user_id, token_hash, expires_at, revoked_at, created_at
        """,
        user_id,
        token_hash,
        expires_at,
    )
    if row is None:
        raise RuntimeError("Failed to insert refresh token.")
    return row


async def get_refresh_token_by_hash(conn: Executor, token_hash: str) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, user_id, token_hash, expires_at, revoked_at, created_at
        FROM refresh_tokens
        WHERE token_hash = $1
        """,
        token_hash,
    )


async def revoke_refresh_token_by_id(conn: Executor, token_id: int) -> bool:
    row = await conn.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE id = $1
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_id,
    )
    return row is not None


async def revoke_refresh_token_by_hash(conn: Executor, token_hash: str) -> bool:
    row = await conn.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE token_hash = $1
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_hash,
    )
    return row is not None


async def revoke_all_refresh_tokens_for_user(conn: Executor, user_id: int) -> None:
    await conn.execute(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE user_id = $1
          AND revoked_at IS NULL
        """,
        user_id,
    )
