"""
Dashboard user queries. Account creation and lookups by id/email live in
`auth/repository.py`.
"""

from __future__ import annotations

from auth.repository import PUBLIC_USER_COLUMNS
from core.db import Executor


async def list_users(conn: Executor, *, limit: int, offset: int) -> list[dict]:
    return await conn.fetch_all(
        """
        SELECT id, username, email
        FROM users
        ORDER BY id
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )


async def count_users(conn: Executor) -> int:
    total = await conn.fetch_val("SELECT count(*) FROM users")
    return int(total or 0)


async def rename_user(conn: Executor, username: str, *, new_username: str, new_email: str) -> dict | None:
    return await conn.fetch_one(
        f"""
        UPDATE users
        SET username = $1,
            email = $2
        WHERE username = $3
        RETURNING {PUBLIC_USER_COLUMNS}
        """,
        new_username,
        new_email,
        username,
    )


async def delete_user(conn: Executor, username: str) -> dict | None:
    return await conn.fetch_one(
        "DELETE FROM users WHERE username = $1 RETURNING id, profile_image",
        username,
    )
