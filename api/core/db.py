"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. FastAPI creates one on startup, keeps it on
`app.state.db` and closes it on shutdown (see `api/main.py`). Route handlers get
it through the `get_db` dependency instead of reaching for a module global.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Union
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import asyncpg
from fastapi import Request

from .config import env_int, env_str


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    """
    DATABASE_URL wins; otherwise the DSN is built from DB_HOST/DB_USER/DB_PASS/DB_NAME.
    """
    url = env_str("DATABASE_URL")
    if url:
        return _sanitize_database_url(url)

    user = env_str("DB_USER")
    name = env_str("DB_NAME")
    if not user or not name:
        raise RuntimeError("Set DATABASE_URL or DB_USER/DB_NAME (plus DB_HOST/DB_PASS).")

    password = env_str("DB_PASS")
    credentials = quote(user, safe="")
    if password:
        credentials += ":" + quote(password, safe="")
    host = env_str("DB_HOST", "localhost")
    port = env_int("DB_PORT", 5432)
    return f"postgresql://{credentials}@{host}:{port}/{name}"


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


class Connection:
    """
    Query helpers bound to a single connection (used inside a transaction).
    """

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        row = await self._conn.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        rows = await self._conn.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def fetch_val(self, sql: str, *args: Any) -> Any:
        return await self._conn.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        return await self._conn.execute(sql, *args)


class Database:
    """
    Pool-backed handle passed explicitly to repositories.

    Single statements run on any pooled connection. Multi-statement sequences
    go through `transaction()`, which pins one connection for the whole unit.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, dsn: str | None = None) -> "Database":
        pool = await asyncpg.create_pool(
            dsn=dsn or database_url(),
            min_size=env_int("DB_POOL_MIN_SIZE", 1),
            max_size=env_int("DB_POOL_MAX_SIZE", 5),
            command_timeout=30,
        )
        return cls(pool)

    async def close(self) -> None:
        await self._pool.close()

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self._pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self._pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def fetch_val(self, sql: str, *args: Any) -> Any:
        return await self._pool.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). Returns the status tag.
        """
        return await self._pool.execute(sql, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        """
        Unit of work: commit when the block exits cleanly, roll back on error.
        """
        async with self._pool.acquire() as conn:  # type: asyncpg.Connection
            async with conn.transaction():
                yield Connection(conn)


# Repositories accept either the pool-backed handle or a transaction connection.
Executor = Union[Database, Connection]


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database is not initialized. It is created in the app lifespan.")
    return db
