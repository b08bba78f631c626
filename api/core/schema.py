"""
Startup DDL.

Every statement is idempotent so the API can boot against an empty database
or one that already holds data.
"""

from __future__ import annotations

import logging

from .db import Database

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
      id SERIAL PRIMARY KEY,
      username VARCHAR(50) UNIQUE NOT NULL,
      email VARCHAR(100) NOT NULL,
      password VARCHAR(255) NOT NULL,
      profile_image TEXT
    )
    """,
    # Older deployments created users without the image column.
    "ALTER TABLE users ADD COLUMN IF NOT EXISTS profile_image TEXT",
    """
    CREATE TABLE IF NOT EXISTS products (
      id SERIAL PRIMARY KEY,
      productname TEXT NOT NULL,
      price NUMERIC(12, 2) NOT NULL,
      description TEXT,
      tags JSONB NOT NULL DEFAULT '[]'::jsonb,
      productcategory TEXT,
      image JSONB NOT NULL DEFAULT '[]'::jsonb,
      likes INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS addlikes (
      userid INTEGER NOT NULL,
      productid INTEGER NOT NULL,
      UNIQUE (userid, productid)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
      id SERIAL PRIMARY KEY,
      user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
      token_hash TEXT UNIQUE NOT NULL,
      expires_at TIMESTAMPTZ NOT NULL,
      revoked_at TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
)


async def ensure_schema(db: Database) -> None:
    async with db.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    logger.info("schema_ready tables=users,products,addlikes,refresh_tokens")
