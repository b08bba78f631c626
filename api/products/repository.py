"""
Product persistence.
This module is where product and like-related SQL lives.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from core.db import Executor

PRODUCT_COLUMNS = "id, productname, price, description, tags, productcategory, image, likes"


def _json_arg(value: list[str]) -> str:
    """
    asyncpg does not encode Python lists for jsonb parameters by itself.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    return json.dumps(value, ensure_ascii=True)


async def insert_product(
    conn: Executor,
    *,
    product_name: str,
    price: float,
    description: str | None,
    tags: list[str],
    product_category: str | None,
    images: list[str],
) -> dict[str, Any]:
    row = await conn.fetch_one(
        f"""
        INSERT INTO products (productname, price, description, tags, productcategory, image, likes)
        VALUES ($1, $2, $3, $4::jsonb, $5, $6::jsonb, 0)
        RETURNING {PRODUCT_COLUMNS}
        """,
        product_name,
        Decimal(str(price)),
        description,
        _json_arg(tags),
        product_category,
        _json_arg(images),
    )
    if row is None:
        raise RuntimeError("Failed to insert product.")
    return row


async def list_products(conn: Executor, *, limit: int, offset: int) -> list[dict[str, Any]]:
    return await conn.fetch_all(
        f"""
        SELECT {PRODUCT_COLUMNS}
        FROM products
        ORDER BY id
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )


async def count_products(conn: Executor) -> int:
    total = await conn.fetch_val("SELECT count(*) FROM products")
    return int(total or 0)


async def lock_product(conn: Executor, product_id: int) -> dict[str, Any] | None:
    """
    Row-lock the product so concurrent toggles on it run one after another.
    """
    return await conn.fetch_one(
        "SELECT id, likes FROM products WHERE id = $1 FOR UPDATE",
        product_id,
    )


async def delete_like(conn: Executor, *, user_id: int, product_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM addlikes
        WHERE userid = $1
          AND productid = $2
        RETURNING userid
        """,
        user_id,
        product_id,
    )
    return row is not None


async def insert_like(conn: Executor, *, user_id: int, product_id: int) -> None:
    await conn.execute(
        "INSERT INTO addlikes (userid, productid) VALUES ($1, $2)",
        user_id,
        product_id,
    )


async def increment_likes(conn: Executor, product_id: int) -> int:
    likes = await conn.fetch_val(
        """
        UPDATE products
        SET likes = COALESCE(likes, 0) + 1
        WHERE id = $1
        RETURNING likes
        """,
        product_id,
    )
    return int(likes or 0)


async def decrement_likes(conn: Executor, product_id: int) -> int:
    likes = await conn.fetch_val(
        """
        UPDATE products
        SET likes = GREATEST(COALESCE(likes, 0) - 1, 0)
        WHERE id = $1
        RETURNING likes
        """,
        product_id,
    )
    return int(likes or 0)
