"""
Product business logic: creation with image uploads, listing, like toggle.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from fastapi import HTTPException, UploadFile, status
from pydantic import ValidationError

from auth import repository as auth_repository
from core import pagination, uploads
from core.db import Database

from . import repository, schemas

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

logger = logging.getLogger(__name__)


def parse_tags(raw: str | None) -> list[str]:
    """
    The form sends tags as a JSON-encoded list of strings.
    """
    text = (raw or "").strip()
    if not text:
        return []
    try:
        return schemas.TAG_LIST.validate_json(text)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid tags: expected a JSON array of strings",
        ) from exc


def _json_list(value: Any) -> list[str]:
    """
    Stored jsonb comes back as text; anything that is not a list becomes [].
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def to_product(row: dict) -> schemas.Product:
    return schemas.Product(
        id=int(row["id"]),
        productName=str(row["productname"]),
        price=float(row["price"]),
        description=row.get("description"),
        tags=_json_list(row.get("tags")),
        productCategory=row.get("productcategory"),
        image=_json_list(row.get("image")),
        likes=int(row.get("likes") or 0),
    )


async def create_product(
    db: Database,
    *,
    product_name: str | None,
    price: float | None,
    description: str | None,
    tags_raw: str | None,
    product_category: str | None,
    images: list[UploadFile],
) -> schemas.ProductCreated:
    product_name = (product_name or "").strip()
    if not product_name or price is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="productName and price are required",
        )
    if not math.isfinite(price):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="price must be a finite number",
        )
    tags = parse_tags(tags_raw)

    # Browsers submit an empty part when no file is picked.
    files = [f for f in images if f.filename]
    directory = uploads.product_dir()
    stored = await uploads.save_images(files, directory)

    try:
        row = await repository.insert_product(
            db,
            product_name=product_name,
            price=price,
            description=description,
            tags=tags,
            product_category=product_category,
            images=stored,
        )
    except BaseException:
        uploads.discard_files(directory, stored)
        raise

    logger.info("product_created product_id=%s images=%s", row["id"], len(stored))
    return schemas.ProductCreated(message="Product added successfully", product=to_product(row))


async def list_products(db: Database, *, page_raw: str | None, limit_raw: str | None) -> schemas.ProductPage:
    page = pagination.parse_page_param(page_raw, DEFAULT_PAGE)
    limit = pagination.parse_page_param(limit_raw, DEFAULT_LIMIT)

    rows = await repository.list_products(db, limit=limit, offset=pagination.page_offset(page, limit))
    total = await repository.count_products(db)
    return schemas.ProductPage(
        page=page,
        limit=limit,
        totalProducts=total,
        totalPages=pagination.total_pages(total, limit),
        products=[to_product(row) for row in rows],
    )


async def toggle_like(db: Database, *, product_id: int, user_id: int | None) -> schemas.LikeResponse:
    """
    Like if the (user, product) pair has no junction row, unlike otherwise.

    Runs as one transaction with the product row locked, so the counter
    always matches the number of junction rows.
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Product id and user id are required",
        )

    async with db.transaction() as conn:
        product = await repository.lock_product(conn, product_id)
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

        if await repository.delete_like(conn, user_id=user_id, product_id=product_id):
            likes = await repository.decrement_likes(conn, product_id)
            liked = False
        else:
            if await auth_repository.get_profile(conn, user_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
            await repository.insert_like(conn, user_id=user_id, product_id=product_id)
            likes = await repository.increment_likes(conn, product_id)
            liked = True

    logger.info("like_toggled product_id=%s user_id=%s liked=%s likes=%s", product_id, user_id, liked, likes)
    return schemas.LikeResponse(
        message="Product liked" if liked else "Product unliked",
        liked=liked,
        likes=likes,
    )
