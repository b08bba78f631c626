"""
Product endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from core.db import Database, get_db

from . import schemas, service

router = APIRouter()


@router.post("/products", status_code=status.HTTP_201_CREATED, response_model=schemas.ProductCreated)
async def create_product(
    productName: str | None = Form(default=None),
    price: float | None = Form(default=None),
    description: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    productCategory: str | None = Form(default=None),
    images: list[UploadFile] = File(default=[]),
    db: Database = Depends(get_db),
) -> schemas.ProductCreated:
    """
    Multipart form. `images` may repeat; `tags` is a JSON-encoded list of strings.
    """
    return await service.create_product(
        db,
        product_name=productName,
        price=price,
        description=description,
        tags_raw=tags,
        product_category=productCategory,
        images=images,
    )


@router.get("/addproduct", response_model=schemas.ProductPage)
async def list_products(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    db: Database = Depends(get_db),
) -> schemas.ProductPage:
    return await service.list_products(db, page_raw=page, limit_raw=limit)


@router.put("/products/{product_id}/likes", response_model=schemas.LikeResponse)
async def toggle_like(
    product_id: int,
    payload: schemas.LikeRequest,
    db: Database = Depends(get_db),
) -> schemas.LikeResponse:
    return await service.toggle_like(db, product_id=product_id, user_id=payload.userid)
