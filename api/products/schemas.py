"""
Product API schemas.

`tags` and `image` are stored as jsonb lists; `TAG_LIST` is the boundary
check applied to the JSON-encoded tags form field.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, TypeAdapter

TAG_LIST: TypeAdapter[list[str]] = TypeAdapter(list[str])


class Product(BaseModel):
    id: int
    productName: str
    price: float
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    productCategory: str | None = None
    image: list[str] = Field(default_factory=list)
    likes: int = 0


class ProductCreated(BaseModel):
    message: str
    product: Product


class ProductPage(BaseModel):
    page: int
    limit: int
    totalProducts: int
    totalPages: int
    products: list[Product]


class LikeRequest(BaseModel):
    # Presence is checked with `is None`; 0 is a valid id.
    userid: int | None = None


class LikeResponse(BaseModel):
    message: str
    liked: bool
    likes: int
