"""
In-memory stand-ins for the repository modules.

`FakeStore` methods mirror the repository function signatures (executor
first), so `install()` can swap them in with monkeypatch and the services
run unchanged.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal

import asyncpg

from auth import repository as auth_repository
from products import repository as products_repository
from users import repository as users_repository

AUTH_FUNCTIONS = (
    "create_user",
    "username_exists",
    "get_user_by_username",
    "get_user_by_email",
    "get_user_by_id",
    "get_profile",
    "lock_profile_image",
    "update_profile",
    "update_password",
    "insert_refresh_token",
    "get_refresh_token_by_hash",
    "revoke_refresh_token_by_id",
    "revoke_refresh_token_by_hash",
    "revoke_all_refresh_tokens_for_user",
)
USERS_FUNCTIONS = ("list_users", "count_users", "rename_user", "delete_user")
PRODUCTS_FUNCTIONS = (
    "insert_product",
    "list_products",
    "count_products",
    "lock_product",
    "delete_like",
    "insert_like",
    "increment_likes",
    "decrement_likes",
)


def _public(row: dict) -> dict:
    return {k: row[k] for k in ("id", "username", "email", "profile_image")}


class FakeDatabase:
    """
    Stands in for `core.db.Database`; the fake repositories ignore it.
    """

    @asynccontextmanager
    async def transaction(self):
        yield self


class FakeStore:
    def __init__(self) -> None:
        self.users: dict[int, dict] = {}
        self.products: dict[int, dict] = {}
        self.likes: set[tuple[int, int]] = set()
        self.refresh_tokens: dict[int, dict] = {}
        self._next_user_id = 1
        self._next_product_id = 1
        self._next_token_id = 1

    def install(self, monkeypatch) -> None:
        for module, names in (
            (auth_repository, AUTH_FUNCTIONS),
            (users_repository, USERS_FUNCTIONS),
            (products_repository, PRODUCTS_FUNCTIONS),
        ):
            for name in names:
                monkeypatch.setattr(module, name, getattr(self, name))

    # seeding

    def seed_user(self, username: str, email: str, password_hash: str = "x", *, user_id: int | None = None) -> dict:
        if user_id is None:
            user_id = self._next_user_id
        self._next_user_id = max(self._next_user_id, user_id + 1)
        row = {
            "id": user_id,
            "username": username,
            "email": email,
            "password": password_hash,
            "profile_image": None,
        }
        self.users[user_id] = row
        return row

    def seed_product(self, name: str = "Lamp", *, product_id: int | None = None, likes: int | None = 0) -> dict:
        if product_id is None:
            product_id = self._next_product_id
        self._next_product_id = max(self._next_product_id, product_id + 1)
        row = {
            "id": product_id,
            "productname": name,
            "price": Decimal("9.99"),
            "description": None,
            "tags": "[]",
            "productcategory": None,
            "image": "[]",
            "likes": likes,
        }
        self.products[product_id] = row
        return row

    def _find_user(self, **criteria) -> dict | None:
        for row in sorted(self.users.values(), key=lambda r: r["id"]):
            if all(row[k] == v for k, v in criteria.items()):
                return row
        return None

    # auth.repository

    async def create_user(self, conn, *, username, email, password_hash):
        if self._find_user(username=username):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        return _public(self.seed_user(username, email, password_hash))

    async def username_exists(self, conn, username):
        return self._find_user(username=username) is not None

    async def get_user_by_username(self, conn, username):
        row = self._find_user(username=username)
        return dict(row) if row else None

    async def get_user_by_email(self, conn, email):
        row = self._find_user(email=email)
        return dict(row) if row else None

    async def get_user_by_id(self, conn, user_id):
        row = self.users.get(user_id)
        return dict(row) if row else None

    async def get_profile(self, conn, user_id):
        row = self.users.get(user_id)
        return _public(row) if row else None

    async def lock_profile_image(self, conn, user_id):
        row = self.users.get(user_id)
        return {"id": row["id"], "profile_image": row["profile_image"]} if row else None

    async def update_profile(self, conn, user_id, *, username, email, profile_image):
        row = self.users.get(user_id)
        if row is None:
            return None
        if username is not None:
            other = self._find_user(username=username)
            if other is not None and other["id"] != user_id:
                raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
            row["username"] = username
        if email is not None:
            row["email"] = email
        if profile_image is not None:
            row["profile_image"] = profile_image
        return _public(row)

    async def update_password(self, conn, user_id, password_hash):
        row = self.users.get(user_id)
        if row is None:
            return False
        row["password"] = password_hash
        return True

    async def insert_refresh_token(self, conn, *, user_id, token_hash, expires_at):
        token_id = self._next_token_id
        self._next_token_id += 1
        row = {
            "id": token_id,
            "user_id": user_id,
            "token_hash": token_hash,
            "expires_at": expires_at,
            "revoked_at": None,
            "created_at": datetime.now(timezone.utc),
        }
        self.refresh_tokens[token_id] = row
        return dict(row)

    async def get_refresh_token_by_hash(self, conn, token_hash):
        for row in self.refresh_tokens.values():
            if row["token_hash"] == token_hash:
                if row["user_id"] not in self.users:
                    return None  # ON DELETE CASCADE
                return dict(row)
        return None

    async def revoke_refresh_token_by_id(self, conn, token_id):
        row = self.refresh_tokens.get(token_id)
        if row is None or row["revoked_at"] is not None:
            return False
        row["revoked_at"] = datetime.now(timezone.utc)
        return True

    async def revoke_refresh_token_by_hash(self, conn, token_hash):
        for row in self.refresh_tokens.values():
            if row["token_hash"] == token_hash and row["revoked_at"] is None:
                row["revoked_at"] = datetime.now(timezone.utc)
                return True
        return False

    async def revoke_all_refresh_tokens_for_user(self, conn, user_id):
        for row in self.refresh_tokens.values():
            if row["user_id"] == user_id and row["revoked_at"] is None:
                row["revoked_at"] = datetime.now(timezone.utc)

    # users.repository

    async def list_users(self, conn, *, limit, offset):
        rows = sorted(self.users.values(), key=lambda r: r["id"])[offset:offset + limit]
        return [{"id": r["id"], "username": r["username"], "email": r["email"]} for r in rows]

    async def count_users(self, conn):
        return len(self.users)

    async def rename_user(self, conn, username, *, new_username, new_email):
        row = self._find_user(username=username)
        if row is None:
            return None
        row["username"] = new_username
        row["email"] = new_email
        return _public(row)

    async def delete_user(self, conn, username):
        row = self._find_user(username=username)
        if row is None:
            return None
        del self.users[row["id"]]
        return {"id": row["id"], "profile_image": row["profile_image"]}

    # products.repository

    async def insert_product(self, conn, *, product_name, price, description, tags, product_category, images):
        row = self.seed_product(product_name)
        row.update(
            price=Decimal(str(price)),
            description=description,
            tags=json.dumps(tags),
            productcategory=product_category,
            image=json.dumps(images),
            likes=0,
        )
        return dict(row)

    async def list_products(self, conn, *, limit, offset):
        rows = sorted(self.products.values(), key=lambda r: r["id"])[offset:offset + limit]
        return [dict(r) for r in rows]

    async def count_products(self, conn):
        return len(self.products)

    async def lock_product(self, conn, product_id):
        row = self.products.get(product_id)
        return {"id": row["id"], "likes": row["likes"]} if row else None

    async def delete_like(self, conn, *, user_id, product_id):
        if (user_id, product_id) in self.likes:
            self.likes.remove((user_id, product_id))
            return True
        return False

    async def insert_like(self, conn, *, user_id, product_id):
        if (user_id, product_id) in self.likes:
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        self.likes.add((user_id, product_id))

    async def increment_likes(self, conn, product_id):
        row = self.products[product_id]
        row["likes"] = (row["likes"] or 0) + 1
        return row["likes"]

    async def decrement_likes(self, conn, product_id):
        row = self.products[product_id]
        row["likes"] = max((row["likes"] or 0) - 1, 0)
        return row["likes"]
