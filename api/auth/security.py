"""
Password hashing (bcrypt) and the signed tokens handed to clients.

Access tokens are short-lived HS256 JWTs carrying the user's id, username and
email. Refresh tokens are opaque random strings; only their SHA-256 digest is
stored.
"""

from __future__ import annotations

import hashlib
import secrets
import time
from typing import Any

import bcrypt
import jwt

from core.config import env_int, env_str

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72

DEFAULT_TOKEN_HEADER = "x-auth-token"


class AuthSecurityError(RuntimeError):
    pass


def jwt_secret() -> str:
    # Set JWT_SECRET outside local development.
    return env_str("JWT_SECRET", "dev-change-this-secret")


def jwt_algorithm() -> str:
    return env_str("JWT_ALG", "HS256")


def refresh_token_expire_days() -> int:
    return env_int("REFRESH_TOKEN_EXPIRE_DAYS", 30)


def auth_token_header() -> str:
    """
    Header the auth dependency reads the access token from (lower-cased).
    """
    return env_str("AUTH_TOKEN_HEADER", DEFAULT_TOKEN_HEADER).lower()


def password_too_long(plain_password: str) -> bool:
    return len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise AuthSecurityError("Password is empty.")
    if password_too_long(plain_password):
        raise AuthSecurityError(f"Password is longer than {MAX_PASSWORD_BYTES} bytes.")
    digest = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt())
    return digest.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash or password_too_long(plain_password):
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def build_access_token(*, user_id: int, username: str | None, email: str) -> str:
    issued_at = int(time.time())
    lifetime_s = env_int("ACCESS_TOKEN_EXPIRE_MIN", 60) * 60
    claims = {
        "sub": str(user_id),
        "id": user_id,
        "username": username,
        "email": email,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + lifetime_s,
    }
    return jwt.encode(claims, jwt_secret(), algorithm=jwt_algorithm())


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry; the claims must describe an access token for a user id.
    """
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Access token is empty.")

    try:
        claims = jwt.decode(raw, jwt_secret(), algorithms=[jwt_algorithm()])
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc

    if claims.get("type") != "access":
        raise AuthSecurityError("Token is not an access token.")
    if not isinstance(claims.get("id"), int):
        raise AuthSecurityError("Access token carries no user id.")
    return claims


def build_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def hash_refresh_token(raw_refresh_token: str) -> str:
    if not raw_refresh_token:
        raise AuthSecurityError("Refresh token is empty.")
    return hashlib.sha256(raw_refresh_token.encode("utf-8")).hexdigest()
