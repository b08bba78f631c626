"""
Auth API schemas (request/response models).

Request fields are optional at the schema level so that a missing field is
answered with the service's own 400 message rather than a generic
validation error.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .security import MAX_PASSWORD_BYTES, password_too_long


def _check_password_length(value: str | None) -> str | None:
    if value is not None and password_too_long(value):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class RegisterRequest(BaseModel):
    username: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=100)
    password: str | None = Field(default=None, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str | None) -> str | None:
        return _check_password_length(value)


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    # Older clients also send the username; when present it must match.
    username: str | None = None


class ChangePasswordRequest(BaseModel):
    oldPassword: str | None = None
    newPassword: str | None = None

    @field_validator("newPassword")
    @classmethod
    def new_password_fits_bcrypt(cls, value: str | None) -> str | None:
        return _check_password_length(value)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=20)


class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., min_length=20)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    profile_image: str | None = None


class LoginResponse(BaseModel):
    message: str
    user: UserResponse
    token: str
    refresh_token: str


class TokenPairResponse(BaseModel):
    token: str
    refresh_token: str


class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
