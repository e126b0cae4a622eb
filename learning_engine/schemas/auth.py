"""
Pydantic schemas for authentication
"""
from pydantic import Field, field_validator
from uuid import UUID

from learning_engine.schemas.common import CamelModel
from learning_engine.utils.security import MAX_PASSWORD_BYTES


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.\-]+$")
    password: str = Field(..., min_length=8, max_length=MAX_PASSWORD_BYTES)
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("password")
    @classmethod
    def password_fits_hash(cls, value: str) -> str:
        # max_length counts characters; multi-byte characters can still overflow
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(CamelModel):
    """Over-long passwords are accepted here and fail verification like any wrong password"""
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(CamelModel):
    id: UUID
    username: str
    name: str
    role: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
