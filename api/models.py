"""
API request and response models for SessionVault REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(min_length=1, max_length=256)
    # No strength policy; max_length only bounds KDF input size.
    password: str = Field(min_length=1, max_length=1024)


class UserCreate(BaseModel):
    """Request body for POST /api/v1/auth/users (admin only)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=1024)
    role: RoleEnum = RoleEnum.USER


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """An authenticated identity. Never includes secret material."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: RoleEnum


class LoginResponse(BaseModel):
    """Response for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: RoleEnum
    token: str
    token_type: str = "bearer"
    expires_in: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
