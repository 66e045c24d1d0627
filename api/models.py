"""
API request and response models for Gatehouse REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Username/password policy is NOT duplicated here: the fields only carry an
upper bound on raw input size. auth.passwords owns the real rules so the
client gets the same message whichever entry point it used.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    username: str = Field(max_length=255)
    password: str = Field(max_length=255)
    password_confirm: str = Field(max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)


class SigninRequest(BaseModel):
    """Request body for POST /api/v1/auth/signin."""

    username: str = Field(max_length=255)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account. The password hash is never included."""

    model_config = ConfigDict(frozen=True)

    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            username=account.username,
            first_name=account.first_name,
            last_name=account.last_name,
            created_at=account.created_at or "",
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


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

    status: str = "ok"
    version: str
