"""
API request and response models for the back-office access REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

No response model has a password or refresh-token-hash field. Responses are
built from Principal.public() through PrincipalResponse.from_principal().
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Principal, Role, Session, TokenPair

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SPECIAL_CHARS = "@$!%*?&"
# bcrypt reads at most 72 bytes; longer passwords are rejected, not truncated.
PASSWORD_MAX_BYTES = 72


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def _check_password_strength(value: str) -> str:
    """Require upper, lower, digit, and one of @$!%*?&."""
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
    if not (
        any(c.islower() for c in value)
        and any(c.isupper() for c in value)
        and any(c.isdigit() for c in value)
        and any(c in _SPECIAL_CHARS for c in value)
    ):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            f"one number, and one special character ({_SPECIAL_CHARS})"
        )
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: str = Field(max_length=255)
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_BYTES)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_strength(value)


class CreateAdminRequest(RegisterRequest):
    """Request body for POST /api/v1/admin/auth/create-admin. role defaults to admin."""

    role: Role = Role.ADMIN


class LoginRequest(BaseModel):
    """Request body for POST /auth/login and POST /admin/auth/login.

    No strength rules here: a login must fail with 401, not 422, for any
    password that could have been set under an older policy.
    """

    email: str = Field(max_length=255)
    password: str = Field(min_length=6, max_length=PASSWORD_MAX_BYTES)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh."""

    refresh_token: str = Field(min_length=1, max_length=4096)


class RoleUpdate(BaseModel):
    """Request body for PATCH /api/v1/admin/auth/users/{id}/role."""

    role: Role


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """Public view of an account. Never carries secret fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: Role
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(
            id=principal.id,
            username=principal.username,
            email=principal.email,
            role=principal.role,
            created_at=principal.created_at or "",
            updated_at=principal.updated_at or "",
        )


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class SessionResponse(TokenPairResponse):
    """Response for register / login / create-admin: account plus first token pair."""

    user: PrincipalResponse

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            user=PrincipalResponse.from_principal(session.principal),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        )


class VerifyResponse(BaseModel):
    """Response for GET /api/v1/auth/verify."""

    model_config = ConfigDict(frozen=True)

    valid: bool = True
    user_id: int
    email: str
    role: Role
    expires_at: int


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

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
