"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import re
from typing import Annotated, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    EmailStr,
    Field,
    HttpUrl,
    model_validator,
)


def _check_password_strength(value: str) -> str:
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Password = Annotated[
    str,
    Field(min_length=8, max_length=100, description="Password (8-100 chars, upper, lower and digit)"),
    AfterValidator(_check_password_strength),
]

FullName = Annotated[
    str,
    Field(
        min_length=2,
        max_length=100,
        pattern=r"^[A-Za-z\s]+$",
        description="Full name (letters and spaces only)",
    ),
]

VerificationCode = Annotated[
    str,
    Field(
        min_length=4,
        max_length=10,
        pattern=r"^\d+$",
        description="Numeric verification code from the email",
    ),
]

Country = Annotated[str | None, Field(max_length=100)]


class _RegisterRequest(BaseModel):
    """Fields shared by both registration forms."""

    email: EmailStr
    password: Password
    confirm_password: str
    full_name: FullName
    country: Country = None

    @model_validator(mode="after")
    def passwords_match(self) -> "_RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ViewerRegisterRequest(_RegisterRequest):
    """Request model for viewer registration."""


class CreatorRegisterRequest(_RegisterRequest):
    """Request model for creator registration."""

    channel_name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        pattern=r"^[a-zA-Z0-9\s\-_]+$",
        description="Channel name (letters, numbers, spaces, hyphens, underscores)",
    )
    bio: str | None = Field(default=None, max_length=500)
    website_url: Annotated[HttpUrl | None, BeforeValidator(_blank_to_none)] = None


class VerificationSentResponse(BaseModel):
    """Response model for a code that has been issued and sent."""

    message: str
    email: str
    expires_in_seconds: int


class VerifyRegistrationRequest(BaseModel):
    """Request model for confirming a registration code."""

    email: EmailStr
    code: VerificationCode
    role: Literal["VIEWER", "CREATOR"]


class ResendCodeRequest(BaseModel):
    """Request model for resending a registration code."""

    email: EmailStr
    role: Literal["VIEWER", "CREATOR"]


class AccountCreatedResponse(BaseModel):
    """Response model for a confirmed registration."""

    message: str
    email: str
    account_id: str | None = None


class VerificationStatusResponse(BaseModel):
    """Whether a live verification code is pending for an email."""

    email: str
    pending: bool


class PasswordChangeRequest(BaseModel):
    """Request model for starting a password change (credentials via BASIC AUTH)."""

    new_password: Password


class ConfirmCodeRequest(BaseModel):
    """Request model carrying only a verification code."""

    code: VerificationCode


class PasswordResetRequest(BaseModel):
    """Request model for starting a forgotten-password reset."""

    email: EmailStr
    new_password: Password


class PasswordResetConfirmRequest(BaseModel):
    """Request model for confirming a password reset code."""

    email: EmailStr
    code: VerificationCode


class PasswordUpdatedResponse(BaseModel):
    """Response model for a confirmed password change or reset."""

    message: str
    email: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str


class VerificationErrorResponse(BaseModel):
    """Rejected verification code; `reason` names which check failed."""

    detail: str
    reason: Literal["not_found", "expired", "too_many_attempts", "invalid_code"]
