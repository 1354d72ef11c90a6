"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    email: EmailStr
    password: str = Field(
        ...,
        min_length=6,
        max_length=72,
        description="User password (6 characters to 72 UTF-8 bytes, one digit)",
    )


class LoginRequest(BaseModel):
    """Request model for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    """Response model for successful login."""

    token: str


class ForgotPasswordRequest(BaseModel):
    """Request model for requesting a password reset link."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request model for resetting a password with an emailed token."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    token: str = Field(..., min_length=1)
    new_password: str = Field(
        ...,
        alias="newPassword",
        min_length=6,
        max_length=72,
        description="New password (6 characters to 72 UTF-8 bytes, one digit)",
    )


class MessageResponse(BaseModel):
    """Generic acknowledgment."""

    message: str


class CurrentAccountResponse(BaseModel):
    """Identity carried by a verified session token."""

    id: str
    email: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
