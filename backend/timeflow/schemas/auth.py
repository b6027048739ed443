"""
Authentication-related Pydantic schemas.

Defines request/response models for first-run setup, login, token refresh,
password changes and resets, recovery keys, and API keys.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from ..auth.jwt_handler import MIN_PASSWORD_LENGTH


class SetupRequest(BaseModel):
    """First administrator creation request schema."""
    username: str = Field(..., min_length=3, max_length=100, description="Admin username")
    email: EmailStr = Field(..., description="Admin email address")
    full_name: str = Field(..., min_length=1, max_length=255, description="Admin full name")
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="Admin password")


class LoginRequest(BaseModel):
    """Login request schema."""
    username: str = Field(..., min_length=1, description="Username or email address")
    password: str = Field(..., min_length=1, description="User password")


class PasswordResetRequest(BaseModel):
    """Password reset request schema."""
    email: EmailStr = Field(..., description="User email address")


class PasswordResetConfirm(BaseModel):
    """Password reset confirmation schema."""
    token: str = Field(..., description="Password reset token")
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="New password")


class RecoveryResetRequest(BaseModel):
    """Password reset with a recovery key."""
    username_or_email: str = Field(..., min_length=1, description="Username or email address")
    recovery_key: str = Field(..., min_length=1, description="Recovery key issued at setup")
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="New password")


class ChangePasswordRequest(BaseModel):
    """Change password request schema."""
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="New password")


class UserInfo(BaseModel):
    """Authenticated user information schema."""
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: EmailStr = Field(..., description="User email address")
    full_name: str = Field(..., description="User full name")
    role: str = Field(..., description="Global role")
    is_active: bool = Field(..., description="Whether user is active")
    must_reset_password: bool = Field(..., description="Whether the user must change their password")
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Authentication response schema."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserInfo = Field(..., description="User information")


class SetupResponse(AuthResponse):
    """Setup response; the recovery key is only ever shown here."""
    recovery_key: str = Field(..., description="One-time recovery key")


class TokenRefreshResponse(BaseModel):
    """Token refresh response schema."""
    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class ApiKeyResponse(BaseModel):
    """API key response schema."""
    api_key: str = Field(..., description="Newly generated API key")


class StandardResponse(BaseModel):
    """Standard API response schema."""
    message: str = Field(..., description="Response message")
