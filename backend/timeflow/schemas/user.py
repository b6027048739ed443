"""
User management-related Pydantic schemas.

Defines request/response models for user CRUD operations, user search,
and managed team assignment.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field

from ..database.models import UserRole


class UserCreateRequest(BaseModel):
    """User creation request schema."""
    username: str = Field(..., min_length=3, max_length=100, description="Username")
    email: EmailStr = Field(..., description="User email address")
    full_name: str = Field(..., min_length=1, max_length=255, description="User full name")
    role: UserRole = Field(default=UserRole.USER, description="Global role")


class UserUpdateRequest(BaseModel):
    """User update request schema."""
    username: Optional[str] = Field(None, min_length=3, max_length=100, description="Username")
    email: Optional[EmailStr] = Field(None, description="User email address")
    full_name: Optional[str] = Field(None, min_length=1, max_length=255, description="User full name")
    role: Optional[UserRole] = Field(None, description="Global role")
    is_active: Optional[bool] = Field(None, description="Whether user is active")
    must_reset_password: Optional[bool] = Field(None, description="Force a password change on next login")


class UserResponse(BaseModel):
    """User response schema."""
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: EmailStr = Field(..., description="User email address")
    full_name: str = Field(..., description="User full name")
    role: str = Field(..., description="Global role")
    is_active: bool = Field(..., description="Whether user is active")
    must_reset_password: bool = Field(..., description="Whether the user must change their password")
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class UserCreatedResponse(BaseModel):
    """Admin-created user with the temporary password to hand over."""
    user: UserResponse = Field(..., description="Created user")
    temporary_password: str = Field(..., description="Temporary password, shown once")


class UsersListResponse(BaseModel):
    """Users list response schema."""
    users: List[UserResponse] = Field(..., description="List of users")
    total: int = Field(..., description="Total number of matching users")
    page: int = Field(..., description="Current page")
    per_page: int = Field(..., description="Page size")


class UserSummary(BaseModel):
    """Minimal user fields for pickers and search results."""
    id: int
    username: str
    full_name: str

    class Config:
        from_attributes = True


class ManagedTeamsRequest(BaseModel):
    """Replace the set of teams a user manages."""
    team_ids: List[int] = Field(default_factory=list, description="Team IDs the user should manage")


class ManagedTeamsResponse(BaseModel):
    team_ids: List[int] = Field(..., description="Team IDs the user manages")
