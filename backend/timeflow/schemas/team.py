"""
Team-related Pydantic schemas.

Defines request/response models for teams, their members and managers.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class TeamCreateRequest(BaseModel):
    """Team creation request schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Team name")
    description: Optional[str] = Field(None, description="Team description")


class TeamUpdateRequest(BaseModel):
    """Team update request schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Team name")
    description: Optional[str] = Field(None, description="Team description")
    is_active: Optional[bool] = Field(None, description="Whether team is active")


class TeamResponse(BaseModel):
    """Team response schema."""
    id: int = Field(..., description="Team ID")
    name: str = Field(..., description="Team name")
    description: Optional[str] = Field(None, description="Team description")
    is_active: bool = Field(..., description="Whether team is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class TeamUserRequest(BaseModel):
    """Add a user to a team as member or manager."""
    user_id: int = Field(..., description="User ID")
