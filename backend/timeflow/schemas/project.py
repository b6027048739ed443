"""
Project-related Pydantic schemas.

Defines request/response models for project CRUD and team binding.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ProjectCreateRequest(BaseModel):
    """Project creation request schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    is_personal: bool = Field(default=False, description="Whether this is a personal project")
    estimated_hours: Optional[int] = Field(None, ge=0, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Project deadline")
    owner_id: Optional[int] = Field(None, description="Owner user ID (admins only)")


class ProjectUpdateRequest(BaseModel):
    """Project update request schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    estimated_hours: Optional[int] = Field(None, ge=0, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Project deadline")


class ProjectResponse(BaseModel):
    """Project response schema."""
    id: int = Field(..., description="Project ID")
    name: str = Field(..., description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    is_personal: bool = Field(..., description="Whether this is a personal project")
    estimated_hours: Optional[int] = Field(None, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Project deadline")
    owner_id: Optional[int] = Field(None, description="Owner user ID")
    is_active: bool = Field(..., description="Whether project is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class ProjectTeamRequest(BaseModel):
    """Bind a project to a team."""
    team_id: int = Field(..., description="Team ID")


class ProjectTeamResponse(BaseModel):
    id: int
    project_id: int
    team_id: int
    assigned_at: datetime

    class Config:
        from_attributes = True
