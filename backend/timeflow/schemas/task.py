"""
Task-related Pydantic schemas.

Defines request/response models for tasks, their checklist items, and the
task listing enriched with tracked time.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from ..database.models import DEFAULT_TASK_COLOR, DEFAULT_TASK_SOURCE

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class TaskCreateRequest(BaseModel):
    """Task creation request schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Task name")
    description: Optional[str] = Field(None, description="Task description")
    color: str = Field(default=DEFAULT_TASK_COLOR, pattern=HEX_COLOR_PATTERN, description="Hex color code")
    estimated_hours: Optional[int] = Field(None, ge=0, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Task deadline")
    source: str = Field(default=DEFAULT_TASK_SOURCE, min_length=1, max_length=100, description="Origin system")
    project_id: Optional[int] = Field(None, description="Project ID; defaults to the personal project")


class TaskUpdateRequest(BaseModel):
    """Task update request schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Task name")
    description: Optional[str] = Field(None, description="Task description")
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Hex color code")
    estimated_hours: Optional[int] = Field(None, ge=0, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Task deadline")
    source: Optional[str] = Field(None, min_length=1, max_length=100, description="Origin system")
    project_id: Optional[int] = Field(None, description="Move the task to this project")
    is_active: Optional[bool] = Field(None, description="Whether task is active")


class TaskItemCreateRequest(BaseModel):
    """Checklist item creation request schema."""
    title: str = Field(..., min_length=1, max_length=500, description="Item title")
    completed: bool = Field(default=False, description="Whether the item is done")


class TaskItemUpdateRequest(BaseModel):
    """Checklist item update request schema."""
    title: Optional[str] = Field(None, min_length=1, max_length=500, description="Item title")
    completed: Optional[bool] = Field(None, description="Whether the item is done")


class TaskItemResponse(BaseModel):
    """Checklist item response schema."""
    id: int = Field(..., description="Item ID")
    task_id: int = Field(..., description="Task ID")
    title: str = Field(..., description="Item title")
    completed: bool = Field(..., description="Whether the item is done")
    created_at: datetime = Field(..., description="Creation timestamp")
    user_id: int = Field(..., description="Creator user ID")

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    """Task response schema."""
    id: int = Field(..., description="Task ID")
    name: str = Field(..., description="Task name")
    description: Optional[str] = Field(None, description="Task description")
    color: str = Field(..., description="Hex color code")
    estimated_hours: Optional[int] = Field(None, description="Estimated hours")
    deadline: Optional[datetime] = Field(None, description="Task deadline")
    is_active: bool = Field(..., description="Whether task is active")
    is_completed: bool = Field(..., description="Whether task is completed")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    source: str = Field(..., description="Origin system")
    user_id: int = Field(..., description="Creator user ID")
    project_id: Optional[int] = Field(None, description="Project ID")

    class Config:
        from_attributes = True


class TaskWithStatsResponse(TaskResponse):
    """Task with tracked time, running entry count, and checklist."""
    total_time: int = Field(..., description="Tracked seconds, running entries included")
    active_entries: int = Field(..., description="Number of running time entries")
    items: List[TaskItemResponse] = Field(default_factory=list, description="Checklist items")


class CompleteAllItemsResponse(BaseModel):
    updated: int = Field(..., description="Number of items marked completed")
