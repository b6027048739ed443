"""
Time tracking-related Pydantic schemas.

Defines request/response models for time entries, the start/stop timer,
the dashboard summary, and reports.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator

from ..database.storage import as_utc


class TimeEntryCreateRequest(BaseModel):
    """Time entry creation request schema."""
    task_id: int = Field(..., description="Task ID")
    start_time: datetime = Field(..., description="Start time")
    end_time: Optional[datetime] = Field(None, description="End time (null for running timer)")
    notes: Optional[str] = Field(None, description="Work notes")

    @model_validator(mode="after")
    def check_time_range(self):
        """End time must come after start time."""
        if self.end_time is not None and as_utc(self.end_time) <= as_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TimeEntryUpdateRequest(BaseModel):
    """Time entry update request schema."""
    task_id: Optional[int] = Field(None, description="Task ID")
    start_time: Optional[datetime] = Field(None, description="Start time")
    end_time: Optional[datetime] = Field(None, description="End time; null makes the entry run again")
    notes: Optional[str] = Field(None, description="Work notes")


class TaskSummary(BaseModel):
    """Task fields embedded in time entry and report rows."""
    id: int
    name: str
    color: str
    project_id: Optional[int] = None

    class Config:
        from_attributes = True


class TimeEntryResponse(BaseModel):
    """Time entry response schema."""
    id: int = Field(..., description="Time entry ID")
    task_id: int = Field(..., description="Task ID")
    user_id: int = Field(..., description="User ID")
    start_time: datetime = Field(..., description="Start time")
    end_time: Optional[datetime] = Field(None, description="End time")
    duration: Optional[int] = Field(None, description="Duration in seconds")
    is_running: bool = Field(..., description="Whether timer is currently running")
    notes: Optional[str] = Field(None, description="Work notes")
    created_at: datetime = Field(..., description="Creation timestamp")
    task: Optional[TaskSummary] = Field(None, description="Task the entry belongs to")

    class Config:
        from_attributes = True


class TimerStartRequest(BaseModel):
    """Timer start request schema."""
    task_id: int = Field(..., description="Task ID")
    notes: Optional[str] = Field(None, description="Work notes")


class TimerStopRequest(BaseModel):
    """Timer stop request schema."""
    entry_id: Optional[int] = Field(None, description="Entry to stop; defaults to the running one")
    notes: Optional[str] = Field(None, description="Final work notes")


class DashboardStats(BaseModel):
    """Dashboard summary response schema. Times are in seconds."""
    today_time: int = Field(..., description="Seconds tracked today")
    week_time: int = Field(..., description="Seconds tracked this week (from sunday)")
    month_time: int = Field(..., description="Seconds tracked this month")
    active_tasks: int = Field(..., description="Open tasks")
    completed_tasks: int = Field(..., description="Completed tasks")
    overdue_tasks: int = Field(..., description="Open tasks past their deadline")
    over_time_tasks: int = Field(..., description="Open tasks over their estimate")
    due_today_tasks: int = Field(..., description="Open tasks due later today")
    due_tomorrow_tasks: int = Field(..., description="Open tasks due tomorrow")
    nearing_limit_tasks: int = Field(..., description="Open tasks at 80% or more of their estimate")
    efficiency: int = Field(..., description="Estimated over tracked time for completed tasks, in percent")


class TimeByTaskRow(BaseModel):
    task: TaskSummary
    total_time: int = Field(..., description="Tracked seconds")


class DailyStatsRow(BaseModel):
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    total_time: int = Field(..., description="Tracked seconds")

