"""
Time tracking API routes.

Provides endpoints for time entry CRUD, the start/stop timer, the
dashboard summary, and time reports.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from ...database.models import TimeEntry
from ...database.storage import Storage, as_utc
from ...schemas.time_tracking import (
    TimeEntryCreateRequest, TimeEntryUpdateRequest, TimeEntryResponse,
    TimerStartRequest, TimerStopRequest, DashboardStats,
    TimeByTaskRow, DailyStatsRow, TaskSummary
)
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_current_admin_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Time Tracking"])

RUNNING_TIMER_DETAIL = "You already have a running timer. Stop it before starting a new one."
DEFAULT_DAILY_RANGE_DAYS = 7
MAX_DAILY_RANGE_DAYS = 366


def _parse_datetime(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format. Use YYYY-MM-DD."
        )


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    parsed = _parse_datetime(value, name)
    return parsed.date() if parsed else None


def _parse_end_datetime(value: Optional[str], name: str) -> Optional[datetime]:
    """A bare date covers the whole day."""
    parsed = _parse_datetime(value, name)
    if parsed and "T" not in value and " " not in value:
        return datetime.combine(parsed.date(), time.max)
    return parsed


def _get_trackable_task(storage: Storage, task_id: int, current_user: CurrentUser):
    task = storage.get_task(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    if not storage.can_access_task(task, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this task"
        )
    if not task.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Task is inactive"
        )
    return task


def _get_own_entry(storage: Storage, entry_id: int, current_user: CurrentUser) -> TimeEntry:
    entry = storage.get_time_entry(entry_id)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Time entry not found"
        )
    if entry.user_id != current_user.user_id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this time entry"
        )
    return entry


def _ensure_no_running_timer(storage: Storage, user_id: int, exclude_id: Optional[int] = None):
    running = [e for e in storage.get_running_time_entries(user_id) if e.id != exclude_id]
    if running:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=RUNNING_TIMER_DETAIL
        )


# PUBLIC_INTERFACE
@router.get("/time-entries", response_model=List[TimeEntryResponse],
           summary="List time entries",
           description="The current user's time entries, running ones first.")
async def list_time_entries(
    start_date: Optional[str] = Query(None, description="Entries starting on or after (YYYY-MM-DD or ISO datetime)"),
    end_date: Optional[str] = Query(None, description="Entries starting on or before (YYYY-MM-DD or ISO datetime)"),
    task_id: Optional[int] = Query(None, description="Filter by task"),
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    entries = storage.get_time_entries_by_user(
        current_user.user_id,
        start_date=_parse_datetime(start_date, "start_date"),
        end_date=_parse_end_datetime(end_date, "end_date"),
        task_id=task_id,
    )
    return [TimeEntryResponse.model_validate(entry) for entry in entries]


# PUBLIC_INTERFACE
@router.get("/time-entries/running", response_model=List[TimeEntryResponse],
           summary="Running time entries",
           description="The current user's running timers.")
async def list_running_entries(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return [TimeEntryResponse.model_validate(e) for e in storage.get_running_time_entries(current_user.user_id)]


# PUBLIC_INTERFACE
@router.post("/time-entries", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED,
            summary="Create time entry",
            description="Create a manual time entry, or a running one when end_time is omitted.")
async def create_time_entry(
    request: TimeEntryCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_trackable_task(storage, request.task_id, current_user)
    if request.end_time is None:
        _ensure_no_running_timer(storage, current_user.user_id)

    entry = storage.create_time_entry(
        task_id=request.task_id,
        user_id=current_user.user_id,
        start_time=request.start_time,
        end_time=request.end_time,
        notes=request.notes,
    )
    return TimeEntryResponse.model_validate(entry)


# PUBLIC_INTERFACE
@router.delete("/time-entries", response_model=StandardResponse,
              summary="Delete all time entries",
              description="Remove every time entry in the system (admin only).")
async def delete_all_time_entries(
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    deleted = storage.delete_all_time_entries()
    logger.info("Admin %s cleared %s time entries", current_user.user_id, deleted)
    return StandardResponse(message=f"Deleted {deleted} time entries")


# PUBLIC_INTERFACE
@router.get("/time-entries/{entry_id}", response_model=TimeEntryResponse,
           summary="Get time entry")
async def get_time_entry(
    entry_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return TimeEntryResponse.model_validate(_get_own_entry(storage, entry_id, current_user))


# PUBLIC_INTERFACE
@router.put("/time-entries/{entry_id}", response_model=TimeEntryResponse,
           summary="Update time entry",
           description="Update an entry. Setting end_time stops it; clearing end_time makes it run again.")
async def update_time_entry(
    entry_id: int,
    request: TimeEntryUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Update a time entry.

    Args:
        entry_id: Time entry ID
        request: Fields to change
        current_user: Current authenticated user
        storage: Storage facade

    Returns:
        TimeEntryResponse: Updated entry

    Raises:
        HTTPException: 400 for an invalid time range or a second running timer
    """
    entry = _get_own_entry(storage, entry_id, current_user)
    updates = request.model_dump(exclude_unset=True)
    for field in ("task_id", "start_time"):
        if updates.get(field, "") is None:
            updates.pop(field)

    if "task_id" in updates and updates["task_id"] != entry.task_id:
        _get_trackable_task(storage, updates["task_id"], current_user)

    start_time = as_utc(updates.get("start_time", entry.start_time))
    end_time = as_utc(updates["end_time"]) if "end_time" in updates else as_utc(entry.end_time)
    if end_time is not None and end_time <= start_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_time must be after start_time"
        )
    if end_time is None and not entry.is_running:
        _ensure_no_running_timer(storage, entry.user_id, exclude_id=entry.id)

    return TimeEntryResponse.model_validate(storage.update_time_entry(entry_id, updates))


# PUBLIC_INTERFACE
@router.delete("/time-entries/{entry_id}", response_model=StandardResponse,
              summary="Delete time entry")
async def delete_time_entry(
    entry_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_own_entry(storage, entry_id, current_user)
    storage.delete_time_entry(entry_id)
    return StandardResponse(message="Time entry deleted successfully")


# PUBLIC_INTERFACE
@router.post("/timer/start", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED,
            summary="Start timer",
            description="Start a timer on a task. Only one timer may run per user.")
async def start_timer(
    request: TimerStartRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_trackable_task(storage, request.task_id, current_user)
    _ensure_no_running_timer(storage, current_user.user_id)

    entry = storage.start_timer(task.id, current_user.user_id, notes=request.notes)
    return TimeEntryResponse.model_validate(entry)


# PUBLIC_INTERFACE
@router.post("/timer/stop", response_model=TimeEntryResponse,
            summary="Stop timer",
            description="Stop the given running entry, or the caller's running timer.")
async def stop_timer(
    request: TimerStopRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Stop a running timer.

    Stores the end time and the elapsed duration in seconds.
    """
    if request.entry_id is not None:
        entry = _get_own_entry(storage, request.entry_id, current_user)
        if not entry.is_running:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Time entry is not running"
            )
    else:
        running = storage.get_running_time_entries(current_user.user_id)
        if not running:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No running timer found"
            )
        entry = running[0]

    return TimeEntryResponse.model_validate(storage.stop_timer(entry, notes=request.notes))


# PUBLIC_INTERFACE
@router.get("/dashboard/stats", response_model=DashboardStats,
           summary="Dashboard statistics",
           description="Tracked time for today, this week and this month, plus task counters.")
async def get_dashboard_stats(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return DashboardStats(**storage.get_dashboard_stats(current_user.user_id))


# PUBLIC_INTERFACE
@router.get("/reports/time-by-task", response_model=List[TimeByTaskRow],
           summary="Time by task",
           description="Tracked seconds per task for the current user, largest first.")
async def report_time_by_task(
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    rows = storage.get_time_by_task(
        current_user.user_id,
        start_date=_parse_datetime(start_date, "start_date"),
        end_date=_parse_end_datetime(end_date, "end_date"),
    )
    return [TimeByTaskRow(task=TaskSummary.model_validate(row["task"]), total_time=row["total_time"])
            for row in rows]


# PUBLIC_INTERFACE
@router.get("/reports/daily", response_model=List[DailyStatsRow],
           summary="Daily totals",
           description="Tracked seconds per UTC day, zero-filled. Defaults to the last 7 days.")
async def report_daily(
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    end = _parse_date(end_date, "end_date") or datetime.now(timezone.utc).date()
    start = _parse_date(start_date, "start_date") or end - timedelta(days=DEFAULT_DAILY_RANGE_DAYS - 1)
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date"
        )
    if (end - start).days >= MAX_DAILY_RANGE_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Date range must not exceed {MAX_DAILY_RANGE_DAYS} days"
        )
    return [DailyStatsRow(**row) for row in storage.get_daily_stats(current_user.user_id, start, end)]
