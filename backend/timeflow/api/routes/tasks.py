"""
Task management API routes.

Provides endpoints for task CRUD with tracked-time statistics, completion,
and the checklist items attached to each task.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from ...database.models import Task
from ...database.storage import Storage
from ...schemas.task import (
    TaskCreateRequest, TaskUpdateRequest, TaskResponse, TaskWithStatsResponse,
    TaskItemCreateRequest, TaskItemUpdateRequest, TaskItemResponse, CompleteAllItemsResponse
)
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])
items_router = APIRouter(prefix="/task-items", tags=["Tasks"])

# columns that cannot be cleared with an explicit null
REQUIRED_TASK_FIELDS = {"name", "color", "source", "is_active", "project_id"}


def _with_stats(row) -> TaskWithStatsResponse:
    task = row["task"]
    return TaskWithStatsResponse(
        **TaskResponse.model_validate(task).model_dump(),
        total_time=row["total_time"],
        active_entries=row["active_entries"],
        items=[TaskItemResponse.model_validate(item) for item in task.items]
    )


def _get_task_or_404(storage: Storage, task_id: int) -> Task:
    task = storage.get_task(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


def _require_task_access(storage: Storage, task: Task, current_user: CurrentUser):
    if not storage.can_access_task(task, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this task"
        )


def _require_task_modify(storage: Storage, task: Task, current_user: CurrentUser):
    if not storage.can_modify_task(task, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to modify this task"
        )


def _get_accessible_project(storage: Storage, project_id: int, current_user: CurrentUser):
    project = storage.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    if not storage.can_access_project(project, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this project"
        )
    if not project.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Project is inactive"
        )
    return project


# PUBLIC_INTERFACE
@router.get("/", response_model=List[TaskWithStatsResponse],
           summary="List tasks",
           description="Active tasks visible to the current user, with tracked time and checklist.")
async def list_tasks(
    project_id: Optional[int] = Query(None, description="Filter by project"),
    include_completed: bool = Query(True, description="Include completed tasks"),
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    rows = storage.get_all_tasks(
        current_user.user_id,
        is_admin=current_user.is_admin,
        project_id=project_id,
        include_completed=include_completed,
    )
    return [_with_stats(row) for row in rows]


# PUBLIC_INTERFACE
@router.post("/", response_model=TaskWithStatsResponse, status_code=status.HTTP_201_CREATED,
            summary="Create task",
            description="Create a task. Without a project it goes to the caller's personal project.")
async def create_task(
    request: TaskCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Create a new task.

    Args:
        request: Task data
        current_user: Current authenticated user
        storage: Storage facade

    Returns:
        TaskWithStatsResponse: Created task with empty statistics

    Raises:
        HTTPException: If the target project is missing, inaccessible or inactive
    """
    data = request.model_dump()
    if data["project_id"] is None:
        project, _ = storage.ensure_personal_project(storage.get_user(current_user.user_id))
        data["project_id"] = project.id
    else:
        _get_accessible_project(storage, data["project_id"], current_user)

    task = storage.create_task(user_id=current_user.user_id, **data)
    return _with_stats(storage.get_task_with_stats(task.id))


# PUBLIC_INTERFACE
@router.get("/{task_id}", response_model=TaskWithStatsResponse,
           summary="Get task",
           description="Get a task with tracked time and checklist.")
async def get_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    return _with_stats(storage.get_task_with_stats(task_id))


# PUBLIC_INTERFACE
@router.put("/{task_id}", response_model=TaskWithStatsResponse,
           summary="Update task",
           description="Update a task. Moving it requires access to the target project.")
async def update_task(
    task_id: int,
    request: TaskUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_modify(storage, task, current_user)

    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items()
               if v is not None or k not in REQUIRED_TASK_FIELDS}
    if "project_id" in updates and updates["project_id"] != task.project_id:
        _get_accessible_project(storage, updates["project_id"], current_user)

    storage.update_task(task_id, updates)
    return _with_stats(storage.get_task_with_stats(task_id))


# PUBLIC_INTERFACE
@router.delete("/{task_id}", response_model=StandardResponse,
              summary="Delete task",
              description="Deactivate a task. Its time entries are kept.")
async def delete_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_modify(storage, task, current_user)
    storage.delete_task(task_id)
    return StandardResponse(message="Task deleted successfully")


# PUBLIC_INTERFACE
@router.put("/{task_id}/complete", response_model=TaskWithStatsResponse,
           summary="Complete task",
           description="Mark a task as completed.")
async def complete_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    storage.complete_task(task_id)
    return _with_stats(storage.get_task_with_stats(task_id))


# PUBLIC_INTERFACE
@router.put("/{task_id}/reopen", response_model=TaskWithStatsResponse,
           summary="Reopen task",
           description="Mark a completed task as open again.")
async def reopen_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    storage.reopen_task(task_id)
    return _with_stats(storage.get_task_with_stats(task_id))


# PUBLIC_INTERFACE
@router.get("/{task_id}/items", response_model=List[TaskItemResponse],
           summary="List checklist items")
async def list_task_items(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    return [TaskItemResponse.model_validate(item) for item in storage.get_task_items(task_id)]


# PUBLIC_INTERFACE
@router.post("/{task_id}/items", response_model=TaskItemResponse, status_code=status.HTTP_201_CREATED,
            summary="Add checklist item")
async def create_task_item(
    task_id: int,
    request: TaskItemCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    item = storage.create_task_item(
        task_id=task_id,
        title=request.title,
        completed=request.completed,
        user_id=current_user.user_id,
    )
    return TaskItemResponse.model_validate(item)


# PUBLIC_INTERFACE
@router.post("/{task_id}/items/complete-all", response_model=CompleteAllItemsResponse,
            summary="Complete all checklist items")
async def complete_all_task_items(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    task = _get_task_or_404(storage, task_id)
    _require_task_access(storage, task, current_user)
    return CompleteAllItemsResponse(updated=storage.complete_all_task_items(task_id))


def _get_item_with_access(storage: Storage, item_id: int, current_user: CurrentUser):
    item = storage.get_task_item(item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task item not found"
        )
    _require_task_access(storage, item.task, current_user)
    return item


# PUBLIC_INTERFACE
@items_router.put("/{item_id}", response_model=TaskItemResponse,
                 summary="Update checklist item")
async def update_task_item(
    item_id: int,
    request: TaskItemUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_item_with_access(storage, item_id, current_user)
    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    return TaskItemResponse.model_validate(storage.update_task_item(item_id, updates))


# PUBLIC_INTERFACE
@items_router.delete("/{item_id}", response_model=StandardResponse,
                    summary="Delete checklist item")
async def delete_task_item(
    item_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_item_with_access(storage, item_id, current_user)
    storage.delete_task_item(item_id)
    return StandardResponse(message="Task item deleted successfully")
