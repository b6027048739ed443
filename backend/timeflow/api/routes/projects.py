"""
Project management API routes.

Provides endpoints for project CRUD, the caller's project list with
personal project provisioning, and sharing projects with teams.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from ...database.models import Project
from ...database.storage import Storage
from ...schemas.project import (
    ProjectCreateRequest, ProjectUpdateRequest, ProjectResponse,
    ProjectTeamRequest, ProjectTeamResponse
)
from ...schemas.team import TeamResponse
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_current_admin_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


def _get_project_or_404(storage: Storage, project_id: int) -> Project:
    project = storage.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


def _require_manage(storage: Storage, project: Project, current_user: CurrentUser):
    if not storage.can_manage_project(project, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to manage this project"
        )


# PUBLIC_INTERFACE
@router.get("/", response_model=List[ProjectResponse],
           summary="List my projects",
           description="Projects the current user owns or that are shared with their teams.")
async def list_projects(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    List the caller's projects.

    The caller's personal project is created first if it does not exist yet.
    """
    storage.ensure_personal_project(storage.get_user(current_user.user_id))
    return [ProjectResponse.model_validate(p) for p in storage.get_projects_for_user(current_user.user_id)]


# PUBLIC_INTERFACE
@router.get("/all", response_model=List[ProjectResponse],
           summary="List all projects",
           description="Every project, including inactive ones (admin only).")
async def list_all_projects(
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    return [ProjectResponse.model_validate(p) for p in storage.get_all_projects()]


# PUBLIC_INTERFACE
@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED,
            summary="Create new project",
            description="Create a project. Non-admins always own the projects they create.")
async def create_project(
    request: ProjectCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Create a new project.

    Admins may create a project on behalf of another user by passing
    ``owner_id``; for everyone else the owner is the caller.
    """
    data = request.model_dump()
    if not current_user.is_admin or data.get("owner_id") is None:
        data["owner_id"] = current_user.user_id
    elif not storage.get_user(data["owner_id"]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Owner not found"
        )

    if data["is_personal"] and storage.get_user_personal_project(data["owner_id"]):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already has a personal project"
        )

    project = storage.create_project(**data)
    logger.info("Project %s created by user %s", project.id, current_user.user_id)
    return ProjectResponse.model_validate(project)


# PUBLIC_INTERFACE
@router.get("/{project_id}", response_model=ProjectResponse,
           summary="Get project",
           description="Get a project the current user can access.")
async def get_project(
    project_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    project = _get_project_or_404(storage, project_id)
    if not storage.can_access_project(project, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this project"
        )
    return ProjectResponse.model_validate(project)


# PUBLIC_INTERFACE
@router.put("/{project_id}", response_model=ProjectResponse,
           summary="Update project",
           description="Update a project. Requires manage rights.")
async def update_project(
    project_id: int,
    request: ProjectUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    project = _get_project_or_404(storage, project_id)
    _require_manage(storage, project, current_user)

    updates = request.model_dump(exclude_unset=True)
    if updates.get("name") is None:
        updates.pop("name", None)

    return ProjectResponse.model_validate(storage.update_project(project_id, updates))


# PUBLIC_INTERFACE
@router.delete("/{project_id}", response_model=StandardResponse,
              summary="Delete project",
              description="Deactivate a project. Requires manage rights and no active tasks.")
async def delete_project(
    project_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Delete (deactivate) a project.

    Args:
        project_id: Project ID
        current_user: Current authenticated user
        storage: Storage facade

    Returns:
        StandardResponse: Success message

    Raises:
        HTTPException: 400 for personal projects, 409 while tasks remain active
    """
    project = _get_project_or_404(storage, project_id)
    _require_manage(storage, project, current_user)

    if project.is_personal:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Personal projects cannot be deleted"
        )
    if storage.project_has_active_tasks(project_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Project has active tasks"
        )

    storage.delete_project(project_id)
    return StandardResponse(message="Project deleted successfully")


# PUBLIC_INTERFACE
@router.get("/{project_id}/teams", response_model=List[TeamResponse],
           summary="List project teams",
           description="Teams the project is shared with.")
async def list_project_teams(
    project_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    project = _get_project_or_404(storage, project_id)
    if not storage.can_access_project(project, current_user.user_id, current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this project"
        )
    return [TeamResponse.model_validate(team) for team in storage.get_teams_for_project(project_id)]


# PUBLIC_INTERFACE
@router.post("/{project_id}/teams", response_model=ProjectTeamResponse, status_code=status.HTTP_201_CREATED,
            summary="Bind project to team",
            description="Share a project with a team.")
async def bind_project_team(
    project_id: int,
    request: ProjectTeamRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Share a project with a team.

    The caller needs manage rights on the project and, unless admin,
    membership in the target team. Personal projects are never shared.
    """
    project = _get_project_or_404(storage, project_id)
    if not storage.get_team(request.team_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team not found"
        )
    _require_manage(storage, project, current_user)

    if not current_user.is_admin and not storage.is_team_member(request.team_id, current_user.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this team"
        )
    if project.is_personal:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Personal projects cannot be shared with teams"
        )
    if storage.get_project_team_link(project_id, request.team_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Project is already linked to this team"
        )

    link = storage.bind_project_to_team(project_id, request.team_id)
    return ProjectTeamResponse.model_validate(link)
