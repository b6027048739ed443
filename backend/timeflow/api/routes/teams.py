"""
Team management API routes.

Provides endpoints for team CRUD, membership and manager assignment, and
the projects shared with a team.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from ...database.models import Team
from ...database.storage import Storage
from ...schemas.team import TeamCreateRequest, TeamUpdateRequest, TeamResponse, TeamUserRequest
from ...schemas.project import ProjectResponse
from ...schemas.user import UserSummary
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_current_admin_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams", tags=["Teams"])


def _get_team_or_404(storage: Storage, team_id: int) -> Team:
    team = storage.get_team(team_id)
    if not team:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team not found"
        )
    return team


def _require_member(storage: Storage, team_id: int, current_user: CurrentUser):
    if not current_user.is_admin and not storage.is_team_member(team_id, current_user.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this team"
        )


def _require_manager(storage: Storage, team_id: int, current_user: CurrentUser):
    if not current_user.is_admin and not storage.is_team_manager(team_id, current_user.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only team managers can perform this action"
        )


def _get_target_user_or_404(storage: Storage, user_id: int):
    user = storage.get_user(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


# PUBLIC_INTERFACE
@router.get("/", response_model=List[TeamResponse],
           summary="List teams",
           description="Admins see every team; other users see the teams they belong to.")
async def list_teams(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    if current_user.is_admin:
        teams = storage.get_all_teams()
    else:
        teams = storage.get_teams_for_user(current_user.user_id)
    return [TeamResponse.model_validate(team) for team in teams]


# PUBLIC_INTERFACE
@router.get("/managed", response_model=List[TeamResponse],
           summary="List managed teams",
           description="Teams the current user manages.")
async def list_managed_teams(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return [TeamResponse.model_validate(team) for team in storage.get_managed_teams(current_user.user_id)]


# PUBLIC_INTERFACE
@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED,
            summary="Create team",
            description="Create a team. The creator becomes a member and a manager.")
async def create_team(
    request: TeamCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    team = storage.create_team(name=request.name, description=request.description)
    storage.add_team_member(team.id, current_user.user_id)
    storage.add_team_manager(team.id, current_user.user_id)
    logger.info("Team %s created by user %s", team.id, current_user.user_id)
    return TeamResponse.model_validate(team)


# PUBLIC_INTERFACE
@router.get("/{team_id}", response_model=TeamResponse,
           summary="Get team",
           description="Get a team. Members and admins only.")
async def get_team(
    team_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    team = _get_team_or_404(storage, team_id)
    _require_member(storage, team_id, current_user)
    return TeamResponse.model_validate(team)


# PUBLIC_INTERFACE
@router.put("/{team_id}", response_model=TeamResponse,
           summary="Update team",
           description="Update a team. Managers and admins only.")
async def update_team(
    team_id: int,
    request: TeamUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    _require_manager(storage, team_id, current_user)

    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items()
               if v is not None or k == "description"}
    return TeamResponse.model_validate(storage.update_team(team_id, updates))


# PUBLIC_INTERFACE
@router.delete("/{team_id}", response_model=StandardResponse,
              summary="Delete team",
              description="Delete a team with its memberships and project links (admin only).")
async def delete_team(
    team_id: int,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    storage.delete_team(team_id)
    return StandardResponse(message="Team deleted successfully")


# PUBLIC_INTERFACE
@router.get("/{team_id}/members", response_model=List[UserSummary],
           summary="List team members",
           description="Members of a team. Visible to members, managers and admins.")
async def list_team_members(
    team_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    if not (current_user.is_admin
            or storage.is_team_member(team_id, current_user.user_id)
            or storage.is_team_manager(team_id, current_user.user_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this team"
        )
    return [UserSummary.model_validate(user) for user in storage.get_team_members(team_id)]


# PUBLIC_INTERFACE
@router.post("/{team_id}/members", response_model=StandardResponse, status_code=status.HTTP_201_CREATED,
            summary="Add team member",
            description="Add a user to a team. Managers and admins only.")
async def add_team_member(
    team_id: int,
    request: TeamUserRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Add a member to a team.

    Args:
        team_id: Team ID
        request: User to add
        current_user: Current authenticated user
        storage: Storage facade

    Returns:
        StandardResponse: Success message

    Raises:
        HTTPException: 404 for an unknown team or user, 409 if already a member
    """
    _get_team_or_404(storage, team_id)
    _require_manager(storage, team_id, current_user)
    _get_target_user_or_404(storage, request.user_id)

    if storage.is_team_member(team_id, request.user_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this team"
        )

    storage.add_team_member(team_id, request.user_id)
    return StandardResponse(message="Member added successfully")


# PUBLIC_INTERFACE
@router.delete("/{team_id}/members/{user_id}", response_model=StandardResponse,
              summary="Remove team member",
              description="Remove a user from a team, including any manager role. Managers and admins only.")
async def remove_team_member(
    team_id: int,
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    _require_manager(storage, team_id, current_user)

    if not storage.remove_team_member(team_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User is not a member of this team"
        )
    return StandardResponse(message="Member removed successfully")


# PUBLIC_INTERFACE
@router.get("/{team_id}/managers", response_model=List[UserSummary],
           summary="List team managers",
           description="Managers of a team. Members and admins only.")
async def list_team_managers(
    team_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    _require_member(storage, team_id, current_user)
    return [UserSummary.model_validate(user) for user in storage.get_team_managers(team_id)]


# PUBLIC_INTERFACE
@router.post("/{team_id}/managers", response_model=StandardResponse, status_code=status.HTTP_201_CREATED,
            summary="Add team manager",
            description="Make a user a manager of the team. Managers and admins only.")
async def add_team_manager(
    team_id: int,
    request: TeamUserRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    _require_manager(storage, team_id, current_user)
    _get_target_user_or_404(storage, request.user_id)

    if storage.is_team_manager(team_id, request.user_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a manager of this team"
        )

    # managers are always members
    storage.add_team_member(team_id, request.user_id)
    storage.add_team_manager(team_id, request.user_id)
    return StandardResponse(message="Manager added successfully")


# PUBLIC_INTERFACE
@router.delete("/{team_id}/managers/{user_id}", response_model=StandardResponse,
              summary="Remove team manager",
              description="Revoke a user's manager role in the team (admin only).")
async def remove_team_manager(
    team_id: int,
    user_id: int,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    if not storage.remove_team_manager(team_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User is not a manager of this team"
        )
    return StandardResponse(message="Manager removed successfully")


# PUBLIC_INTERFACE
@router.get("/{team_id}/projects", response_model=List[ProjectResponse],
           summary="List team projects",
           description="Projects shared with the team. Members and admins only.")
async def list_team_projects(
    team_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    _require_member(storage, team_id, current_user)
    return [ProjectResponse.model_validate(project) for project in storage.get_projects_for_team(team_id)]


# PUBLIC_INTERFACE
@router.delete("/{team_id}/projects/{project_id}", response_model=StandardResponse,
              summary="Unbind project from team",
              description="Stop sharing a project with the team. Team managers, admins and the project owner only.")
async def unbind_team_project(
    team_id: int,
    project_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_team_or_404(storage, team_id)
    project = storage.get_project(project_id)
    if not project or not storage.get_project_team_link(project_id, team_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project is not linked to this team"
        )

    if not (current_user.is_admin
            or project.owner_id == current_user.user_id
            or storage.is_team_manager(team_id, current_user.user_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only team managers or the project owner can unlink this project"
        )

    storage.unbind_project_from_team(team_id, project_id)
    return StandardResponse(message="Project unlinked from team")
