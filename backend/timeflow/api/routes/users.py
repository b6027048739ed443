"""
User management API routes.

Provides endpoints for admin user CRUD, user search for member pickers,
and assigning the teams a user manages.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from ...database.models import UserRole
from ...database.storage import Storage
from ...schemas.user import (
    UserCreateRequest, UserUpdateRequest, UserResponse, UserCreatedResponse,
    UsersListResponse, UserSummary, ManagedTeamsRequest, ManagedTeamsResponse
)
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_current_admin_user, get_storage, CurrentUser
from ...auth.jwt_handler import PasswordHandler, generate_temporary_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _get_user_or_404(storage: Storage, user_id: int):
    user = storage.get_user(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


# PUBLIC_INTERFACE
@router.post("/", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED,
            summary="Create new user",
            description="Create a new user with a temporary password (admin only).")
async def create_user(
    request: UserCreateRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    """
    Create a new user.

    The account is created with a random temporary password that the
    user must change at first login. The password is returned only here.
    """
    if storage.get_user_by_username(request.username):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )
    if storage.get_user_by_email(request.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )

    temporary_password = generate_temporary_password()
    user = storage.create_user(
        username=request.username,
        email=request.email,
        full_name=request.full_name,
        role=request.role.value,
        password_hash=PasswordHandler.hash_password(temporary_password),
        must_reset_password=True,
    )
    storage.ensure_personal_project(user)
    logger.info("User %s created by admin %s", user.id, current_user.user_id)

    return UserCreatedResponse(
        user=UserResponse.model_validate(user),
        temporary_password=temporary_password
    )


# PUBLIC_INTERFACE
@router.get("/", response_model=UsersListResponse,
           summary="List users",
           description="Get a paginated list of users (admin only).")
async def list_users(
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    q: Optional[str] = Query(None, description="Search query for username, name or email"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    users, total = storage.list_users(
        is_active=is_active,
        role=role.value if role else None,
        q=q,
        page=page,
        per_page=per_page,
    )
    return UsersListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        per_page=per_page
    )


# PUBLIC_INTERFACE
@router.get("/search", response_model=List[UserSummary],
           summary="Search users",
           description="Search active users by username, name or email.")
async def search_users(
    q: str = Query(..., min_length=1, description="Search query"),
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return [UserSummary.model_validate(user) for user in storage.search_users(q)]


# PUBLIC_INTERFACE
@router.get("/{user_id}", response_model=UserResponse,
           summary="Get user",
           description="Get a user by ID (admin only).")
async def get_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    return UserResponse.model_validate(_get_user_or_404(storage, user_id))


# PUBLIC_INTERFACE
@router.put("/{user_id}", response_model=UserResponse,
           summary="Update user",
           description="Update a user's profile, role or status (admin only).")
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    """
    Update a user.

    Args:
        user_id: User ID
        request: Fields to change
        current_user: Current admin user
        storage: Storage facade

    Returns:
        UserResponse: Updated user

    Raises:
        HTTPException: If the user is missing or the username/email is taken
    """
    user = _get_user_or_404(storage, user_id)
    updates = {k: v for k, v in request.model_dump(exclude_unset=True, mode="json").items() if v is not None}

    if "username" in updates and updates["username"] != user.username:
        if storage.get_user_by_username(updates["username"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already exists"
            )
    if "email" in updates and updates["email"] != user.email:
        if storage.get_user_by_email(updates["email"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists"
            )

    return UserResponse.model_validate(storage.update_user(user_id, updates))


# PUBLIC_INTERFACE
@router.delete("/{user_id}", response_model=StandardResponse,
              summary="Delete user",
              description="Delete a user without tracked work (admin only).")
async def delete_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    """
    Delete a user.

    Users who created tasks, checklist items or time entries cannot be
    deleted; deactivate them instead.
    """
    _get_user_or_404(storage, user_id)

    if user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )
    if storage.user_has_tracked_work(user_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User has tracked work; deactivate the account instead"
        )

    storage.delete_user(user_id)
    logger.info("User %s deleted by admin %s", user_id, current_user.user_id)
    return StandardResponse(message="User deleted successfully")


# PUBLIC_INTERFACE
@router.get("/{user_id}/managed-teams", response_model=ManagedTeamsResponse,
           summary="Get managed teams",
           description="IDs of the teams a user manages (admin or the user themself).")
async def get_managed_teams(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    if not current_user.is_admin and current_user.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    _get_user_or_404(storage, user_id)
    return ManagedTeamsResponse(team_ids=[team.id for team in storage.get_managed_teams(user_id)])


# PUBLIC_INTERFACE
@router.put("/{user_id}/managed-teams", response_model=ManagedTeamsResponse,
           summary="Set managed teams",
           description="Replace the set of teams a user manages (admin only).")
async def update_managed_teams(
    user_id: int,
    request: ManagedTeamsRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    _get_user_or_404(storage, user_id)
    for team_id in set(request.team_ids):
        if not storage.get_team(team_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Team {team_id} not found"
            )

    storage.update_user_managed_teams(user_id, request.team_ids)
    return ManagedTeamsResponse(team_ids=[team.id for team in storage.get_managed_teams(user_id)])
