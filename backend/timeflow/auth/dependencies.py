"""
Authentication dependencies for FastAPI endpoints.

Provides dependency functions for resolving the calling user from a Bearer
JWT or an ``X-API-Key`` header, enforcing the admin role, and building the
storage facade for a request.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..database.connection import get_db
from ..database.models import User, UserRole
from ..database.storage import Storage
from .jwt_handler import JWTHandler

security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Current user information resolved from a token or API key."""

    def __init__(self, user_id: int, username: str, role: str):
        self.user_id = user_id
        self.username = username
        self.role = role
        self.is_admin = role == UserRole.ADMIN.value

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(user_id=user.id, username=user.username, role=user.role)


# PUBLIC_INTERFACE
def get_storage(db: Session = Depends(get_db)) -> Storage:
    """Storage facade bound to the request's database session."""
    return Storage(db)


def _user_id_from_token(token: str) -> Optional[int]:
    payload = JWTHandler.verify_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


# PUBLIC_INTERFACE
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    storage: Storage = Depends(get_storage)
) -> CurrentUser:
    """
    Get current authenticated user from a JWT or API key.

    Args:
        credentials: HTTP authorization credentials
        x_api_key: API key header value
        storage: Storage facade

    Returns:
        CurrentUser: Current user information

    Raises:
        HTTPException: If no valid credentials are given or the user is inactive
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = None
    if credentials is not None:
        user_id = _user_id_from_token(credentials.credentials)
        if user_id is not None:
            user = storage.get_user(user_id)
    elif x_api_key:
        user = storage.get_user_by_api_key(x_api_key)

    if user is None or not user.is_active:
        raise credentials_exception

    return CurrentUser.from_user(user)


# PUBLIC_INTERFACE
async def get_current_admin_user(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """
    Get current user and ensure they have admin role.

    Args:
        current_user: Current authenticated user

    Returns:
        CurrentUser: Current admin user

    Raises:
        HTTPException: If user is not admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    return current_user
