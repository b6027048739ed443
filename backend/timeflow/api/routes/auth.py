"""
Authentication API routes.

Provides endpoints for first-run setup, login, token refresh, password
changes and resets (by email token or recovery key), and API keys.
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status

from ...database.models import UserRole
from ...database.storage import Storage, as_utc
from ...schemas.auth import (
    SetupRequest, LoginRequest, PasswordResetRequest, PasswordResetConfirm,
    RecoveryResetRequest, ChangePasswordRequest,
    AuthResponse, SetupResponse, TokenRefreshResponse, ApiKeyResponse,
    StandardResponse, UserInfo
)
from ...auth.dependencies import get_current_user, get_storage, CurrentUser
from ...auth.jwt_handler import (
    JWTHandler, PasswordHandler, generate_recovery_key, generate_reset_token, reset_token_expiry
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/setup", response_model=SetupResponse, status_code=status.HTTP_201_CREATED,
            summary="Create first administrator",
            description="Create the initial admin account. Only allowed while no users exist.")
async def setup_admin(
    request: SetupRequest,
    storage: Storage = Depends(get_storage)
):
    """
    Create the first administrator.

    Returns an access token and a one-time recovery key that can later
    be used to reset the admin password without email.
    """
    if storage.count_users() > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Setup has already been completed"
        )

    recovery_key = generate_recovery_key()
    user = storage.create_user(
        username=request.username,
        email=request.email,
        full_name=request.full_name,
        password_hash=PasswordHandler.hash_password(request.password),
        role=UserRole.ADMIN.value,
        recovery_key_hash=PasswordHandler.hash_password(recovery_key),
    )
    storage.ensure_personal_project(user)
    logger.info("Initial admin %s created", user.username)

    return SetupResponse(
        access_token=JWTHandler.create_user_token(user.id, user.username, user.role),
        user=UserInfo.model_validate(user),
        recovery_key=recovery_key
    )


# PUBLIC_INTERFACE
@router.post("/login", response_model=AuthResponse,
            summary="User login",
            description="Authenticate with username or email and password, returning an access token.")
async def login_user(
    request: LoginRequest,
    storage: Storage = Depends(get_storage)
):
    """
    Authenticate user and return an access token.

    Inactive accounts are rejected with the same error as bad credentials.
    """
    user = storage.get_user_by_username_or_email(request.username)
    if not user or not user.is_active or not PasswordHandler.verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    user = storage.update_user(user.id, {"last_login": datetime.now(timezone.utc)})

    return AuthResponse(
        access_token=JWTHandler.create_user_token(user.id, user.username, user.role),
        user=UserInfo.model_validate(user)
    )


# PUBLIC_INTERFACE
@router.post("/logout", response_model=StandardResponse,
            summary="User logout",
            description="Logout current user. Tokens are stateless, so the client discards its token.")
async def logout_user(
    current_user: CurrentUser = Depends(get_current_user)
):
    return StandardResponse(message="Successfully logged out")


# PUBLIC_INTERFACE
@router.post("/refresh", response_model=TokenRefreshResponse,
            summary="Refresh access token",
            description="Issue a new access token for the current user.")
async def refresh_token(
    current_user: CurrentUser = Depends(get_current_user)
):
    access_token = JWTHandler.create_user_token(current_user.user_id, current_user.username, current_user.role)
    return TokenRefreshResponse(access_token=access_token)


# PUBLIC_INTERFACE
@router.get("/me", response_model=UserInfo,
           summary="Get current user",
           description="Get information about the currently authenticated user.")
async def get_current_user_info(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    user = storage.get_user(current_user.user_id)
    return UserInfo.model_validate(user)


# PUBLIC_INTERFACE
@router.post("/change-password", response_model=StandardResponse,
            summary="Change password",
            description="Change the current user's password. Clears a pending forced reset.")
async def change_password(
    request: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Change the current user's password.

    Args:
        request: Current and new password
        current_user: Current authenticated user
        storage: Storage facade

    Returns:
        StandardResponse: Success message

    Raises:
        HTTPException: If the current password does not match
    """
    user = storage.get_user(current_user.user_id)
    if not PasswordHandler.verify_password(request.current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    storage.update_user(user.id, {
        "password_hash": PasswordHandler.hash_password(request.new_password),
        "must_reset_password": False,
    })
    return StandardResponse(message="Password changed successfully")


# PUBLIC_INTERFACE
@router.post("/password-reset-request", response_model=StandardResponse,
            summary="Request password reset",
            description="Request a password reset token for the given email address.")
async def request_password_reset(
    request: PasswordResetRequest,
    storage: Storage = Depends(get_storage)
):
    """
    Request a password reset.

    Always returns success so the endpoint cannot be used to probe
    which addresses have accounts.
    """
    user = storage.get_user_by_email(request.email)
    if user and user.is_active:
        storage.update_user(user.id, {
            "reset_token": generate_reset_token(),
            "reset_token_expiry": reset_token_expiry(),
        })
        # Token is stored only; no mail transport is configured.
        logger.info("Password reset requested for user %s", user.id)

    return StandardResponse(message="If the email exists, a password reset link has been sent")


# PUBLIC_INTERFACE
@router.post("/password-reset-confirm", response_model=StandardResponse,
            summary="Confirm password reset",
            description="Reset password using a valid reset token.")
async def confirm_password_reset(
    request: PasswordResetConfirm,
    storage: Storage = Depends(get_storage)
):
    user = storage.get_user_by_reset_token(request.token)
    expiry = as_utc(user.reset_token_expiry) if user else None
    if not user or expiry is None or expiry < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    storage.update_user(user.id, {
        "password_hash": PasswordHandler.hash_password(request.new_password),
        "reset_token": None,
        "reset_token_expiry": None,
        "must_reset_password": False,
    })
    return StandardResponse(message="Password reset successfully")


# PUBLIC_INTERFACE
@router.post("/reset-password-recovery", response_model=StandardResponse,
            summary="Reset password with recovery key",
            description="Reset a password using the recovery key issued at setup.")
async def reset_password_with_recovery_key(
    request: RecoveryResetRequest,
    storage: Storage = Depends(get_storage)
):
    user = storage.get_user_by_username_or_email(request.username_or_email)
    if (not user or not user.recovery_key_hash
            or not PasswordHandler.verify_password(request.recovery_key.strip().upper(), user.recovery_key_hash)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid username or recovery key"
        )

    storage.update_user(user.id, {
        "password_hash": PasswordHandler.hash_password(request.new_password),
        "must_reset_password": False,
    })
    logger.info("Password for user %s reset with recovery key", user.id)
    return StandardResponse(message="Password reset successfully")


# PUBLIC_INTERFACE
@router.post("/api-key", response_model=ApiKeyResponse,
            summary="Regenerate API key",
            description="Generate a new API key for the current user, replacing the previous one.")
async def regenerate_api_key(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return ApiKeyResponse(api_key=storage.generate_api_key(current_user.user_id))
