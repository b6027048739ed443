"""
JWT token handling for authentication and authorization.

Provides utilities for creating and validating JWT tokens with user
information, plus password hashing and the random secrets handed out
for recovery and admin-created accounts.
"""
import os
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext

# Configuration
SECRET_KEY = os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours default
RESET_TOKEN_EXPIRE_HOURS = 1
MIN_PASSWORD_LENGTH = 6

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class JWTHandler:
    """JWT token handler for authentication."""

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token.

        Args:
            data: Token payload data
            expires_delta: Token expiration delta

        Returns:
            str: Encoded JWT token
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a JWT token.

        Args:
            token: JWT token to verify

        Returns:
            Optional[Dict[str, Any]]: Token payload if valid, None if invalid
        """
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            return None

    @staticmethod
    def create_user_token(user_id: int, username: str, role: str) -> str:
        """
        Create an access token for a user.

        Args:
            user_id: User ID
            username: Username
            role: Global user role

        Returns:
            str: JWT token
        """
        data = {
            "sub": str(user_id),
            "username": username,
            "role": role,
            "type": "access"
        }
        return JWTHandler.create_access_token(data)


class PasswordHandler:
    """Password handling utilities."""

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def validate_password_strength(password: str) -> bool:
        """
        Validate password strength.

        Args:
            password: Password to validate

        Returns:
            bool: True if password meets requirements
        """
        return len(password) >= MIN_PASSWORD_LENGTH


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a plain text password."""
    return PasswordHandler.hash_password(password)


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain text password against its hash."""
    return PasswordHandler.verify_password(plain_password, hashed_password)


# PUBLIC_INTERFACE
def generate_reset_token() -> str:
    """Opaque password reset token, stored on the user row."""
    return secrets.token_urlsafe(32)


def reset_token_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=RESET_TOKEN_EXPIRE_HOURS)


# PUBLIC_INTERFACE
def generate_recovery_key() -> str:
    """
    Generate a one-time recovery key, formatted as four dash-separated groups.

    Returns:
        str: Recovery key shown to the user once; only its hash is stored
    """
    alphabet = string.ascii_uppercase + string.digits
    groups = ["".join(secrets.choice(alphabet) for _ in range(5)) for _ in range(4)]
    return "-".join(groups)


# PUBLIC_INTERFACE
def generate_temporary_password(length: int = 12) -> str:
    """Random password for accounts created by an administrator."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
