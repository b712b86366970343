"""Authentication utilities for JWT token handling."""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ridemate.config.settings import BaseAppSettings
from ridemate.core.errors import ForbiddenError
from ridemate.dependencies import get_settings

# Security scheme
security = HTTPBearer()


class AuthenticationError(Exception):
    """Custom authentication error."""

    pass


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Verified identity attached to a request."""

    id: UUID
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def ensure_self_or_admin(self, user_id: UUID) -> None:
        """Only admins may act on behalf of another user."""
        if not self.is_admin and self.id != user_id:
            raise ForbiddenError("You can only act on your own behalf")


def create_access_token(
    data: dict, settings: BaseAppSettings, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        settings: Application settings
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": now + expires_delta, "iat": now})

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: BaseAppSettings) -> dict:
    """
    Verify and decode a JWT token.

    Raises:
        AuthenticationError: If token is invalid
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")


def create_user_token(
    user_id: UUID, settings: BaseAppSettings, role: Role = Role.USER
) -> str:
    """Create a JWT token for a user identity."""
    return create_access_token({"sub": str(user_id), "role": role.value}, settings)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: BaseAppSettings = Depends(get_settings),
) -> Principal:
    """
    Get the authenticated identity from the bearer token.

    Raises:
        HTTPException: If authentication fails
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = verify_token(credentials.credentials, settings)

        user_id_str: Optional[str] = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception

        return Principal(id=UUID(user_id_str), role=Role(payload.get("role", "user")))

    except (ValueError, AuthenticationError):
        raise credentials_exception


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Allow only admin identities."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return principal
