"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT (required or optional)
- Token validation for WebSocket connections
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from linguapath.core.context import set_user_id
from linguapath.core.logging import get_logger

from .schemas import AuthenticatedUser, UserRole
from .security import decode_access_token


logger = get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def authenticate_token(token: str | None) -> AuthenticatedUser | None:
    """Validate a token; None when missing or invalid."""
    if not token:
        return None
    try:
        user = AuthenticatedUser.from_token_payload(decode_access_token(token))
    except JWTError as e:
        logger.warning("token_rejected", error=str(e))
        return None
    except ValueError as e:
        logger.warning("token_invalid_subject", error=str(e))
        return None

    # Set user_id in context for logging
    set_user_id(str(user.id))
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = authenticate_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser | None:
    """Get current user if authenticated, None otherwise.

    Use this for endpoints that work for both authenticated and anonymous users.
    An invalid token is treated as anonymous.
    """
    return authenticate_token(token)


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of the given roles.

    Example:
        @router.patch("/admin-only")
        async def admin_endpoint(
            user: Annotated[AuthenticatedUser, Depends(require_role(UserRole.ADMIN))]
        ):
            ...
    """

    async def role_checker(
        user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    ) -> AuthenticatedUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker


# Type aliases for dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_current_user_optional)]
AdminUser = Annotated[AuthenticatedUser, Depends(require_role(UserRole.ADMIN))]
