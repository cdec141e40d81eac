"""
Authentication and Authorization

FastAPI dependencies that validate JWT access tokens and enforce roles.

Roles:
- admin: program staff (application review, templates, vendors)
- evaluator / trainer: staff with read access to assigned applications
- constituent: applicants and guardians using the portal
- vendor: equipment vendors redeeming vouchers

SECURITY NOTE:
- The development bypass tokens are ONLY accepted when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production
"""

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vulcan.core.config import settings
from vulcan.core.security import TOKEN_TYPE_ACCESS, decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)

ROLE_ADMIN = "admin"
ROLE_CONSTITUENT = "constituent"
ROLE_VENDOR = "vendor"
ROLE_EVALUATOR = "evaluator"
ROLE_TRAINER = "trainer"


@dataclass
class CurrentUser:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        id: User id
        email: User's email address
        role: One of the ROLE_* values
        name: Display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role})"


# Kept for admin routers that only ever see admins
AdminUser = CurrentUser


def _is_dev_mode_safe() -> bool:
    """
    Development auth bypass is enabled only when every check agrees:
    settings say development, settings do not say production, and the raw
    PYTHON_ENV variable is neither production nor staging.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_USERS = {
    "dev-token": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        email="admin@vulcan.dev",
        role=ROLE_ADMIN,
        name="Development Admin",
    ),
    "vendor-token": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000002"),
        email="vendor@vulcan.dev",
        role=ROLE_VENDOR,
        name="Development Vendor",
    ),
    "constituent-token": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000003"),
        email="constituent@vulcan.dev",
        role=ROLE_CONSTITUENT,
        name="Development Constituent",
    ),
}


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate an access token and build the CurrentUser.

    Raises:
        HTTPException 401: invalid, expired, wrong type or bad claims
    """
    if _DEVELOPMENT_MODE and token in _DEV_USERS:
        logger.debug("Development mode: Using test token")
        return _DEV_USERS[token]

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", TOKEN_TYPE_ACCESS)
    if token_type != TOKEN_TYPE_ACCESS:
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated user, any role."""
    return await _validate_jwt_token(credentials.credentials)


def require_roles(*roles: str) -> Callable[..., Awaitable[CurrentUser]]:
    """
    Build a dependency that only admits the given roles.

    Usage:
        @router.post("/redeem")
        async def redeem(vendor: CurrentUser = Depends(require_roles(ROLE_VENDOR))):
            ...
    """

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            logger.warning(
                f"Access denied: User {user.id} ({user.email}) has role '{user.role}', "
                f"but one of {roles} is required"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "INSUFFICIENT_ROLE",
                    "message": "You do not have access to this resource.",
                },
            )
        return user

    return dependency


async def get_current_admin_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Dependency for admin endpoints.

    Raises:
        HTTPException 403: If the user is not an admin
    """
    if user.role != ROLE_ADMIN:
        logger.warning(f"Access denied: User {user.id} has role '{user.role}', admin required")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return user


get_current_vendor = require_roles(ROLE_VENDOR)
get_current_constituent = require_roles(ROLE_CONSTITUENT)


__all__ = [
    "AdminUser",
    "CurrentUser",
    "ROLE_ADMIN",
    "ROLE_CONSTITUENT",
    "ROLE_EVALUATOR",
    "ROLE_TRAINER",
    "ROLE_VENDOR",
    "get_current_admin_user",
    "get_current_constituent",
    "get_current_user",
    "get_current_vendor",
    "require_roles",
]
