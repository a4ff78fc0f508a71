"""FastAPI dependencies."""
import logging
from typing import Callable

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.database import get_db
from mindbattle.models.base import AdminPermission
from mindbattle.models.user import User
from mindbattle.services.auth_service import AuthError, AuthService
from mindbattle.services.permissions import has_permission
from mindbattle.services.user_service import UserService

logger = logging.getLogger(__name__)


async def get_current_user(
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current authenticated user from a bearer access token."""
    if not authorization:
        raise HTTPException(status_code=401, detail="missing_credentials")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="invalid_authorization_header")

    auth_service = AuthService(db)
    try:
        payload = auth_service.decode_access_token(token)
        email = payload.get("sub")
        if not email:
            raise AuthError("invalid_token")
    except AuthError as exc:
        detail = "token_expired" if str(exc) == "token_expired" else "invalid_token"
        raise HTTPException(status_code=401, detail=detail) from exc

    user = await UserService(db).get_user(email)
    if not user:
        raise HTTPException(status_code=401, detail="invalid_token")
    if user.banned:
        raise HTTPException(status_code=403, detail="Your account has been suspended by an administrator.")

    logger.debug(f"Authenticated user via JWT: {user.email}")
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Verify that the current authenticated user holds an admin role."""
    if not user.is_admin:
        logger.warning(f"Access denied to admin endpoint for non-admin user: {user.email}")
        raise HTTPException(status_code=403, detail="admin_access_required")
    return user


def require_permission(permission: AdminPermission) -> Callable:
    """Dependency factory restricting a route to admins whose role grants ``permission``."""

    async def _require_permission(admin: User = Depends(get_current_admin)) -> User:
        if not has_permission(admin.role, permission):
            logger.warning(f"Admin {admin.email} ({admin.role}) lacks {permission.value}")
            raise HTTPException(status_code=403, detail="permission_denied")
        return admin

    return _require_permission
