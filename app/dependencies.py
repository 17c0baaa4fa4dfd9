"""Caller identity and permission dependencies."""
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.security import Permission
from app.crud.user import user as user_crud
from app.database import get_db
from app.models.user import User
from app.utils.permissions import has_permission
from app.utils.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def _user_id_from_token(token: str) -> UUID:
    try:
        payload = decode_token(token)
        if payload.get("type") != "access" or payload.get("sub") is None:
            raise ValueError("not an access token")
        return UUID(str(payload["sub"]))
    except ValueError:
        raise UnauthorizedError("Could not validate credentials")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the platform user named by the bearer token."""
    if credentials is None:
        raise UnauthorizedError()

    user = await user_crud.get(db, _user_id_from_token(credentials.credentials))
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    if not user.is_active:
        raise ForbiddenError("User is inactive")
    return user


def require_permission(permission: Permission):
    """Dependency factory: the current user must hold ``permission``."""

    async def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user, permission):
            raise ForbiddenError(f"Permission required: {permission.value}")
        return current_user

    return permission_checker
