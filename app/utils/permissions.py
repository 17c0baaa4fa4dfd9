"""RBAC permission helpers."""
from app.models.user import User
from app.core.security import Permission, ROLE_PERMISSIONS


def _role_name(user: User) -> str:
    role = user.role
    return role.value if hasattr(role, "value") else str(role)


def has_permission(user: User, permission: Permission) -> bool:
    """Check if user has a specific permission."""
    if not user.is_active:
        return False
    return permission in ROLE_PERMISSIONS.get(_role_name(user), [])
