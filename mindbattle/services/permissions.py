"""Role based access control for administrators."""
from typing import Optional

from mindbattle.models.base import AdminPermission, AdminRole


ROLE_PERMISSIONS: dict[AdminRole, frozenset[AdminPermission]] = {
    AdminRole.SUPER_ADMIN: frozenset(AdminPermission),
    AdminRole.CONTEST_MANAGER: frozenset({AdminPermission.MANAGE_CONTESTS}),
    AdminRole.FINANCE_MANAGER: frozenset({AdminPermission.MANAGE_FINANCE}),
    AdminRole.USER_MANAGER: frozenset({AdminPermission.MANAGE_USERS}),
}


def permissions_for(role: Optional[str]) -> frozenset[AdminPermission]:
    """Permissions granted to a role; empty for regular users and unknown roles."""
    if role is None:
        return frozenset()
    try:
        return ROLE_PERMISSIONS[AdminRole(role)]
    except ValueError:
        return frozenset()


def has_permission(role: Optional[str], permission: AdminPermission) -> bool:
    return permission in permissions_for(role)
