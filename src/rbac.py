"""
OpenShelf - Role-Based Access Control (RBAC)

Role hierarchy and permission table for the catalog core.

Roles rank SUPER_ADMIN > ADMIN > CURATOR > PUBLIC. A principal's role is
resolved from the rosters held in GlobalState; there is no separate key
registry.

Usage:
    from rbac import Permission, require_permission

    require_permission(state, caller, Permission.CATALOG_ADD)
"""

from enum import Enum, auto
from typing import TYPE_CHECKING

from errors import InsufficientPermissions, OnlySuperAdmin

if TYPE_CHECKING:
    from governance_state import GlobalState
    from principal import Principal


# =============================================================================
# Permissions
# =============================================================================


class Permission(Enum):
    """
    Operations guarded by a role check.

    RESOURCE_ACTION format, one member per guarded operation.
    """

    # Role management
    ADMIN_ADD = auto()
    ADMIN_REMOVE = auto()
    CURATOR_ADD = auto()
    CURATOR_REMOVE = auto()

    # Availability
    PROGRAM_PAUSE = auto()

    # Catalog
    CATALOG_ADD = auto()
    CATALOG_UPDATE_ANY = auto()  # Curators may still update their own entries
    CATALOG_REMOVE = auto()

    # Super admin transfer
    TRANSFER_MANAGE = auto()

    # Emergency recovery
    RECOVERY_CANCEL = auto()


# =============================================================================
# Roles
# =============================================================================


class Role(Enum):
    """Roles, lowest first."""

    PUBLIC = "public"
    CURATOR = "curator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return ROLE_HIERARCHY.index(self)

    def at_least(self, other: "Role") -> bool:
        return self.rank >= other.rank


ROLE_HIERARCHY = [Role.PUBLIC, Role.CURATOR, Role.ADMIN, Role.SUPER_ADMIN]

# Minimum role for each permission
PERMISSION_MIN_ROLE: dict[Permission, Role] = {
    Permission.ADMIN_ADD: Role.ADMIN,
    Permission.ADMIN_REMOVE: Role.SUPER_ADMIN,
    Permission.CURATOR_ADD: Role.ADMIN,
    Permission.CURATOR_REMOVE: Role.ADMIN,
    Permission.PROGRAM_PAUSE: Role.SUPER_ADMIN,
    Permission.CATALOG_ADD: Role.CURATOR,
    Permission.CATALOG_UPDATE_ANY: Role.ADMIN,
    Permission.CATALOG_REMOVE: Role.ADMIN,
    Permission.TRANSFER_MANAGE: Role.SUPER_ADMIN,
    Permission.RECOVERY_CANCEL: Role.SUPER_ADMIN,
}

# Role to permissions mapping, derived from the hierarchy
ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    role: {p for p, minimum in PERMISSION_MIN_ROLE.items() if role.at_least(minimum)}
    for role in Role
}


def resolve_role(state: "GlobalState", principal: "Principal") -> Role:
    """Highest role the principal holds in the given state."""
    if principal == state.super_admin:
        return Role.SUPER_ADMIN
    if principal in state.admins:
        return Role.ADMIN
    if principal in state.curators:
        return Role.CURATOR
    return Role.PUBLIC


def has_permission(state: "GlobalState", principal: "Principal", permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS[resolve_role(state, principal)]


def require_permission(
    state: "GlobalState", principal: "Principal", permission: Permission
) -> Role:
    """
    Check a permission, raising on denial.

    Permissions reserved to the super admin raise OnlySuperAdmin, every
    other denial raises InsufficientPermissions.

    Returns:
        The caller's resolved role
    """
    role = resolve_role(state, principal)
    if permission in ROLE_PERMISSIONS[role]:
        return role

    if PERMISSION_MIN_ROLE[permission] is Role.SUPER_ADMIN:
        raise OnlySuperAdmin(permission=permission.name, role=role.value)
    raise InsufficientPermissions(permission=permission.name, role=role.value)


def require_admin_member(state: "GlobalState", principal: "Principal") -> None:
    """
    Require membership of the admin roster itself.

    Used by emergency recovery, where the super admin is the party being
    replaced and must not count towards the quorum.
    """
    if principal not in state.admins:
        raise InsufficientPermissions(
            "Only roster admins may take part in emergency recovery",
            role=resolve_role(state, principal).value,
        )
