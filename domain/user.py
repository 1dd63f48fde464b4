"""
Domain: User accounts, roles and capabilities.

Represents the authenticated actor of a session (seller, manager or admin).
Identity provisioning is external; this module only answers "may this actor
do X", using a role -> capability map that defaults to DEFAULT_PERMISSIONS.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Collection, Mapping, Optional

from .time import require_utc_timestamp


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SELLER = "SELLER"


class AppPermission(str, Enum):
    ACCESS_ADMIN_PANEL = "ACCESS_ADMIN_PANEL"
    VIEW_ALL_SALES = "VIEW_ALL_SALES"
    VIEW_OWN_SALES = "VIEW_OWN_SALES"
    CREATE_SALES = "CREATE_SALES"
    APPROVE_SALES = "APPROVE_SALES"
    DELETE_USERS = "DELETE_USERS"
    MANAGE_PERMISSIONS = "MANAGE_PERMISSIONS"
    VIEW_DASHBOARD = "VIEW_DASHBOARD"


RolePermissionsMap = Mapping[UserRole, Collection[AppPermission]]

DEFAULT_PERMISSIONS: RolePermissionsMap = {
    UserRole.ADMIN: frozenset(AppPermission),
    UserRole.MANAGER: frozenset(
        {AppPermission.VIEW_ALL_SALES, AppPermission.APPROVE_SALES, AppPermission.VIEW_DASHBOARD}
    ),
    UserRole.SELLER: frozenset(
        {AppPermission.VIEW_OWN_SALES, AppPermission.CREATE_SALES, AppPermission.VIEW_DASHBOARD}
    ),
}


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Authenticated user acting in a session.

    Ownership of sales is always decided by Sale.seller_id; the actor only
    supplies the name recorded in status history and the capability set.
    """

    user_id: str
    name: str
    role: UserRole

    email: Optional[str] = None
    confirmed: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id must not be empty")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    def has_permission(
        self,
        permission: AppPermission,
        permissions: Optional[RolePermissionsMap] = None,
    ) -> bool:
        """Check the role's capability set (custom map first, defaults as fallback)."""

        granted = None
        if permissions is not None:
            granted = permissions.get(self.role)
        if granted is None:
            granted = DEFAULT_PERMISSIONS.get(self.role, ())
        return permission in granted

    def can_view_all(self, permissions: Optional[RolePermissionsMap] = None) -> bool:
        return self.has_permission(AppPermission.VIEW_ALL_SALES, permissions)
