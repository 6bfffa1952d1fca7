"""
Role-based capability flags.

Every user row carries a ``permissions`` map of boolean flags. New users get
the defaults for their role; admins may later flip individual flags. The admin
role passes every check regardless of its stored flags.
"""

from typing import Dict, Iterable

from perfeval.core.errors import PermissionDenied
from perfeval.models.user import User, UserRole

CAN_MANAGE_USERS = "can_manage_users"
CAN_MANAGE_DEPARTMENTS = "can_manage_departments"
CAN_MANAGE_EVALUATIONS = "can_manage_evaluations"
CAN_VIEW_ANALYTICS = "can_view_analytics"
CAN_MANAGE_SETTINGS = "can_manage_settings"
CAN_CALCULATE_BONUSES = "can_calculate_bonuses"

ALL_PERMISSIONS = (
    CAN_MANAGE_USERS,
    CAN_MANAGE_DEPARTMENTS,
    CAN_MANAGE_EVALUATIONS,
    CAN_VIEW_ANALYTICS,
    CAN_MANAGE_SETTINGS,
    CAN_CALCULATE_BONUSES,
)

_ROLE_GRANTS: Dict[UserRole, Iterable[str]] = {
    UserRole.ADMIN: ALL_PERMISSIONS,
    UserRole.HR: (
        CAN_MANAGE_USERS,
        CAN_MANAGE_DEPARTMENTS,
        CAN_MANAGE_EVALUATIONS,
        CAN_VIEW_ANALYTICS,
        CAN_CALCULATE_BONUSES,
    ),
    UserRole.MANAGER: (CAN_MANAGE_EVALUATIONS, CAN_VIEW_ANALYTICS),
    UserRole.EMPLOYEE: (),
}


def default_permissions(role: UserRole) -> Dict[str, bool]:
    """Full flag map for a role; every known flag is present."""
    granted = set(_ROLE_GRANTS[UserRole(role)])
    return {flag: flag in granted for flag in ALL_PERMISSIONS}


def normalize_permissions(flags: Dict[str, bool]) -> Dict[str, bool]:
    """Drop unknown keys and fill missing ones with False."""
    return {flag: bool(flags.get(flag, False)) for flag in ALL_PERMISSIONS}


def has_permission(user: User, flag: str) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    return bool((user.permissions or {}).get(flag, False))


def require_permission(user: User, flag: str, action: str) -> None:
    """
    Raise PermissionDenied unless the user holds ``flag``.

    Args:
        user: Calling principal
        flag: Capability flag name (see ALL_PERMISSIONS)
        action: Human readable action, used in the error message
    """
    if not has_permission(user, flag):
        raise PermissionDenied(
            f"Insufficient permissions to {action}",
            {"required_permission": flag},
        )
