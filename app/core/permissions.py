"""Role-based access control and permissions."""

from enum import Enum
from typing import Annotated, Any, Callable

from fastapi import Depends

from app.api.deps import get_current_user
from app.core.exceptions import AuthorizationError
from app.models.user import Profile


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    STUDENT = "student"
    PARENT = "parent"


class Permission(str, Enum):
    """System permissions."""

    # Schedule permissions
    VIEW_SCHEDULES = "view_schedules"
    MANAGE_SCHEDULES = "manage_schedules"
    APPROVE_SCHEDULES = "approve_schedules"

    # Duty booking permissions
    BOOK_DUTY = "book_duty"
    CANCEL_OWN_DUTY = "cancel_own_duty"
    CANCEL_ANY_DUTY = "cancel_any_duty"
    COMPLETE_OWN_DUTY = "complete_own_duty"
    VIEW_OWN_DUTIES = "view_own_duties"
    VIEW_CHILD_DUTIES = "view_child_duties"
    VIEW_ALL_DUTIES = "view_all_duties"

    # Admin permissions
    VIEW_DUTY_LOGS = "view_duty_logs"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.STUDENT: {
        Permission.VIEW_SCHEDULES,
        Permission.BOOK_DUTY,
        Permission.CANCEL_OWN_DUTY,
        Permission.COMPLETE_OWN_DUTY,
        Permission.VIEW_OWN_DUTIES,
    },
    UserRole.PARENT: {
        Permission.VIEW_SCHEDULES,
        Permission.VIEW_CHILD_DUTIES,
    },
    UserRole.ADMIN: {
        Permission.VIEW_SCHEDULES,
        Permission.MANAGE_SCHEDULES,
        Permission.APPROVE_SCHEDULES,
        Permission.CANCEL_ANY_DUTY,
        Permission.VIEW_ALL_DUTIES,
        Permission.VIEW_DUTY_LOGS,
    },
}


def has_permission(role: UserRole | str, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(role, set())


def require_permission(permission: Permission) -> Callable[..., Any]:
    """Dependency to require a specific permission."""

    async def permission_checker(
        current_user: Annotated[Profile, Depends(get_current_user)],
    ) -> Profile:
        if not has_permission(current_user.role, permission):
            raise AuthorizationError(
                f"Permission '{permission.value}' is required for this action"
            )
        return current_user

    return permission_checker


# Convenience dependencies
require_schedule_viewer = require_permission(Permission.VIEW_SCHEDULES)
require_schedule_manager = require_permission(Permission.MANAGE_SCHEDULES)
require_schedule_approver = require_permission(Permission.APPROVE_SCHEDULES)
require_duty_booker = require_permission(Permission.BOOK_DUTY)
require_own_duties = require_permission(Permission.VIEW_OWN_DUTIES)
require_child_duties = require_permission(Permission.VIEW_CHILD_DUTIES)
require_duty_log_access = require_permission(Permission.VIEW_DUTY_LOGS)
require_all_duties = require_permission(Permission.VIEW_ALL_DUTIES)
