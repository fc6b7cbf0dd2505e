"""Organization roles and the capabilities each one grants."""

from enum import Enum


class Role(str, Enum):
    """Membership role inside an organization.

    Values are matched exactly (case-sensitive); anything else is rejected
    when the membership row is read or written.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class Permission(str, Enum):
    ORG_VIEW = "org:view"
    ORG_MEMBERS_VIEW = "org:members:view"

    PROJECT_CREATE = "project:create"
    PROJECT_VIEW = "project:view"
    PROJECT_EDIT = "project:edit"
    PROJECT_DELETE = "project:delete"

    TASK_CREATE = "task:create"
    TASK_VIEW = "task:view"
    TASK_EDIT = "task:edit"
    TASK_DELETE = "task:delete"

    COMMENT_CREATE = "comment:create"
    COMMENT_VIEW = "comment:view"


# Every member can read and write inside the organization.
# Task delete stays at this tier on purpose; only project delete is elevated.
_MEMBER_PERMISSIONS = frozenset(
    {
        Permission.ORG_VIEW,
        Permission.ORG_MEMBERS_VIEW,
        Permission.PROJECT_CREATE,
        Permission.PROJECT_VIEW,
        Permission.PROJECT_EDIT,
        Permission.TASK_CREATE,
        Permission.TASK_VIEW,
        Permission.TASK_EDIT,
        Permission.TASK_DELETE,
        Permission.COMMENT_CREATE,
        Permission.COMMENT_VIEW,
    }
)

_ELEVATED_PERMISSIONS = _MEMBER_PERMISSIONS | {Permission.PROJECT_DELETE}

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.OWNER: _ELEVATED_PERMISSIONS,
    Role.ADMIN: _ELEVATED_PERMISSIONS,
    Role.MANAGER: _MEMBER_PERMISSIONS,
    Role.MEMBER: _MEMBER_PERMISSIONS,
}


def role_allows(role: Role, permission: Permission) -> bool:
    """Return True if `role` carries `permission`."""
    return permission in ROLE_PERMISSIONS.get(role, frozenset())
