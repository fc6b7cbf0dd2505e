"""Membership resolution and authorization.

Every access walks resource -> parent -> organization -> membership -> role:

    Unauthenticated -> Authenticated -> Authorized{role} -> Permitted | Forbidden

Authentication happens in the session dependency before any of this runs.
A missing resource and a resource in an organization the caller does not
belong to look the same from outside (NotFoundError), so existence never
leaks to non-members. A member whose role lacks the permission gets
AuthorizationError.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from .api.errors import AuthorizationError, NotFoundError
from .roles import Permission, Role, role_allows
from .security import Principal
from .store_db import SqlHierarchy, get_membership_role

logger = logging.getLogger("taskforge.access")


class ResourceKind(str, Enum):
    ORGANIZATION = "organization"
    PROJECT = "project"
    TASK = "task"


class HierarchyLookup(Protocol):
    def project_organization(self, project_id: uuid.UUID) -> Optional[uuid.UUID]: ...

    def task_project(self, task_id: uuid.UUID) -> Optional[uuid.UUID]: ...


def resolve_owning_organization(
    kind: ResourceKind, resource_id: uuid.UUID, lookup: HierarchyLookup
) -> Optional[uuid.UUID]:
    """Return the id of the organization that owns the resource, or None if it does not exist."""
    if kind is ResourceKind.ORGANIZATION:
        return resource_id
    if kind is ResourceKind.PROJECT:
        return lookup.project_organization(resource_id)
    if kind is ResourceKind.TASK:
        project_id = lookup.task_project(resource_id)
        if project_id is None:
            return None
        return lookup.project_organization(project_id)
    raise ValueError(f"unknown resource kind: {kind!r}")


_NOT_FOUND_MESSAGES = {
    ResourceKind.ORGANIZATION: "Organization not found or you don't have access",
    ResourceKind.PROJECT: "Project not found",
    ResourceKind.TASK: "Task not found",
}

_FORBIDDEN_MESSAGES = {
    Permission.PROJECT_DELETE: "Only organization owners and admins can delete projects",
    Permission.PROJECT_CREATE: "You are not a member of this organization",
}


@dataclass(frozen=True)
class Access:
    """A Permitted decision: who, in which organization, with which role."""

    principal: Principal
    organization_id: uuid.UUID
    role: Role


def authorize(
    db: Session,
    principal: Principal,
    kind: ResourceKind,
    resource_id: uuid.UUID,
    permission: Permission,
    *,
    conceal: bool = True,
    lookup: Optional[HierarchyLookup] = None,
) -> Access:
    """Decide whether `principal` may exercise `permission` on the resource.

    With `conceal=False` a non-member gets AuthorizationError instead of
    NotFoundError (used where the caller already names the organization,
    e.g. creating a project in it).
    """
    lookup = lookup if lookup is not None else SqlHierarchy(db)
    organization_id = resolve_owning_organization(kind, resource_id, lookup)
    role = None
    if organization_id is not None:
        role = get_membership_role(db, organization_id, principal.user_id)

    if role is None:
        logger.info(
            "access denied reason=no_membership user_id=%s kind=%s resource_id=%s",
            principal.user_id,
            kind.value,
            resource_id,
        )
        if conceal:
            raise NotFoundError(_NOT_FOUND_MESSAGES[kind])
        raise AuthorizationError(
            _FORBIDDEN_MESSAGES.get(permission, "You don't have access to this resource")
        )

    if not role_allows(role, permission):
        logger.info(
            "access denied reason=role user_id=%s role=%s permission=%s resource_id=%s",
            principal.user_id,
            role.value,
            permission.value,
            resource_id,
        )
        raise AuthorizationError(
            _FORBIDDEN_MESSAGES.get(permission, "Your role does not allow this operation")
        )

    return Access(principal=principal, organization_id=organization_id, role=role)
