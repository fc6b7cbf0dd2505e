# PURPOSE: /organizations CRUD-lite plus the project collection nested under an organization.

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..access import ResourceKind, authorize
from ..api.errors import NotFoundError
from ..db import get_db
from ..models import (
    MemberOut,
    OrganizationCreate,
    OrganizationOut,
    ProjectCreate,
    ProjectOut,
    member_out,
    organization_out,
)
from ..roles import Permission, Role
from ..security import Principal, get_current_principal
from ..store_db import (
    create_organization as db_create_organization,
    create_project as db_create_project,
    get_organization as db_get_organization,
    list_members as db_list_members,
    list_organizations_for_user as db_list_organizations,
    list_projects as db_list_projects,
)

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreate,
    response: Response,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    org = db_create_organization(db, payload, owner_id=principal.user_id)
    response.headers["Location"] = f"/api/organizations/{org.id}"
    return organization_out(org, Role.OWNER)


@router.get("", response_model=List[OrganizationOut])
def list_organizations(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [organization_out(org, role) for org, role in db_list_organizations(db, principal.user_id)]


@router.get("/{org_id}", response_model=OrganizationOut)
def get_organization(
    org_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    access = authorize(db, principal, ResourceKind.ORGANIZATION, org_id, Permission.ORG_VIEW)
    org = db_get_organization(db, org_id)
    if org is None:
        raise NotFoundError("Organization not found")
    return organization_out(org, access.role)


@router.get("/{org_id}/members", response_model=List[MemberOut])
def list_members(
    org_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.ORGANIZATION, org_id, Permission.ORG_MEMBERS_VIEW)
    return [member_out(member, user) for member, user in db_list_members(db, org_id)]


@router.post("/{org_id}/projects", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    org_id: uuid.UUID,
    payload: ProjectCreate,
    response: Response,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    # The caller names the organization here, so a non-member is told 403
    authorize(
        db, principal, ResourceKind.ORGANIZATION, org_id, Permission.PROJECT_CREATE, conceal=False
    )
    project = db_create_project(db, org_id, payload, created_by=principal.user_id)
    response.headers["Location"] = f"/api/projects/{project.id}"
    return project


@router.get("/{org_id}/projects", response_model=List[ProjectOut])
def list_projects(
    org_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.ORGANIZATION, org_id, Permission.PROJECT_VIEW)
    return db_list_projects(db, org_id)
