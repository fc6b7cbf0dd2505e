# PURPOSE: /projects/{id} read/patch/delete and the task collection nested under a project.

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..access import ResourceKind, authorize
from ..api.errors import NotFoundError, ValidationFailed
from ..db import get_db
from ..models import ProjectOut, ProjectUpdate, TaskCreate, TaskOut
from ..roles import Permission
from ..security import Principal, get_current_principal
from ..store_db import (
    create_task as db_create_task,
    delete_project as db_delete_project,
    get_project as db_get_project,
    get_user as db_get_user,
    list_tasks as db_list_tasks,
    update_project as db_update_project,
)

router = APIRouter(prefix="/projects", tags=["projects"])


def _load_project(db: Session, project_id: uuid.UUID):
    project = db_get_project(db, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.PROJECT, project_id, Permission.PROJECT_VIEW)
    return _load_project(db, project_id)


@router.patch("/{project_id}", response_model=ProjectOut)
def patch_project(
    project_id: uuid.UUID,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.PROJECT, project_id, Permission.PROJECT_EDIT)
    return db_update_project(db, _load_project(db, project_id), payload)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    # Members without an elevated role get 403; non-members 404
    authorize(db, principal, ResourceKind.PROJECT, project_id, Permission.PROJECT_DELETE)
    db_delete_project(db, _load_project(db, project_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: uuid.UUID,
    payload: TaskCreate,
    response: Response,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.PROJECT, project_id, Permission.TASK_CREATE)
    if payload.assigned_to is not None and db_get_user(db, payload.assigned_to) is None:
        raise ValidationFailed("assigned_to: user not found")
    task = db_create_task(db, project_id, payload, created_by=principal.user_id)
    response.headers["Location"] = f"/api/tasks/{task.id}"
    return task


@router.get("/{project_id}/tasks", response_model=List[TaskOut])
def list_tasks(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.PROJECT, project_id, Permission.TASK_VIEW)
    return db_list_tasks(db, project_id)
