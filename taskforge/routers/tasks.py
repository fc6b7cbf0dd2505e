# PURPOSE: /tasks/{id} read/patch/delete and task comments.

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..access import ResourceKind, authorize
from ..api.errors import NotFoundError, ValidationFailed
from ..db import get_db
from ..models import CommentCreate, CommentOut, TaskOut, TaskUpdate
from ..roles import Permission
from ..security import Principal, get_current_principal
from ..store_db import (
    create_comment as db_create_comment,
    delete_task as db_delete_task,
    get_task as db_get_task,
    get_user as db_get_user,
    list_comments as db_list_comments,
    update_task as db_update_task,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _load_task(db: Session, task_id: uuid.UUID):
    task = db_get_task(db, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.TASK, task_id, Permission.TASK_VIEW)
    return _load_task(db, task_id)


@router.patch("/{task_id}", response_model=TaskOut)
def patch_task(
    task_id: uuid.UUID,
    item: TaskUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.TASK, task_id, Permission.TASK_EDIT)
    if item.assigned_to is not None and db_get_user(db, item.assigned_to) is None:
        raise ValidationFailed("assigned_to: user not found")
    return db_update_task(db, _load_task(db, task_id), item)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    # Any member may delete a task (project delete needs owner/admin)
    authorize(db, principal, ResourceKind.TASK, task_id, Permission.TASK_DELETE)
    db_delete_task(db, _load_task(db, task_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    task_id: uuid.UUID,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.TASK, task_id, Permission.COMMENT_CREATE)
    return db_create_comment(db, task_id, payload, user_id=principal.user_id)


@router.get("/{task_id}/comments", response_model=List[CommentOut])
def list_comments(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    authorize(db, principal, ResourceKind.TASK, task_id, Permission.COMMENT_VIEW)
    return db_list_comments(db, task_id)
