from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .api.errors import ConflictError, ValidationFailed
from .db_models import (
    OrganizationDB,
    OrganizationMemberDB,
    ProjectDB,
    TaskCommentDB,
    TaskDB,
    UserDB,
    now_utc,
)
from .roles import Role

logger = logging.getLogger("taskforge.store")

DONE_STATUS = "done"
DEFAULT_PROJECT_STATUS = "planning"
DEFAULT_PROJECT_COLOR = "#3B82F6"


# --- Helpers ---------------------------------------------------------------


def _commit(db: Session, conflict_message: Optional[str] = None) -> None:
    """Commit once; a uniqueness violation becomes ConflictError when a message is given."""
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        if conflict_message is None:
            raise
        logger.warning("integrity_error conflict=%r detail=%s", conflict_message, err.orig)
        raise ConflictError(conflict_message) from err


def _apply_patch(row, changes: dict, *, required: Tuple[str, ...], nullable: Tuple[str, ...]) -> None:
    """Merge-patch: absent keys stay; null clears nullable columns and is ignored for required ones."""
    for field in required:
        value = changes.get(field)
        if value is not None:
            setattr(row, field, value)
    for field in nullable:
        if field in changes:
            setattr(row, field, changes[field])


def normalize_email(email: str) -> str:
    return email.strip().lower()


# --- Users -----------------------------------------------------------------


def get_user(db: Session, user_id: uuid.UUID) -> Optional[UserDB]:
    return db.get(UserDB, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[UserDB]:
    """Case-insensitive lookup (emails are stored lower-cased)."""
    return db.query(UserDB).filter(UserDB.email == normalize_email(email)).one_or_none()


def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> UserDB:
    email = normalize_email(email)
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered")
    now = now_utc()
    user = UserDB(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    _commit(db, "Email already registered")
    db.refresh(user)
    logger.info("user registered user_id=%s", user.id)
    return user


def touch_last_login(db: Session, user: UserDB) -> UserDB:
    user.last_login_at = now_utc()
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user


def update_user_profile(db: Session, user: UserDB, data) -> UserDB:
    """Partial update of first/last name."""
    changes = data.model_dump(exclude_unset=True)
    _apply_patch(user, changes, required=(), nullable=("first_name", "last_name"))
    user.updated_at = now_utc()
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user


# --- Organizations & members -------------------------------------------------


def organization_slug_exists(db: Session, slug: str) -> bool:
    return db.query(OrganizationDB.id).filter(OrganizationDB.slug == slug).first() is not None


def create_organization(db: Session, data, *, owner_id: uuid.UUID) -> OrganizationDB:
    """Create an organization and make `owner_id` its owner in one commit.

    The slug pre-check only produces a friendlier error; the unique
    constraint decides when two creations race.
    """
    conflict = f"Organization with slug '{data.slug}' already exists"
    if organization_slug_exists(db, data.slug):
        raise ConflictError(conflict)
    now = now_utc()
    org = OrganizationDB(
        id=uuid.uuid4(),
        name=data.name,
        slug=data.slug,
        description=data.description,
        created_at=now,
        updated_at=now,
    )
    db.add(org)
    db.add(
        OrganizationMemberDB(
            organization_id=org.id,
            user_id=owner_id,
            role=Role.OWNER,
            joined_at=now,
        )
    )
    _commit(db, conflict)
    db.refresh(org)
    logger.info("organization created organization_id=%s owner_id=%s", org.id, owner_id)
    return org


def get_organization(db: Session, organization_id: uuid.UUID, *, active_only: bool = True) -> Optional[OrganizationDB]:
    query = db.query(OrganizationDB).filter(OrganizationDB.id == organization_id)
    if active_only:
        query = query.filter(OrganizationDB.is_active.is_(True))
    return query.one_or_none()


def list_organizations_for_user(db: Session, user_id: uuid.UUID) -> List[Tuple[OrganizationDB, Role]]:
    """Active organizations the user belongs to, newest first, each with the user's role."""
    rows = (
        db.query(OrganizationDB, OrganizationMemberDB.role)
        .join(OrganizationMemberDB, OrganizationMemberDB.organization_id == OrganizationDB.id)
        .filter(OrganizationMemberDB.user_id == user_id, OrganizationDB.is_active.is_(True))
        .order_by(OrganizationDB.created_at.desc(), OrganizationDB.id.desc())
        .all()
    )
    return [(org, role) for org, role in rows]


def get_membership_role(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Role]:
    """Role of `user_id` in an active organization, or None if not a member."""
    row = (
        db.query(OrganizationMemberDB.role)
        .join(OrganizationDB, OrganizationDB.id == OrganizationMemberDB.organization_id)
        .filter(
            OrganizationMemberDB.organization_id == organization_id,
            OrganizationMemberDB.user_id == user_id,
            OrganizationDB.is_active.is_(True),
        )
        .one_or_none()
    )
    return row[0] if row is not None else None


def add_member(
    db: Session,
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    role: Role | str = Role.MEMBER,
    *,
    invited_by: Optional[uuid.UUID] = None,
) -> OrganizationMemberDB:
    """Add a user to an organization. Role strings must match a role value exactly."""
    if not isinstance(role, Role):
        if not Role.has_value(role):
            raise ValidationFailed(f"Unknown role: {role}")
        role = Role(role)
    member = OrganizationMemberDB(
        organization_id=organization_id,
        user_id=user_id,
        role=role,
        invited_by=invited_by,
        joined_at=now_utc(),
    )
    db.add(member)
    _commit(db, "User is already a member of this organization")
    db.refresh(member)
    return member


def list_members(db: Session, organization_id: uuid.UUID) -> List[Tuple[OrganizationMemberDB, UserDB]]:
    """Members joined with their user rows, oldest membership first."""
    rows = (
        db.query(OrganizationMemberDB, UserDB)
        .join(UserDB, UserDB.id == OrganizationMemberDB.user_id)
        .filter(OrganizationMemberDB.organization_id == organization_id)
        .order_by(OrganizationMemberDB.joined_at.asc(), OrganizationMemberDB.id.asc())
        .all()
    )
    return [(member, user) for member, user in rows]


# --- Projects ----------------------------------------------------------------


def project_slug_exists(db: Session, organization_id: uuid.UUID, slug: str) -> bool:
    return (
        db.query(ProjectDB.id)
        .filter(ProjectDB.organization_id == organization_id, ProjectDB.slug == slug)
        .first()
        is not None
    )


def create_project(db: Session, organization_id: uuid.UUID, data, *, created_by: uuid.UUID) -> ProjectDB:
    """Create a project; slug must be unique within the organization."""
    conflict = f"Project with slug '{data.slug}' already exists in this organization"
    if project_slug_exists(db, organization_id, data.slug):
        raise ConflictError(conflict)
    now = now_utc()
    project = ProjectDB(
        organization_id=organization_id,
        name=data.name,
        slug=data.slug,
        description=data.description,
        status=data.status or DEFAULT_PROJECT_STATUS,
        color=data.color or DEFAULT_PROJECT_COLOR,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    db.add(project)
    _commit(db, conflict)
    db.refresh(project)
    logger.info("project created project_id=%s organization_id=%s", project.id, organization_id)
    return project


def list_projects(db: Session, organization_id: uuid.UUID) -> List[ProjectDB]:
    return (
        db.query(ProjectDB)
        .filter(ProjectDB.organization_id == organization_id)
        .order_by(ProjectDB.created_at.desc(), ProjectDB.id.desc())
        .all()
    )


def get_project(db: Session, project_id: uuid.UUID) -> Optional[ProjectDB]:
    return db.get(ProjectDB, project_id)


def update_project(db: Session, project: ProjectDB, data) -> ProjectDB:
    """Partial update (PATCH). organization_id and slug are never touched."""
    changes = data.model_dump(exclude_unset=True)
    _apply_patch(project, changes, required=("name", "status"), nullable=("description", "color"))
    project.updated_at = now_utc()
    db.add(project)
    _commit(db)
    db.refresh(project)
    logger.info("project updated project_id=%s", project.id)
    return project


def delete_project(db: Session, project: ProjectDB) -> None:
    """Hard delete; tasks and their comments go with it."""
    project_id = project.id
    db.delete(project)
    _commit(db)
    logger.info("project deleted project_id=%s", project_id)


# --- Tasks -------------------------------------------------------------------


def next_task_position(db: Session, project_id: uuid.UUID, status: str) -> int:
    """1 + the highest position in (project, status), or 0 for an empty group."""
    current = (
        db.query(func.max(TaskDB.position))
        .filter(TaskDB.project_id == project_id, TaskDB.status == status)
        .scalar()
    )
    return 0 if current is None else int(current) + 1


def create_task(db: Session, project_id: uuid.UUID, data, *, created_by: uuid.UUID) -> TaskDB:
    status = data.status or "todo"
    now = now_utc()
    task = TaskDB(
        project_id=project_id,
        title=data.title,
        description=data.description,
        status=status,
        priority=data.priority or "medium",
        assigned_to=data.assigned_to,
        created_by=created_by,
        due_date=data.due_date,
        position=next_task_position(db, project_id, status),
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    _commit(db)
    db.refresh(task)
    logger.info("task created task_id=%s project_id=%s", task.id, project_id)
    return task


def list_tasks(db: Session, project_id: uuid.UUID) -> List[TaskDB]:
    return (
        db.query(TaskDB)
        .filter(TaskDB.project_id == project_id)
        .order_by(TaskDB.position.asc(), TaskDB.created_at.asc(), TaskDB.id.asc())
        .all()
    )


def get_task(db: Session, task_id: uuid.UUID) -> Optional[TaskDB]:
    return db.get(TaskDB, task_id)


def update_task(db: Session, task: TaskDB, data) -> TaskDB:
    """Partial update (PATCH).

    Setting status to "done" stamps completed_at in the same commit.
    Moving away from "done" leaves completed_at as it was.
    """
    changes = data.model_dump(exclude_unset=True)
    _apply_patch(
        task,
        changes,
        required=("title", "status", "priority", "position"),
        nullable=("description", "assigned_to", "due_date"),
    )
    now = now_utc()
    if changes.get("status") == DONE_STATUS:
        task.completed_at = now
    task.updated_at = now
    db.add(task)
    _commit(db)
    db.refresh(task)
    logger.info("task updated task_id=%s", task.id)
    return task


def delete_task(db: Session, task: TaskDB) -> None:
    task_id = task.id
    db.delete(task)
    _commit(db)
    logger.info("task deleted task_id=%s", task_id)


# --- Comments ----------------------------------------------------------------


def create_comment(db: Session, task_id: uuid.UUID, data, *, user_id: uuid.UUID) -> TaskCommentDB:
    now = now_utc()
    comment = TaskCommentDB(
        task_id=task_id,
        user_id=user_id,
        content=data.content,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    _commit(db)
    db.refresh(comment)
    logger.info("comment created comment_id=%s task_id=%s", comment.id, task_id)
    return comment


def list_comments(db: Session, task_id: uuid.UUID) -> List[TaskCommentDB]:
    return (
        db.query(TaskCommentDB)
        .filter(TaskCommentDB.task_id == task_id)
        .order_by(TaskCommentDB.created_at.asc(), TaskCommentDB.id.asc())
        .all()
    )


# --- Hierarchy lookup ----------------------------------------------------------


class SqlHierarchy:
    """Parent lookups used by access.resolve_owning_organization."""

    def __init__(self, db: Session):
        self.db = db

    def project_organization(self, project_id: uuid.UUID) -> Optional[uuid.UUID]:
        row = self.db.query(ProjectDB.organization_id).filter(ProjectDB.id == project_id).one_or_none()
        return row[0] if row is not None else None

    def task_project(self, task_id: uuid.UUID) -> Optional[uuid.UUID]:
        row = self.db.query(TaskDB.project_id).filter(TaskDB.id == task_id).one_or_none()
        return row[0] if row is not None else None
