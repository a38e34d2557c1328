"""CRUD operations for users, customers, projects and tasks.

This module contains database interaction logic isolated from FastAPI
route handlers. Updates are full replacements of an allow-listed field
set: every listed field is overwritten from the submitted schema and
``created_at`` is never touched. Customers, projects and tasks carry a
version column, so a write that races with another request fails with a
stale-data error which is reported as ``NotFoundError`` when the row is
gone and as ``ConflictError`` otherwise.
"""

from datetime import datetime

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from . import models, schemas
from .errors import (
    BadRequestError,
    ConflictError,
    DuplicateEmailError,
    DuplicateUsernameError,
    ForbiddenError,
    NotFoundError,
)
from .permissions import can_mutate_task
from .timeutil import as_utc, utcnow

logger = structlog.get_logger(__name__)


CUSTOMER_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "billing_street",
    "billing_city",
    "billing_state",
    "billing_zip_code",
    "property_street",
    "property_city",
    "property_state",
    "property_zip_code",
)

PROJECT_FIELDS = (
    "customer_id",
    "project_name",
    "description",
    "status",
    "estimate_date",
    "contract_signed_date",
    "scheduled_start_date",
    "completion_date",
    "estimated_cost",
    "final_cost",
    "amount_paid",
    "shingle_type",
    "shingle_color",
    "has_metal_work",
    "metal_work_description",
    "notes",
)

TASK_FIELDS = (
    "title",
    "description",
    "priority",
    "status",
    "assigned_to_id",
    "customer_id",
    "project_id",
    "due_date",
    "completed_at",
)


def allowed_values(payload, fields) -> dict:
    """
    Extract the allow-listed fields of a schema, with datetimes in UTC.

    Args:
        payload (BaseModel): Validated request schema.
        fields (tuple[str, ...]): Names of the mutable fields.

    Returns:
        dict: Field name to value for every allow-listed field.
    """
    values = payload.model_dump(include=set(fields))
    return {
        key: as_utc(value) if isinstance(value, datetime) else value
        for key, value in values.items()
    }


def _overwrite(entity, values: dict) -> None:
    """Write every allow-listed field, even when the value is unchanged."""
    for key, value in values.items():
        setattr(entity, key, value)
        flag_modified(entity, key)


def _exists(db: Session, model, entity_id: int) -> bool:
    return (
        db.execute(select(model.id).where(model.id == entity_id)).first()
        is not None
    )


def _commit_mutation(db: Session, model, entity_id: int, action: str):
    """
    Commit a pending update or delete of one row.

    Raises:
        NotFoundError: If the row was deleted by another request.
        ConflictError: If the row still exists but was changed.
    """
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        if not _exists(db, model, entity_id):
            raise NotFoundError(f"{model.__name__} not found") from exc
        logger.warning(
            "concurrent_modification",
            entity=model.__name__,
            entity_id=entity_id,
            action=action,
        )
        raise ConflictError() from exc


def _require_reference(db: Session, model, entity_id: int | None, label: str):
    if entity_id is not None and not _exists(db, model, entity_id):
        raise BadRequestError(f"{label} {entity_id} does not exist")


# Users


def create_user(
    db: Session, user_in: schemas.RegisterRequest, hashed_password: str
) -> models.User:
    """
    Create and persist a new staff user.

    Args:
        db (Session): SQLAlchemy database session.
        user_in (RegisterRequest): Incoming user data.
        hashed_password (str): Securely hashed password.

    Raises:
        DuplicateUsernameError: If the username is taken.
        DuplicateEmailError: If the email is taken.

    Returns:
        User: Newly created user instance.
    """
    if get_user_by_username(db, user_in.username):
        raise DuplicateUsernameError()
    if get_user_by_email(db, user_in.email):
        raise DuplicateEmailError()

    user = models.User(
        username=user_in.username,
        email=user_in.email,
        hashed_password=hashed_password,
        role=int(models.UserRole.STAFF),
        created_at=utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration.
        db.rollback()
        if get_user_by_username(db, user_in.username):
            raise DuplicateUsernameError()
        if get_user_by_email(db, user_in.email):
            raise DuplicateEmailError()
        raise
    db.refresh(user)
    logger.info("user_registered", user_id=user.id, username=user.username)
    return user


def get_user_by_username(db: Session, username: str) -> models.User | None:
    return db.execute(
        select(models.User).where(models.User.username == username)
    ).scalar_one_or_none()


def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.execute(
        select(models.User).where(models.User.email == email)
    ).scalar_one_or_none()


def get_user_by_id(db: Session, user_id: int) -> models.User | None:
    """
    Retrieve a user by primary key.

    Args:
        db (Session): Database session.
        user_id (int): User identifier.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.execute(
        select(models.User).where(models.User.id == user_id)
    ).scalar_one_or_none()


def get_users(db: Session) -> list[models.User]:
    return db.scalars(select(models.User).order_by(models.User.id)).all()


def update_user_role(
    db: Session, user: models.User, role: models.UserRole
) -> models.User:
    """Store a new role for a user."""
    user.role = int(role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_role_changed", user_id=user.id, role=role.name)
    return user


# Customers


def get_customer(db: Session, customer_id: int) -> models.Customer | None:
    return db.execute(
        select(models.Customer)
        .options(selectinload(models.Customer.projects))
        .where(models.Customer.id == customer_id)
    ).scalar_one_or_none()


def get_customers(db: Session, search: str | None = None, limit: int = 50):
    """
    Retrieve customers, optionally filtered by a search string.

    The search is a case-insensitive substring match on first name,
    last name or email.

    Args:
        db (Session): Database session.
        search (str | None): Optional search query.
        limit (int): Maximum number of records to return.

    Returns:
        list[Customer]: Matching customers ordered by id.
    """
    stmt = (
        select(models.Customer)
        .options(selectinload(models.Customer.projects))
        .order_by(models.Customer.id)
        .limit(limit)
    )
    if search:
        # wildcards typed by the user are matched literally
        escaped = (
            search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        like_q = f"%{escaped}%"
        stmt = stmt.where(
            or_(
                models.Customer.first_name.ilike(like_q, escape="\\"),
                models.Customer.last_name.ilike(like_q, escape="\\"),
                models.Customer.email.ilike(like_q, escape="\\"),
            )
        )
    return db.scalars(stmt).all()


def create_customer(
    db: Session, customer_in: schemas.CustomerCreate
) -> models.Customer:
    customer = models.Customer(
        **allowed_values(customer_in, CUSTOMER_FIELDS), created_at=utcnow()
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    logger.info("customer_created", customer_id=customer.id)
    return customer


def update_customer(
    db: Session, customer_id: int, customer_in: schemas.CustomerUpdate
) -> models.Customer:
    """
    Replace the mutable fields of a customer.

    Raises:
        NotFoundError: If the customer does not exist.
        BadRequestError: If the body id differs from ``customer_id``.
        ConflictError: If another request changed the customer meanwhile.
    """
    customer = get_customer(db, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    if customer_in.id != customer_id:
        raise BadRequestError("Customer id does not match the request path")

    _overwrite(customer, allowed_values(customer_in, CUSTOMER_FIELDS))

    _commit_mutation(db, models.Customer, customer_id, "update")
    logger.info("customer_updated", customer_id=customer_id)
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    """
    Delete a customer and its projects.

    Tasks that referenced the customer or one of its projects are kept,
    with those references set to null.
    """
    customer = get_customer(db, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")

    project_ids = [project.id for project in customer.projects]
    if project_ids:
        db.execute(
            update(models.Task)
            .where(models.Task.project_id.in_(project_ids))
            .values(project_id=None)
        )
    db.execute(
        update(models.Task)
        .where(models.Task.customer_id == customer_id)
        .values(customer_id=None)
    )
    db.delete(customer)
    _commit_mutation(db, models.Customer, customer_id, "delete")
    logger.info(
        "customer_deleted", customer_id=customer_id, projects_deleted=len(project_ids)
    )


# Projects


def _project_query():
    return select(models.Project).options(selectinload(models.Project.customer))


def get_project(db: Session, project_id: int) -> models.Project | None:
    return db.execute(
        _project_query().where(models.Project.id == project_id)
    ).scalar_one_or_none()


def get_projects(db: Session) -> list[models.Project]:
    return db.scalars(_project_query().order_by(models.Project.id)).all()


def get_projects_by_customer(db: Session, customer_id: int) -> list[models.Project]:
    return db.scalars(
        _project_query()
        .where(models.Project.customer_id == customer_id)
        .order_by(models.Project.id)
    ).all()


def create_project(db: Session, project_in: schemas.ProjectCreate) -> models.Project:
    """
    Create a project for an existing customer.

    Raises:
        BadRequestError: If the customer does not exist.
    """
    _require_reference(db, models.Customer, project_in.customer_id, "Customer")
    project = models.Project(
        **allowed_values(project_in, PROJECT_FIELDS), created_at=utcnow()
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(
        "project_created", project_id=project.id, customer_id=project.customer_id
    )
    return project


def update_project(
    db: Session, project_id: int, project_in: schemas.ProjectUpdate
) -> models.Project:
    """
    Replace the mutable fields of a project.

    Raises:
        NotFoundError: If the project does not exist.
        BadRequestError: If the body id differs from ``project_id`` or the
            customer does not exist.
        ConflictError: If another request changed the project meanwhile.
    """
    project = get_project(db, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project_in.id != project_id:
        raise BadRequestError("Project id does not match the request path")
    _require_reference(db, models.Customer, project_in.customer_id, "Customer")

    _overwrite(project, allowed_values(project_in, PROJECT_FIELDS))

    _commit_mutation(db, models.Project, project_id, "update")
    logger.info("project_updated", project_id=project_id)
    return project


def delete_project(db: Session, project_id: int) -> None:
    project = get_project(db, project_id)
    if project is None:
        raise NotFoundError("Project not found")

    db.execute(
        update(models.Task)
        .where(models.Task.project_id == project_id)
        .values(project_id=None)
    )
    db.delete(project)
    _commit_mutation(db, models.Project, project_id, "delete")
    logger.info("project_deleted", project_id=project_id)


# Tasks


def _authorize_task_mutation(actor: models.User, task: models.Task, action: str):
    if not can_mutate_task(actor, task):
        logger.warning(
            "task_mutation_forbidden", task_id=task.id, user_id=actor.id, action=action
        )
        raise ForbiddenError(f"You can only {action} tasks assigned to you.")


def _task_query():
    return select(models.Task).options(
        selectinload(models.Task.assigned_to),
        selectinload(models.Task.created_by),
        selectinload(models.Task.customer),
        selectinload(models.Task.project),
    )


def _require_task_references(db: Session, task_in: schemas.TaskFields):
    _require_reference(db, models.User, task_in.assigned_to_id, "User")
    _require_reference(db, models.Customer, task_in.customer_id, "Customer")
    _require_reference(db, models.Project, task_in.project_id, "Project")


def get_task(db: Session, task_id: int) -> models.Task | None:
    return db.execute(
        _task_query().where(models.Task.id == task_id)
    ).scalar_one_or_none()


def get_tasks(db: Session) -> list[models.Task]:
    """
    Retrieve every task.

    Tasks are ordered by due date with undated tasks last, then by
    priority from ``LOW`` to ``URGENT``, then by id.
    """
    stmt = _task_query().order_by(
        models.Task.due_date.is_(None),
        models.Task.due_date,
        models.Task.priority,
        models.Task.id,
    )
    return db.scalars(stmt).all()


def create_task(
    db: Session, task_in: schemas.TaskCreate, creator: models.User
) -> models.Task:
    """
    Create a task on behalf of ``creator``.

    Args:
        db (Session): Database session.
        task_in (TaskCreate): Task data.
        creator (User): Authenticated caller, recorded as the creator.

    Raises:
        BadRequestError: If a referenced user, customer or project does
            not exist.

    Returns:
        Task: Newly created task.
    """
    _require_task_references(db, task_in)
    task = models.Task(
        **allowed_values(task_in, TASK_FIELDS),
        created_by_id=creator.id,
        created_at=utcnow(),
    )
    db.add(task)
    db.commit()
    logger.info(
        "task_created",
        task_id=task.id,
        created_by_id=creator.id,
        assigned_to_id=task.assigned_to_id,
    )
    return get_task(db, task.id)


def update_task(
    db: Session, task_id: int, task_in: schemas.TaskUpdate, actor: models.User
) -> models.Task:
    """
    Replace the mutable fields of a task.

    Raises:
        NotFoundError: If the task does not exist.
        ForbiddenError: If ``actor`` is staff and not the assignee.
        BadRequestError: If a referenced row does not exist.
        ConflictError: If another request changed the task meanwhile.
    """
    task = get_task(db, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    _authorize_task_mutation(actor, task, "edit")
    _require_task_references(db, task_in)

    _overwrite(task, allowed_values(task_in, TASK_FIELDS))

    _commit_mutation(db, models.Task, task_id, "update")
    logger.info("task_updated", task_id=task_id, user_id=actor.id)
    return task


def delete_task(db: Session, task_id: int, actor: models.User) -> None:
    task = get_task(db, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    _authorize_task_mutation(actor, task, "delete")
    db.delete(task)
    _commit_mutation(db, models.Task, task_id, "delete")
    logger.info("task_deleted", task_id=task_id, user_id=actor.id)
