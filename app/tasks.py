"""Task management routes.

Everyone sees every task and may create tasks for anyone. Staff may edit
or delete only the tasks assigned to them; admins may change any task.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import get_current_user
from .database import get_db
from .errors import NotFoundError
from .models import User

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[schemas.TaskOut])
def list_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Retrieve all tasks.

    Tasks are ordered by due date, undated tasks last, then by priority.

    Returns:
        list[TaskOut]: Every task with assignee, creator, customer and
        project summaries.
    """
    return crud.get_tasks(db)


@router.get("/{task_id}", response_model=schemas.TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = crud.get_task(db, task_id)
    if not task:
        raise NotFoundError("Task not found")
    return task


@router.post("", response_model=schemas.TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    task_in: schemas.TaskCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a task. The caller is recorded as its creator.

    Args:
        task_in (TaskCreate): Task input data.
        response (Response): Outgoing response, receives ``Location``.
        db (Session): Database session.
        current_user (User): Authenticated user.

    Returns:
        TaskOut: Created task.
    """
    task = crud.create_task(db, task_in, current_user)
    response.headers["Location"] = f"{router.prefix}/{task.id}"
    return task


@router.put("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_task(
    task_id: int,
    task_in: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Replace all editable fields of a task.

    Raises:
        NotFoundError: If the task does not exist.
        ForbiddenError: If a staff caller is not the assignee.
        ConflictError: If the task changed while being updated.
    """
    crud.update_task(db, task_id, task_in, current_user)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    crud.delete_task(db, task_id, current_user)
