"""Project management routes."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import get_current_user
from .database import get_db
from .errors import NotFoundError
from .models import User

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=List[schemas.ProjectOut])
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return crud.get_projects(db)


@router.get("/customer/{customer_id}", response_model=List[schemas.ProjectOut])
def list_customer_projects(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Retrieve the projects of one customer; empty if it has none."""
    return crud.get_projects_by_customer(db, customer_id)


@router.get("/{project_id}", response_model=schemas.ProjectOut)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = crud.get_project(db, project_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


@router.post("", response_model=schemas.ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: schemas.ProjectCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a project for an existing customer.

    Raises:
        BadRequestError: If the customer does not exist.

    Returns:
        ProjectOut: Created project.
    """
    project = crud.create_project(db, project_in)
    response.headers["Location"] = f"{router.prefix}/{project.id}"
    return project


@router.put("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_project(
    project_id: int,
    project_in: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Replace all editable fields of a project.

    Raises:
        NotFoundError: If the project does not exist.
        BadRequestError: If the body id does not match the path.
        ConflictError: If the project changed while being updated.
    """
    crud.update_project(db, project_id, project_in)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    crud.delete_project(db, project_id)
