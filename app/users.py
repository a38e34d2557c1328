"""User listing and role management routes."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import get_current_user
from .database import get_db
from .errors import NotFoundError
from .models import User
from .permissions import ensure_admin

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[schemas.UserPublic])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List every user for assignment pickers.

    Only id, username and email are returned; role and password hash
    stay on the server.
    """
    return crud.get_users(db)


@router.get("/me", response_model=schemas.UserOut)
def read_me(current_user: User = Depends(get_current_user)):
    """
    Retrieve details of the currently authenticated user.

    Args:
        current_user (User): User loaded for this request.

    Returns:
        UserOut: Profile including the role stored right now.
    """
    return current_user


@router.put("/{user_id}/role", response_model=schemas.UserOut)
def update_role(
    user_id: int,
    payload: schemas.RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Change the role of a user.

    Only administrators may change roles. The new role applies to the
    user's next request without issuing a new token.

    Raises:
        ForbiddenError: If the caller is not an administrator.
        NotFoundError: If the user does not exist.
    """
    ensure_admin(current_user)
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return crud.update_user_role(db, user, payload.role)
