"""Customer management routes.

Any authenticated user may create, read, update or delete any customer.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import get_current_user
from .core import get_settings
from .database import get_db
from .errors import NotFoundError
from .models import User

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("", response_model=List[schemas.CustomerOut])
def list_customers(
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Retrieve customers with their projects.

    Supports an optional case-insensitive search on first name, last
    name or email. At most ``CUSTOMER_SEARCH_LIMIT`` rows are returned.

    Args:
        search (str | None): Optional search query.
        db (Session): Database session.
        current_user (User): Authenticated user.

    Returns:
        list[CustomerOut]: Matching customers.
    """
    return crud.get_customers(
        db, search=search, limit=get_settings().CUSTOMER_SEARCH_LIMIT
    )


@router.get("/{customer_id}", response_model=schemas.CustomerOut)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    customer = crud.get_customer(db, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


@router.post(
    "", response_model=schemas.CustomerOut, status_code=status.HTTP_201_CREATED
)
def create_customer(
    customer_in: schemas.CustomerCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a new customer.

    The creation timestamp is assigned by the server.

    Returns:
        CustomerOut: Created customer.
    """
    customer = crud.create_customer(db, customer_in)
    response.headers["Location"] = f"{router.prefix}/{customer.id}"
    return customer


@router.put("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_customer(
    customer_id: int,
    customer_in: schemas.CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Replace all editable fields of a customer.

    Raises:
        NotFoundError: If the customer does not exist.
        BadRequestError: If the body id does not match the path.
        ConflictError: If the customer changed while being updated.
    """
    crud.update_customer(db, customer_id, customer_in)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Delete a customer together with its projects.

    Tasks referencing the customer or its projects are kept with the
    reference cleared.
    """
    crud.delete_customer(db, customer_id)
