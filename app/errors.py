"""Error types raised by the CRM operations.

Every error is an ``HTTPException`` so route handlers and CRUD helpers
can raise them directly and FastAPI renders the matching status code.
"""

from fastapi import HTTPException, status


class CRMError(HTTPException):
    """Base class for CRM errors with a fixed status code."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class DuplicateUsernameError(CRMError):
    default_detail = "Username already exists"


class DuplicateEmailError(CRMError):
    default_detail = "Email already exists"


class InvalidCredentialsError(CRMError):
    """Unknown username or wrong password; the two are never told apart."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid username or password"


class BadRequestError(CRMError):
    default_detail = "Bad request"


class ForbiddenError(CRMError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFoundError(CRMError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(CRMError):
    """The row changed between load and write and still exists."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The record was modified by another request"
