from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, EmailStr, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from .models import ProjectStatus, TaskPriority, TaskStatus, UserRole


Money = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]
"""Non-negative amount, sent to clients as a JSON number."""


class CRMModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserPublic(CRMModel):
    """Public user fields; never includes role or password hash."""

    id: int
    username: str
    email: EmailStr


class UserOut(UserPublic):
    """The current user, including the role stored right now."""

    role: UserRole
    created_at: datetime


class RoleUpdate(CRMModel):
    role: UserRole


class RegisterRequest(CRMModel):
    """Payload for creating a new user."""

    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1)


class LoginRequest(CRMModel):
    username: str
    password: str


class AuthResponse(CRMModel):
    """Bearer token plus an echo of the authenticated user."""

    token: str
    user: UserPublic


class Token(BaseModel):
    """OAuth2 token response for the interactive docs login form."""

    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Payload stored inside JWT token."""

    sub: str | None = None
    username: str | None = None
    email: str | None = None
    exp: Optional[datetime] = None
    scope: Optional[str] = None


class CustomerFields(CRMModel):
    """Fields a client may set on a customer."""

    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    billing_street: str
    billing_city: str
    billing_state: str
    billing_zip_code: str
    property_street: str
    property_city: str
    property_state: str
    property_zip_code: str


class CustomerCreate(CustomerFields):
    """Schema for creating a customer. Any client ``createdAt`` is ignored."""

    pass


class CustomerUpdate(CustomerFields):
    """Full replacement of a customer; ``id`` must match the path."""

    id: int


class CustomerSummary(CRMModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr


class ProjectFields(CRMModel):
    """Fields a client may set on a project."""

    customer_id: int
    project_name: str
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.LEAD
    estimate_date: Optional[datetime] = None
    contract_signed_date: Optional[datetime] = None
    scheduled_start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    estimated_cost: Money = Decimal("0")
    final_cost: Optional[Money] = None
    amount_paid: Optional[Money] = None
    shingle_type: str
    shingle_color: str
    has_metal_work: bool = False
    metal_work_description: Optional[str] = None
    notes: Optional[str] = None


class ProjectCreate(ProjectFields):
    pass


class ProjectUpdate(ProjectFields):
    """Full replacement of a project; ``id`` must match the path."""

    id: int


class ProjectOut(ProjectFields):
    """Schema for returning a project with its customer."""

    id: int
    created_at: datetime
    customer: Optional[CustomerSummary] = None


class ProjectSummary(CRMModel):
    id: int
    customer_id: int
    project_name: str
    status: ProjectStatus


class CustomerOut(CustomerFields):
    """Schema for returning a customer with its projects."""

    id: int
    created_at: datetime
    projects: List[ProjectSummary] = []


class TaskFields(CRMModel):
    """Fields a client may set on a task."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assigned_to_id: int
    customer_id: Optional[int] = None
    project_id: Optional[int] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class TaskCreate(TaskFields):
    """Schema for creating a task. The creator is always the caller."""

    pass


class TaskUpdate(TaskFields):
    """Full replacement of a task, identified by the path id only."""

    pass


class TaskOut(TaskFields):
    id: int
    created_by_id: int
    created_at: datetime
    assigned_to: Optional[UserPublic] = None
    created_by: Optional[UserPublic] = None
    customer: Optional[CustomerSummary] = None
    project: Optional[ProjectSummary] = None
