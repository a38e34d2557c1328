"""Database models for the roofing CRM.

This module defines SQLAlchemy ORM models used by the application,
the integer enumerations stored in their status/role columns, and the
UTC datetime column type.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from .database import Base
from .timeutil import as_utc, utcnow


class UserRole(enum.IntEnum):
    """Role of an application user."""

    STAFF = 0
    ADMIN = 1


class ProjectStatus(enum.IntEnum):
    """Lifecycle stage of a roofing job."""

    LEAD = 0
    ESTIMATE = 1
    CONTRACT_SIGNED = 2
    SCHEDULED = 3
    IN_PROGRESS = 4
    COMPLETED = 5
    CANCELLED = 6


class TaskStatus(enum.IntEnum):
    PENDING = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    CANCELLED = 3


class TaskPriority(enum.IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    URGENT = 3


class UTCDateTime(TypeDecorator):
    """
    Datetime column that always stores and returns UTC.

    Naive values are written as UTC, and values read back from backends
    without zone support (SQLite) are returned as aware UTC datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class User(Base):
    """
    SQLAlchemy model representing an application user.

    A user is the assignee and the creator of tasks. Role decides what
    the user may change.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Integer, default=int(UserRole.STAFF), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    assigned_tasks = relationship(
        "Task",
        back_populates="assigned_to",
        foreign_keys="Task.assigned_to_id",
    )
    created_tasks = relationship(
        "Task",
        back_populates="created_by",
        foreign_keys="Task.created_by_id",
    )


class Customer(Base):
    """
    SQLAlchemy model representing a customer.

    Each customer has a billing address and a separate property address
    where the roofing work happens. Deleting a customer deletes its
    projects.
    """

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False, index=True)
    last_name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)

    billing_street = Column(String(255), nullable=False)
    billing_city = Column(String(100), nullable=False)
    billing_state = Column(String(50), nullable=False)
    billing_zip_code = Column(String(20), nullable=False)

    property_street = Column(String(255), nullable=False)
    property_city = Column(String(100), nullable=False)
    property_state = Column(String(50), nullable=False)
    property_zip_code = Column(String(20), nullable=False)

    created_at = Column(UTCDateTime, nullable=False)
    version = Column(Integer, nullable=False)

    #: Projects for this customer, removed together with it
    projects = relationship(
        "Project",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Project.id",
    )

    __mapper_args__ = {"version_id_col": version}


class Project(Base):
    """SQLAlchemy model representing a roofing job for one customer."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(Integer, default=int(ProjectStatus.LEAD), nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    estimate_date = Column(UTCDateTime, nullable=True)
    contract_signed_date = Column(UTCDateTime, nullable=True)
    scheduled_start_date = Column(UTCDateTime, nullable=True)
    completion_date = Column(UTCDateTime, nullable=True)

    estimated_cost = Column(Numeric(12, 2), default=0, nullable=False)
    final_cost = Column(Numeric(12, 2), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=True)

    shingle_type = Column(String(100), nullable=False)
    shingle_color = Column(String(100), nullable=False)
    has_metal_work = Column(Boolean, default=False, nullable=False)
    metal_work_description = Column(Text, nullable=True)

    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    customer = relationship("Customer", back_populates="projects")

    __mapper_args__ = {"version_id_col": version}


class Task(Base):
    """
    SQLAlchemy model representing a unit of work.

    A task optionally points at a customer and/or project. Those
    references are nulled, not cascaded, when the target is deleted.
    Assignee and creator must be existing users.
    """

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Integer, default=int(TaskStatus.PENDING), nullable=False)
    priority = Column(Integer, default=int(TaskPriority.MEDIUM), nullable=False)

    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    project_id = Column(
        Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    created_by_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    due_date = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    completed_at = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False)

    customer = relationship("Customer")
    project = relationship("Project")
    assigned_to = relationship(
        "User", back_populates="assigned_tasks", foreign_keys=[assigned_to_id]
    )
    created_by = relationship(
        "User", back_populates="created_tasks", foreign_keys=[created_by_id]
    )

    __mapper_args__ = {"version_id_col": version}
