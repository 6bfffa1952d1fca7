"""
User model for authentication and role-based permissions.

Each User belongs to exactly one Business (tenant). Users are never hard
deleted; deactivation flips is_active so historical evaluations keep their
evaluator/evaluatee references.
"""

import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey
from perfeval.core.database import Base
from perfeval.models.mixins import JSONType, TimestampMixin, new_id


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=new_id, index=True)

    # All queries must filter by business_id to prevent cross-tenant data access
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    # Authentication credentials
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)

    # Profile
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)

    role = Column(Enum(UserRole), nullable=False, default=UserRole.EMPLOYEE, index=True)

    # Employee info
    employee_code = Column(String, nullable=True)
    department_id = Column(String(64), ForeignKey("departments.id"), nullable=True, index=True)
    position = Column(String, nullable=True)
    manager_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    hire_date = Column(DateTime(timezone=True), nullable=True)

    # Capability flags, see perfeval.core.permissions
    permissions = Column(JSONType, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', business_id={self.business_id})>"
