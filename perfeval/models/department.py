"""
Department model.

Departments form a tree through parent_department_id. Deletion is soft
(is_active=False) and is refused while the department still has active
employees or active child departments.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, ForeignKey, Text
from perfeval.core.database import Base
from perfeval.models.mixins import TimestampMixin, new_id


class Department(TimestampMixin, Base):
    __tablename__ = "departments"

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    parent_department_id = Column(String(64), ForeignKey("departments.id"), nullable=True, index=True)
    # Plain id (no FK): users already reference departments
    manager_id = Column(String(64), nullable=True)
    budget = Column(Float, nullable=True)
    location = Column(String, nullable=True)

    # Derived from active users; recomputed on read
    employee_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}', active={self.is_active})>"
