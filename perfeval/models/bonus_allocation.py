"""
Bonus allocation model.

One document per department and year, keyed by the deterministic id
``{department_id}_{year}`` so saving twice updates in place.
"""

from sqlalchemy import Column, String, Float, ForeignKey, Integer
from perfeval.core.database import Base
from perfeval.models.mixins import JSONType, TimestampMixin


def allocation_id(department_id: str, year: int) -> str:
    return f"{department_id}_{year}"


class BonusAllocation(TimestampMixin, Base):
    __tablename__ = "bonus_allocations"

    id = Column(String(160), primary_key=True, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)
    department_id = Column(String(64), ForeignKey("departments.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)

    total_budget = Column(Float, nullable=False)
    # {user_id: {monthly_salary, bonus_percentage, bonus_amount, performance_score}}
    allocations = Column(JSONType, nullable=False, default=dict)
    saved_by = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<BonusAllocation(id={self.id}, total_budget={self.total_budget})>"
