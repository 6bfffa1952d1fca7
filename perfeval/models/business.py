"""
Business (tenant) model.

Every other table carries a business_id; it is the isolation boundary for all
users, departments, templates, assignments and evaluations.
"""

from sqlalchemy import Column, String, Boolean
from perfeval.core.database import Base
from perfeval.models.mixins import JSONType, TimestampMixin, new_id


class Business(TimestampMixin, Base):
    __tablename__ = "businesses"

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    industry = Column(String, nullable=False)

    # {evaluation_cycle, bonus_calculation, default_currency, working_days}
    settings = Column(JSONType, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}')>"
