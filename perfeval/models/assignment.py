"""
Assignment models.

An EvaluationAssignment authorises an evaluator to evaluate an evaluatee; a
BonusAssignment authorises an allocator to allocate bonus to a recipient.

At most one *active* assignment may exist per pair. The partial unique index
below makes the store enforce that, so two concurrent creators cannot both
succeed.
"""

import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum, Float, ForeignKey, Index, Text, text
from perfeval.core.database import Base
from perfeval.models.mixins import TimestampMixin, new_id, utcnow


class AssignmentType(str, enum.Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"


class EvaluationAssignment(TimestampMixin, Base):
    __tablename__ = "evaluation_assignments"
    __table_args__ = (
        Index(
            "uq_evaluation_assignments_active_pair",
            "business_id", "evaluator_id", "evaluatee_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    evaluator_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    evaluatee_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    assigned_by = Column(String(64), nullable=True)
    assigned_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    assignment_type = Column(Enum(AssignmentType), nullable=False, default=AssignmentType.PERMANENT)
    notes = Column(Text, nullable=False, default="")
    expires_date = Column(DateTime(timezone=True), nullable=True)

    active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<EvaluationAssignment(id={self.id}, evaluator={self.evaluator_id}, evaluatee={self.evaluatee_id}, active={self.active})>"


class BonusAssignment(TimestampMixin, Base):
    __tablename__ = "bonus_assignments"
    __table_args__ = (
        Index(
            "uq_bonus_assignments_active_pair",
            "business_id", "allocator_id", "recipient_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    allocator_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    assigned_by = Column(String(64), nullable=True)
    assigned_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    assignment_type = Column(Enum(AssignmentType), nullable=False, default=AssignmentType.PERMANENT)
    notes = Column(Text, nullable=False, default="")
    budget_limit = Column(Float, nullable=True)
    expires_date = Column(DateTime(timezone=True), nullable=True)

    active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<BonusAssignment(id={self.id}, allocator={self.allocator_id}, recipient={self.recipient_id}, active={self.active})>"
