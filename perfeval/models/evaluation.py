"""
Evaluation model.

One row per evaluation instance. Status follows the lifecycle

    draft -> pending -> in-progress -> under-review -> completed

and is only ever changed through perfeval.services.evaluation_lifecycle.

The version column is SQLAlchemy's version_id_col: every UPDATE is issued as
``... WHERE id = :id AND version = :expected`` so a concurrent writer that
loaded an older copy fails instead of silently overwriting.
"""

import enum
from sqlalchemy import Column, String, DateTime, Enum, Float, ForeignKey, Integer
from perfeval.core.database import Base
from perfeval.models.mixins import JSONType, TimestampMixin, new_id


class EvaluationStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    UNDER_REVIEW = "under-review"
    COMPLETED = "completed"


class Evaluation(TimestampMixin, Base):
    __tablename__ = "evaluations"

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    template_id = Column(String(64), ForeignKey("evaluation_templates.id"), nullable=False, index=True)
    # Frozen copy of the template taken at creation time
    template_snapshot = Column(JSONType, nullable=False)

    evaluator_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    evaluatee_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    assignment_id = Column(String(64), ForeignKey("evaluation_assignments.id"), nullable=False)

    period = Column(String, nullable=True)
    status = Column(Enum(EvaluationStatus), nullable=False, default=EvaluationStatus.DRAFT, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    self_assessment = Column(JSONType, nullable=False, default=dict)
    manager_review = Column(JSONType, nullable=True)
    overall_rating = Column(Float, nullable=True, index=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(64), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_completed(self) -> bool:
        return self.status == EvaluationStatus.COMPLETED

    def __repr__(self):
        return f"<Evaluation(id={self.id}, status={self.status.value}, version={self.version})>"
