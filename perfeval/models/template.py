"""
Evaluation template model.

A template is the reusable definition of categories, questions and the scoring
scale. Evaluations copy the definition into their own template_snapshot at
creation, so later edits here never rewrite history.
"""

import enum
from sqlalchemy import Column, String, Boolean, Enum, ForeignKey, Text
from perfeval.core.database import Base
from perfeval.models.mixins import JSONType, TimestampMixin, new_id


class ScoringSystem(str, enum.Enum):
    ONE_TO_FIVE = "1-5"
    ONE_TO_TEN = "1-10"
    PERCENTAGE = "percentage"
    LETTER = "letter"


class EvaluationTemplate(TimestampMixin, Base):
    __tablename__ = "evaluation_templates"

    id = Column(String(64), primary_key=True, default=new_id, index=True)
    business_id = Column(String(64), ForeignKey("businesses.id"), nullable=False, index=True)

    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    scoring_system = Column(Enum(ScoringSystem), nullable=False, default=ScoringSystem.ONE_TO_FIVE)

    # Ordered list of {id, name, description, weight, questions: [...]}
    categories = Column(JSONType, nullable=False, default=list)
    # Ordered list of {id, text, placeholder, required}
    free_text_questions = Column(JSONType, nullable=False, default=list)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by = Column(String(64), nullable=True)

    def snapshot(self) -> dict:
        """Frozen copy of the definition stored on each evaluation."""
        return {
            "template_id": self.id,
            "name": self.name,
            "scoring_system": self.scoring_system.value,
            "categories": self.categories or [],
            "free_text_questions": self.free_text_questions or [],
            "template_updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<EvaluationTemplate(id={self.id}, name='{self.name}')>"
