"""
Pydantic schemas for evaluation templates.

Questions are a tagged union on ``type``. A question stored without a type is
read as ``dualRating`` (employee and manager both rate it), which is what the
template builder produces by default.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from perfeval.models.template import ScoringSystem


class _QuestionBase(BaseModel):
    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    required: bool = True
    weight: Optional[float] = None


class RatingQuestion(_QuestionBase):
    """Rated by the manager only"""
    type: Literal["rating"]


class DualRatingQuestion(_QuestionBase):
    """Rated by both the employee (self_rating) and the manager"""
    type: Literal["dualRating"]


class TextQuestion(_QuestionBase):
    type: Literal["text"]


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multipleChoice"]
    options: List[str] = Field(..., min_length=1)


class YesNoQuestion(_QuestionBase):
    type: Literal["yesNo"]


Question = Annotated[
    Union[RatingQuestion, DualRatingQuestion, TextQuestion, MultipleChoiceQuestion, YesNoQuestion],
    Field(discriminator="type"),
]


class Category(BaseModel):
    """A group of questions; weight is informational only"""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = ""
    weight: Optional[float] = None
    questions: List[Question] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def default_question_type(cls, v):
        """Untyped questions are dual-rating questions."""
        if isinstance(v, list):
            return [
                {**q, "type": q.get("type") or "dualRating"} if isinstance(q, dict) else q
                for q in v
            ]
        return v


class FreeTextQuestion(BaseModel):
    id: Optional[str] = None
    text: str = Field(..., min_length=1)
    placeholder: Optional[str] = ""
    required: bool = False


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Template name is required")
    return v


class TemplateCreateRequest(BaseModel):
    """Schema for creating an evaluation template"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    scoring_system: ScoringSystem = ScoringSystem.ONE_TO_FIVE
    categories: List[Category] = Field(..., min_length=1)
    free_text_questions: List[FreeTextQuestion] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class TemplateUpdateRequest(BaseModel):
    """All fields optional; only the ones sent are changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    scoring_system: Optional[ScoringSystem] = None
    categories: Optional[List[Category]] = Field(None, min_length=1)
    free_text_questions: Optional[List[FreeTextQuestion]] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)


class TemplateResponse(BaseModel):
    id: str
    business_id: str
    name: str
    description: Optional[str] = None
    scoring_system: ScoringSystem
    categories: List[dict]
    free_text_questions: List[dict]
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
