from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class BonusCalculationRequest(BaseModel):
    """Split total_budget across the active members of a department"""
    department_id: str = Field(..., min_length=1)
    total_budget: float = Field(..., gt=0)
    # user_id -> monthly salary; members without a positive salary are skipped
    salaries: Dict[str, float] = Field(default_factory=dict)


class BonusLine(BaseModel):
    user_id: str
    monthly_salary: float
    performance_score: float
    bonus_percentage: float
    bonus_amount: float


class BonusCalculationResponse(BaseModel):
    department_id: str
    total_budget: float
    allocated: float
    lines: List[BonusLine]


class AllocationEntry(BaseModel):
    monthly_salary: float = Field(..., ge=0)
    bonus_percentage: float = Field(..., ge=0)
    # Recomputed from salary and percentage when saved
    bonus_amount: Optional[float] = Field(None, ge=0)
    performance_score: Optional[float] = None


class BonusAllocationSaveRequest(BaseModel):
    total_budget: float = Field(..., gt=0)
    allocations: Dict[str, AllocationEntry]


class BonusAllocationResponse(BaseModel):
    id: str
    business_id: str
    department_id: str
    year: int
    total_budget: float
    allocations: Dict[str, Dict]
    saved_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
