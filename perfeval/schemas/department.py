from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class DepartmentCreateRequest(BaseModel):
    """Schema for creating a department"""
    name: str = Field(..., max_length=200)
    description: Optional[str] = ""
    parent_department_id: Optional[str] = None
    manager_id: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None


class DepartmentUpdateRequest(BaseModel):
    """Only the fields sent are changed; send parent_department_id=null to detach"""
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    parent_department_id: Optional[str] = None
    manager_id: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None


class DepartmentResponse(BaseModel):
    id: str
    business_id: str
    name: str
    description: Optional[str] = None
    parent_department_id: Optional[str] = None
    manager_id: Optional[str] = None
    budget: Optional[float] = None
    location: Optional[str] = None
    employee_count: int
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DepartmentNode(DepartmentResponse):
    """Department with its active sub-departments"""
    children: List["DepartmentNode"] = Field(default_factory=list)
