"""
Pydantic schemas for business registration, authentication and user management.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from perfeval.models.user import UserRole


def _required_text(v: str, label: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{label} is required")
    return v


class BusinessInfo(BaseModel):
    name: str = Field(..., max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    industry: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _required_text(v, "Business name")

    @field_validator("industry")
    @classmethod
    def validate_industry(cls, v: str) -> str:
        return _required_text(v, "Industry")


class AdminInfo(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    password: str = Field(
        ...,
        min_length=6,
        max_length=72,  # bcrypt limit
        description="Password must be at least 6 characters"
    )

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _required_text(v, "Name")


class BusinessRegisterRequest(BaseModel):
    """Request schema for registering a business together with its first admin."""
    business: BusinessInfo
    admin: AdminInfo


class UserLoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    """Request schema for refreshing access token."""
    refresh_token: str


class UserCreateRequest(BaseModel):
    """Request schema for adding a user to a business."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: str
    last_name: str
    role: UserRole = UserRole.EMPLOYEE
    phone: Optional[str] = None
    department_id: Optional[str] = None
    position: Optional[str] = None
    manager_id: Optional[str] = None
    hire_date: Optional[datetime] = None
    permissions: Optional[Dict[str, bool]] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _required_text(v, "Name")


class UserUpdateRequest(BaseModel):
    """Only the fields sent are changed."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    department_id: Optional[str] = None
    position: Optional[str] = None
    manager_id: Optional[str] = None
    hire_date: Optional[datetime] = None
    permissions: Optional[Dict[str, bool]] = None


class UserResponse(BaseModel):
    """User profile response (no sensitive data)."""
    id: str
    business_id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    employee_code: Optional[str] = None
    department_id: Optional[str] = None
    position: Optional[str] = None
    manager_id: Optional[str] = None
    hire_date: Optional[datetime] = None
    permissions: Dict[str, bool]
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BusinessSettings(BaseModel):
    evaluation_cycle: Optional[str] = None
    bonus_calculation: Optional[str] = None
    default_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    working_days: Optional[List[str]] = None


class BusinessUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    industry: Optional[str] = Field(None, min_length=1)
    settings: Optional[BusinessSettings] = None


class BusinessResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    industry: str
    settings: Dict
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RegistrationResponse(TokenResponse):
    """Tokens plus the created business and admin."""
    business: BusinessResponse
    user: UserResponse
