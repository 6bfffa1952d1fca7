import logging
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import bonus_allocation as bonus_crud
from perfeval.schemas.bonus import (
    BonusAllocationResponse,
    BonusAllocationSaveRequest,
    BonusCalculationRequest,
    BonusCalculationResponse,
)
from perfeval.schemas.common import ApiResponse

router = APIRouter(prefix="/businesses/{business_id}/bonus-allocations", tags=["Bonus Allocation"])
logger = logging.getLogger(__name__)


@router.post("/calculate", response_model=ApiResponse[BonusCalculationResponse])
def calculate_bonus_allocation(
    request: BonusCalculationRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Propose a performance-weighted split of a department's bonus budget.

    Each member's weight comes from their latest completed evaluation; members
    without a salary in the request are left out. Nothing is stored.
    """
    result = bonus_crud.calculate_allocation(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=BonusCalculationResponse(**result))


@router.put("/{department_id}/{year}", response_model=ApiResponse[BonusAllocationResponse])
def save_bonus_allocation(
    request: BonusAllocationSaveRequest,
    department_id: str,
    year: int = Path(..., ge=2000, le=2100),
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Store the department's allocation for the year, replacing any earlier one."""
    record = bonus_crud.save_allocation(db, ctx.business_id, ctx.user, department_id, year, request)
    return ApiResponse(data=BonusAllocationResponse.model_validate(record))


@router.get("/{department_id}/{year}", response_model=ApiResponse[BonusAllocationResponse])
def get_bonus_allocation(
    department_id: str,
    year: int = Path(..., ge=2000, le=2100),
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    record = bonus_crud.get_allocation(db, ctx.business_id, ctx.user, department_id, year)
    return ApiResponse(data=BonusAllocationResponse.model_validate(record))
