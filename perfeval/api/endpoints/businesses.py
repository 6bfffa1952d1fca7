import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import business as business_crud
from perfeval.schemas.common import ApiResponse
from perfeval.schemas.user import BusinessResponse, BusinessUpdateRequest

router = APIRouter(prefix="/businesses/{business_id}", tags=["Businesses"])
logger = logging.getLogger(__name__)


@router.get("", response_model=ApiResponse[BusinessResponse])
def get_business(
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Profile and settings of the caller's business."""
    business = business_crud.get_by_id(db, ctx.business_id)
    return ApiResponse(data=BusinessResponse.model_validate(business))


@router.patch("", response_model=ApiResponse[BusinessResponse])
def update_business(
    request: BusinessUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Update business profile or settings (requires can_manage_settings).

    Settings are merged; keys not sent keep their current value.
    """
    business = business_crud.update_business(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=BusinessResponse.model_validate(business))
