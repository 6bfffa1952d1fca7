import logging
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import user as user_crud
from perfeval.models.user import UserRole
from perfeval.schemas.common import ApiResponse
from perfeval.schemas.user import UserCreateRequest, UserResponse, UserUpdateRequest

router = APIRouter(prefix="/businesses/{business_id}/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201, response_model=ApiResponse[UserResponse])
def create_user(
    request: UserCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Add a user to the business (requires can_manage_users).

    The user gets the default permission flags of their role and a generated
    employee code.
    """
    user = user_crud.create_user(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.get("", response_model=ApiResponse[List[UserResponse]])
def list_users(
    role: Optional[UserRole] = None,
    department_id: Optional[str] = None,
    include_inactive: bool = False,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    List users of the business.

    Args:
        role: Optional role filter
        department_id: Optional department filter
        include_inactive: Include soft-deleted users (default: false)
    """
    users = user_crud.list_users(db, ctx.business_id, role=role, department_id=department_id,
                                 include_inactive=include_inactive)
    return ApiResponse(data=[UserResponse.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    user = user_crud.get_active_or_404(db, ctx.business_id, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: str,
    request: UserUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Update profile, role, placement or permission flags (requires can_manage_users)."""
    user = user_crud.update_user(db, ctx.business_id, ctx.user, user_id, request)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=ApiResponse[UserResponse])
def delete_user(
    user_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Soft delete a user. You cannot delete your own account."""
    user = user_crud.delete_user(db, ctx.business_id, ctx.user, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))
