import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import department as department_crud
from perfeval.schemas.common import ApiResponse
from perfeval.schemas.department import (
    DepartmentCreateRequest,
    DepartmentNode,
    DepartmentResponse,
    DepartmentUpdateRequest,
)

router = APIRouter(prefix="/businesses/{business_id}/departments", tags=["Departments"])
logger = logging.getLogger(__name__)


def _to_node(node: dict) -> DepartmentNode:
    data = DepartmentResponse.model_validate(node["department"]).model_dump()
    return DepartmentNode(**data, children=[_to_node(child) for child in node["children"]])


@router.post("", status_code=201, response_model=ApiResponse[DepartmentResponse])
def create_department(
    request: DepartmentCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Create a department (requires can_manage_departments)."""
    department = department_crud.create_department(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=DepartmentResponse.model_validate(department))


@router.get("", response_model=ApiResponse[List[DepartmentResponse]])
def list_departments(
    include_inactive: bool = False,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    List departments with up to date employee counts.

    Args:
        include_inactive: Include soft-deleted departments (default: false)
    """
    departments = department_crud.list_departments(db, ctx.business_id, include_inactive=include_inactive)
    return ApiResponse(data=[DepartmentResponse.model_validate(d) for d in departments])


@router.get("/tree", response_model=ApiResponse[List[DepartmentNode]])
def department_tree(
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Active departments nested under their parents."""
    roots = department_crud.department_tree(db, ctx.business_id)
    return ApiResponse(data=[_to_node(root) for root in roots])


@router.get("/{department_id}", response_model=ApiResponse[DepartmentResponse])
def get_department(
    department_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    department = department_crud.get_active_or_404(db, ctx.business_id, department_id)
    return ApiResponse(data=DepartmentResponse.model_validate(department))


@router.patch("/{department_id}", response_model=ApiResponse[DepartmentResponse])
def update_department(
    department_id: str,
    request: DepartmentUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Rename, re-parent or edit a department. Re-parenting into a cycle is rejected."""
    department = department_crud.update_department(db, ctx.business_id, ctx.user, department_id, request)
    return ApiResponse(data=DepartmentResponse.model_validate(department))


@router.delete("/{department_id}", response_model=ApiResponse[DepartmentResponse])
def delete_department(
    department_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Soft delete a department.

    Fails with failed-precondition while the department has active employees
    or active sub-departments.
    """
    department = department_crud.delete_department(db, ctx.business_id, ctx.user, department_id)
    return ApiResponse(data=DepartmentResponse.model_validate(department))
