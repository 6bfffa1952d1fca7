import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import template as template_crud
from perfeval.schemas.common import ApiResponse, MessageResponse
from perfeval.schemas.template import TemplateCreateRequest, TemplateResponse, TemplateUpdateRequest

router = APIRouter(prefix="/businesses/{business_id}/templates", tags=["Evaluation Templates"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201, response_model=ApiResponse[TemplateResponse])
def create_template(
    request: TemplateCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Create an evaluation template (requires can_manage_evaluations).

    Every question must declare a type: rating, dualRating, text,
    multipleChoice (with options) or yesNo. Untyped questions default to
    dualRating.
    """
    template = template_crud.create_template(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=TemplateResponse.model_validate(template))


@router.get("", response_model=ApiResponse[List[TemplateResponse]])
def list_templates(
    include_inactive: bool = False,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    templates = template_crud.list_templates(db, ctx.business_id, include_inactive=include_inactive)
    return ApiResponse(data=[TemplateResponse.model_validate(t) for t in templates])


@router.get("/{template_id}", response_model=ApiResponse[TemplateResponse])
def get_template(
    template_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    template = template_crud.get_by_id(db, ctx.business_id, template_id)
    return ApiResponse(data=TemplateResponse.model_validate(template))


@router.patch("/{template_id}", response_model=ApiResponse[TemplateResponse])
def update_template(
    template_id: str,
    request: TemplateUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Edit a template. Evaluations already created keep their snapshot."""
    template = template_crud.update_template(db, ctx.business_id, ctx.user, template_id, request)
    return ApiResponse(data=TemplateResponse.model_validate(template))


@router.delete("/{template_id}", response_model=ApiResponse[MessageResponse])
def delete_template(
    template_id: str,
    permanent: bool = False,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Delete a template.

    By default the template is deactivated. With permanent=true it is removed,
    which is only allowed while no evaluation references it.
    """
    template_crud.delete_template(db, ctx.business_id, ctx.user, template_id, permanent=permanent)
    message = "Template deleted" if permanent else "Template deactivated"
    return ApiResponse(data=MessageResponse(message=message))
