"""
CRUD operations for businesses (tenants).

A business is registered together with its first admin user in a single
commit, so a failure never leaves a business without an admin or an admin
without a business.
"""

import logging
from typing import Tuple

from sqlalchemy.orm import Session

from perfeval.core.config import settings
from perfeval.core.errors import AlreadyExists, NotFound
from perfeval.core.permissions import CAN_MANAGE_SETTINGS, default_permissions, require_permission
from perfeval.core.security import get_password_hash
from perfeval.crud.user import generate_employee_code, get_by_email
from perfeval.models.business import Business
from perfeval.models.user import User, UserRole
from perfeval.schemas.user import BusinessRegisterRequest, BusinessUpdateRequest

logger = logging.getLogger(__name__)


def default_settings() -> dict:
    return {
        "evaluation_cycle": settings.DEFAULT_EVALUATION_CYCLE,
        "bonus_calculation": settings.DEFAULT_BONUS_CALCULATION,
        "default_currency": settings.DEFAULT_CURRENCY,
        "working_days": list(settings.DEFAULT_WORKING_DAYS),
    }


def register_business(db: Session, request: BusinessRegisterRequest) -> Tuple[Business, User]:
    """
    Create a business and its admin user.

    Args:
        db: Database session
        request: Validated business and admin data

    Returns:
        (business, admin) tuple

    Raises:
        AlreadyExists: the admin email is already registered
    """
    admin_email = request.admin.email.lower()
    if get_by_email(db, admin_email):
        raise AlreadyExists("An account with this email already exists", {"email": admin_email})

    business = Business(
        name=request.business.name,
        email=request.business.email,
        phone=request.business.phone,
        industry=request.business.industry,
        settings=default_settings(),
        is_active=True,
    )
    db.add(business)
    db.flush()  # Flush to get business.id for the admin FK

    admin = User(
        business_id=business.id,
        email=admin_email,
        hashed_password=get_password_hash(request.admin.password),
        first_name=request.admin.first_name,
        last_name=request.admin.last_name,
        phone=request.admin.phone,
        role=UserRole.ADMIN,
        employee_code=generate_employee_code(),
        position="Administrator",
        permissions=default_permissions(UserRole.ADMIN),
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(business)
    db.refresh(admin)

    logger.info(f"Business registered: {business.name} ({business.id}) admin={admin.email}")
    return business, admin


def get_by_id(db: Session, business_id: str) -> Business:
    business = db.query(Business).filter(Business.id == business_id).first()
    if not business:
        raise NotFound("Business", business_id)
    return business


def update_business(db: Session, business_id: str, actor: User, request: BusinessUpdateRequest) -> Business:
    """
    Update business profile and settings.

    Settings are merged key by key; keys not sent keep their values.
    """
    require_permission(actor, CAN_MANAGE_SETTINGS, "update business settings")
    business = get_by_id(db, business_id)

    changes = request.model_dump(exclude_unset=True)
    for field in ("name", "phone", "industry"):
        if field in changes and changes[field] is not None:
            setattr(business, field, changes[field])

    if request.settings is not None:
        merged = dict(business.settings or {})
        merged.update(request.settings.model_dump(exclude_none=True))
        business.settings = merged

    db.commit()
    db.refresh(business)

    logger.info(f"Business {business_id} updated by {actor.id}")
    return business
