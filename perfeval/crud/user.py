"""
CRUD operations for users within a business.

Users are created by an admin (or anyone holding can_manage_users), start
with the default permission flags of their role, and are soft deleted.
"""

import logging
import secrets
import time
from typing import List, Optional

from sqlalchemy.orm import Session

from perfeval.core.errors import AlreadyExists, NotFound, Unauthenticated, ValidationFailed
from perfeval.core.permissions import (
    CAN_MANAGE_USERS,
    default_permissions,
    normalize_permissions,
    require_permission,
)
from perfeval.core.security import get_password_hash, verify_password
from perfeval.models.department import Department
from perfeval.models.mixins import utcnow
from perfeval.models.user import User, UserRole
from perfeval.schemas.user import UserCreateRequest, UserUpdateRequest

logger = logging.getLogger(__name__)


def generate_employee_code() -> str:
    """EMP_<epoch millis>_<6 random upper-case alphanumerics>"""
    return f"EMP_{int(time.time() * 1000)}_{secrets.token_hex(3).upper()}"


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def get_by_id(db: Session, business_id: str, user_id: str) -> Optional[User]:
    """
    Retrieve a user of a business by ID.

    Args:
        db: Database session
        business_id: Tenant the user must belong to
        user_id: User ID to retrieve

    Returns:
        User instance if found in this business, None otherwise
    """
    return db.query(User).filter(User.id == user_id, User.business_id == business_id).first()


def get_active_or_404(db: Session, business_id: str, user_id: str, label: str = "User") -> User:
    user = get_by_id(db, business_id, user_id)
    if not user or not user.is_active:
        raise NotFound(label, user_id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials and stamp last_login_at.

    Raises:
        Unauthenticated: unknown email, wrong password or inactive account
    """
    user = get_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthenticated("Incorrect email or password")
    if not user.is_active:
        raise Unauthenticated("User account is inactive")

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def _check_references(db: Session, business_id: str, department_id: Optional[str], manager_id: Optional[str]) -> None:
    if department_id:
        department = db.query(Department).filter(
            Department.id == department_id,
            Department.business_id == business_id,
            Department.is_active.is_(True),
        ).first()
        if not department:
            raise NotFound("Department", department_id)
    if manager_id:
        get_active_or_404(db, business_id, manager_id, label="Manager")


def create_user(db: Session, business_id: str, actor: User, request: UserCreateRequest) -> User:
    """
    Add a user to the business.

    Args:
        db: Database session
        business_id: Tenant the user joins
        actor: Calling principal (needs can_manage_users or the admin role)
        request: Validated user data

    Returns:
        Created User instance

    Raises:
        PermissionDenied: actor lacks can_manage_users
        AlreadyExists: email already registered
    """
    require_permission(actor, CAN_MANAGE_USERS, "create users")

    email = request.email.lower()
    if get_by_email(db, email):
        raise AlreadyExists("A user with this email already exists", {"email": email})

    _check_references(db, business_id, request.department_id, request.manager_id)

    permissions = default_permissions(request.role)
    if request.permissions:
        permissions = normalize_permissions({**permissions, **request.permissions})

    user = User(
        business_id=business_id,
        email=email,
        hashed_password=get_password_hash(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        role=request.role,
        employee_code=generate_employee_code(),
        department_id=request.department_id,
        position=request.position,
        manager_id=request.manager_id,
        hire_date=request.hire_date,
        permissions=permissions,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User {user.id} ({user.role.value}) created in business {business_id} by {actor.id}")
    return user


def update_user(db: Session, business_id: str, actor: User, user_id: str, request: UserUpdateRequest) -> User:
    """
    Update profile, role, placement or permission flags.

    A role change re-derives the default flags unless explicit flags are sent
    in the same request.
    """
    require_permission(actor, CAN_MANAGE_USERS, "update users")
    user = get_active_or_404(db, business_id, user_id)

    changes = request.model_dump(exclude_unset=True)
    if changes.get("manager_id") == user_id:
        raise ValidationFailed("A user cannot be their own manager")
    _check_references(db, business_id, changes.get("department_id"), changes.get("manager_id"))

    for field in ("first_name", "last_name", "phone", "department_id", "position", "manager_id", "hire_date"):
        if field in changes:
            setattr(user, field, changes[field])

    if changes.get("role") is not None:
        user.role = UserRole(changes["role"])
        if "permissions" not in changes:
            user.permissions = default_permissions(user.role)
    if changes.get("permissions") is not None:
        user.permissions = normalize_permissions({**(user.permissions or {}), **changes["permissions"]})

    db.commit()
    db.refresh(user)

    logger.info(f"User {user.id} updated by {actor.id}: {sorted(changes)}")
    return user


def delete_user(db: Session, business_id: str, actor: User, user_id: str) -> User:
    """
    Soft delete a user (is_active=False).

    Raises:
        ValidationFailed: actor tried to delete themselves
        NotFound: no active user with this id in the business
    """
    require_permission(actor, CAN_MANAGE_USERS, "delete users")
    if actor.id == user_id:
        raise ValidationFailed("Cannot delete your own account")

    user = get_active_or_404(db, business_id, user_id)
    user.is_active = False
    db.commit()
    db.refresh(user)

    logger.info(f"User {user_id} deactivated by {actor.id}")
    return user


def list_users(
    db: Session,
    business_id: str,
    role: Optional[UserRole] = None,
    department_id: Optional[str] = None,
    include_inactive: bool = False,
) -> List[User]:
    """
    List users of a business, ordered by last then first name.

    Args:
        db: Database session
        business_id: Tenant to list
        role: Optional role filter
        department_id: Optional department filter
        include_inactive: Also return soft-deleted users
    """
    query = db.query(User).filter(User.business_id == business_id)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    if role:
        query = query.filter(User.role == role)
    if department_id:
        query = query.filter(User.department_id == department_id)
    return query.order_by(User.last_name, User.first_name).all()
