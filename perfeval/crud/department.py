"""
CRUD operations for departments.

Departments form a tree per business. Names are unique among active
departments, re-parenting may not introduce a cycle, and deletion is a soft
delete that is refused while the department still has active members or
active sub-departments.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from perfeval.core.errors import AlreadyExists, FailedPrecondition, NotFound, ValidationFailed
from perfeval.core.permissions import CAN_MANAGE_DEPARTMENTS, require_permission
from perfeval.models.department import Department
from perfeval.models.mixins import utcnow
from perfeval.models.user import User
from perfeval.schemas.department import DepartmentCreateRequest, DepartmentUpdateRequest

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def get_by_id(db: Session, business_id: str, department_id: str) -> Optional[Department]:
    return db.query(Department).filter(
        Department.id == department_id,
        Department.business_id == business_id,
    ).first()


def get_active_or_404(db: Session, business_id: str, department_id: str) -> Department:
    department = get_by_id(db, business_id, department_id)
    if not department or not department.is_active:
        raise NotFound("Department", department_id)
    return department


def _check_parent(db: Session, business_id: str, parent_id: str) -> Department:
    parent = get_by_id(db, business_id, parent_id)
    if not parent or not parent.is_active:
        raise ValidationFailed("Parent department not found", {"parent_department_id": parent_id})
    return parent


def _check_unique_name(db: Session, business_id: str, name: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(Department).filter(
        Department.business_id == business_id,
        Department.is_active.is_(True),
        func.lower(Department.name) == name.lower(),
    )
    if exclude_id:
        query = query.filter(Department.id != exclude_id)
    if query.first():
        raise AlreadyExists("A department with this name already exists", {"name": name})


def _would_create_cycle(db: Session, business_id: str, department_id: str, new_parent_id: str) -> bool:
    """True if department_id is new_parent_id or one of its ancestors."""
    seen = set()
    current_id = new_parent_id
    while current_id and current_id not in seen:
        if current_id == department_id:
            return True
        seen.add(current_id)
        parent = get_by_id(db, business_id, current_id)
        current_id = parent.parent_department_id if parent else None
    return bool(current_id)


def create_department(db: Session, business_id: str, actor: User, request: DepartmentCreateRequest) -> Department:
    """
    Create a department.

    Args:
        db: Database session
        business_id: Tenant the department belongs to
        actor: Calling principal (needs can_manage_departments or the admin role)
        request: Validated department data

    Returns:
        Created Department instance

    Raises:
        ValidationFailed: blank name or unknown parent
        AlreadyExists: an active department already has this name
    """
    require_permission(actor, CAN_MANAGE_DEPARTMENTS, "create departments")

    name = _clean(request.name)
    if not name:
        raise ValidationFailed("Department name is required")
    if request.parent_department_id:
        _check_parent(db, business_id, request.parent_department_id)
    _check_unique_name(db, business_id, name)

    department = Department(
        business_id=business_id,
        name=name,
        description=_clean(request.description),
        parent_department_id=request.parent_department_id or None,
        manager_id=request.manager_id or None,
        budget=request.budget,
        location=_clean(request.location),
        employee_count=0,
        is_active=True,
    )
    db.add(department)
    db.commit()
    db.refresh(department)

    logger.info(f"Department created: {department.name} ({department.id}) in business {business_id}")
    return department


def update_department(
    db: Session,
    business_id: str,
    actor: User,
    department_id: str,
    request: DepartmentUpdateRequest,
) -> Department:
    """
    Update a department; only the fields sent are changed.

    Raises:
        ValidationFailed: blank name, unknown parent or a circular hierarchy
        AlreadyExists: another active department already has the new name
    """
    require_permission(actor, CAN_MANAGE_DEPARTMENTS, "update departments")
    department = get_active_or_404(db, business_id, department_id)
    changes = request.model_dump(exclude_unset=True)

    if "name" in changes:
        name = _clean(changes["name"])
        if not name:
            raise ValidationFailed("Department name is required")
        _check_unique_name(db, business_id, name, exclude_id=department_id)
        department.name = name

    if "parent_department_id" in changes:
        parent_id = changes["parent_department_id"] or None
        if parent_id:
            _check_parent(db, business_id, parent_id)
            if _would_create_cycle(db, business_id, department_id, parent_id):
                raise ValidationFailed(
                    "Department hierarchy would become circular",
                    {"department_id": department_id, "parent_department_id": parent_id},
                )
        department.parent_department_id = parent_id

    for field in ("description", "location"):
        if field in changes:
            setattr(department, field, _clean(changes[field]))
    for field in ("manager_id", "budget"):
        if field in changes:
            setattr(department, field, changes[field])

    db.commit()
    db.refresh(department)

    logger.info(f"Department {department_id} updated by {actor.id}: {sorted(changes)}")
    return department


def delete_department(db: Session, business_id: str, actor: User, department_id: str) -> Department:
    """
    Soft delete a department.

    Raises:
        NotFound: no active department with this id
        FailedPrecondition: active employees or active child departments remain
    """
    require_permission(actor, CAN_MANAGE_DEPARTMENTS, "delete departments")
    department = get_active_or_404(db, business_id, department_id)

    active_employees = db.query(User).filter(
        User.business_id == business_id,
        User.department_id == department_id,
        User.is_active.is_(True),
    ).count()
    if active_employees:
        raise FailedPrecondition(
            "Cannot delete department with active employees. Please reassign employees first.",
            {"active_employees": active_employees},
        )

    active_children = db.query(Department).filter(
        Department.business_id == business_id,
        Department.parent_department_id == department_id,
        Department.is_active.is_(True),
    ).count()
    if active_children:
        raise FailedPrecondition(
            "Cannot delete department with child departments. Please reorganize the hierarchy first.",
            {"active_children": active_children},
        )

    department.is_active = False
    department.deleted_at = utcnow()
    db.commit()
    db.refresh(department)

    logger.info(f"Department {department_id} soft deleted by {actor.id}")
    return department


def _active_member_counts(db: Session, business_id: str) -> Dict[str, int]:
    rows = (
        db.query(User.department_id, func.count(User.id))
        .filter(
            User.business_id == business_id,
            User.is_active.is_(True),
            User.department_id.isnot(None),
        )
        .group_by(User.department_id)
        .all()
    )
    return {department_id: count for department_id, count in rows}


def list_departments(db: Session, business_id: str, include_inactive: bool = False) -> List[Department]:
    """
    List departments ordered by name.

    employee_count is recomputed from active users and written back for any
    department whose stored count has drifted.
    """
    query = db.query(Department).filter(Department.business_id == business_id)
    if not include_inactive:
        query = query.filter(Department.is_active.is_(True))
    departments = query.order_by(Department.name).all()

    counts = _active_member_counts(db, business_id)
    stale = 0
    for department in departments:
        actual = counts.get(department.id, 0)
        if department.employee_count != actual:
            department.employee_count = actual
            stale += 1
    if stale:
        db.commit()
        logger.info(f"Refreshed employee_count on {stale} departments in business {business_id}")

    return departments


def department_tree(db: Session, business_id: str) -> List[dict]:
    """Active departments nested under their parents; roots first."""
    departments = list_departments(db, business_id)
    nodes = {d.id: {"department": d, "children": []} for d in departments}
    roots = []
    for department in departments:
        parent = nodes.get(department.parent_department_id)
        if parent:
            parent["children"].append(nodes[department.id])
        else:
            roots.append(nodes[department.id])
    return roots
