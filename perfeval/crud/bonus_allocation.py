"""
CRUD operations for department bonus allocations.

One allocation is kept per department and year under the id
``{department_id}_{year}``; saving again overwrites it.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from perfeval.core.errors import NotFound, ValidationFailed
from perfeval.core.permissions import CAN_CALCULATE_BONUSES, require_permission
from perfeval.crud import department as department_crud
from perfeval.crud.evaluation import latest_completed_for
from perfeval.models.bonus_allocation import BonusAllocation, allocation_id
from perfeval.models.user import User, UserRole
from perfeval.schemas.bonus import BonusAllocationSaveRequest, BonusCalculationRequest
from perfeval.services.bonus import allocate_bonus_pool, bonus_amount, performance_score

logger = logging.getLogger(__name__)

# Roles whose bonus is decided at department level
_ALLOCATED_ROLES = (UserRole.EMPLOYEE, UserRole.MANAGER)

# Tolerance for floating point sums when checking against the budget
_BUDGET_EPSILON = 0.01


def department_members(db: Session, business_id: str, department_id: str, exclude_user_id: Optional[str] = None) -> List[User]:
    query = db.query(User).filter(
        User.business_id == business_id,
        User.department_id == department_id,
        User.is_active.is_(True),
        User.role.in_(_ALLOCATED_ROLES),
    )
    if exclude_user_id:
        query = query.filter(User.id != exclude_user_id)
    return query.order_by(User.last_name, User.first_name).all()


def member_scores(db: Session, business_id: str, members: List[User]) -> Dict[str, float]:
    """Performance weight of each member from their latest completed evaluation."""
    scores = {}
    for member in members:
        evaluation = latest_completed_for(db, business_id, member.id)
        if evaluation is None:
            scores[member.id] = performance_score(None)
            continue
        scoring_system = (evaluation.template_snapshot or {}).get("scoring_system")
        scores[member.id] = performance_score(evaluation.overall_rating, scoring_system)
    return scores


def calculate_allocation(db: Session, business_id: str, actor: User, request: BonusCalculationRequest) -> dict:
    """
    Propose a split of the budget across the department's active members.

    Args:
        db: Database session
        business_id: Tenant
        actor: Calling principal (needs can_calculate_bonuses); excluded from the pool
        request: Department, budget and monthly salaries

    Returns:
        ``{department_id, total_budget, allocated, lines}``
    """
    require_permission(actor, CAN_CALCULATE_BONUSES, "calculate bonuses")
    department_crud.get_active_or_404(db, business_id, request.department_id)

    members = department_members(db, business_id, request.department_id, exclude_user_id=actor.id)
    scores = member_scores(db, business_id, members)
    lines = allocate_bonus_pool(
        request.total_budget,
        [
            {
                "user_id": m.id,
                "monthly_salary": request.salaries.get(m.id, 0),
                "performance_score": scores[m.id],
            }
            for m in members
        ],
    )

    allocated = sum(line["bonus_amount"] for line in lines)
    logger.info(
        f"Bonus calculation for department {request.department_id}: "
        f"{len(lines)}/{len(members)} members, {allocated:.2f} of {request.total_budget:.2f}"
    )
    return {
        "department_id": request.department_id,
        "total_budget": request.total_budget,
        "allocated": allocated,
        "lines": lines,
    }


def save_allocation(
    db: Session,
    business_id: str,
    actor: User,
    department_id: str,
    year: int,
    request: BonusAllocationSaveRequest,
) -> BonusAllocation:
    """
    Store (or overwrite) a department's allocation for a year.

    Raises:
        NotFound: unknown department, or an allocation for a user outside the business
        ValidationFailed: the allocated amounts exceed the total budget
    """
    require_permission(actor, CAN_CALCULATE_BONUSES, "save bonus allocations")
    department_crud.get_active_or_404(db, business_id, department_id)

    allocations = {}
    for user_id, entry in request.allocations.items():
        user = db.query(User).filter(User.id == user_id, User.business_id == business_id).first()
        if not user:
            raise NotFound("User", user_id)
        allocations[user_id] = {
            "monthly_salary": entry.monthly_salary,
            "bonus_percentage": entry.bonus_percentage,
            "bonus_amount": bonus_amount(entry.monthly_salary, entry.bonus_percentage),
            "performance_score": entry.performance_score,
        }

    allocated = sum(a["bonus_amount"] for a in allocations.values())
    if allocated > request.total_budget + _BUDGET_EPSILON:
        raise ValidationFailed(
            "Allocated bonuses exceed the total budget",
            {"allocated": round(allocated, 2), "total_budget": request.total_budget},
        )

    key = allocation_id(department_id, year)
    record = db.query(BonusAllocation).filter(
        BonusAllocation.id == key,
        BonusAllocation.business_id == business_id,
    ).first()
    if record is None:
        record = BonusAllocation(id=key, business_id=business_id, department_id=department_id, year=year)
        db.add(record)

    record.total_budget = request.total_budget
    record.allocations = allocations
    record.saved_by = actor.id
    db.commit()
    db.refresh(record)

    logger.info(f"Bonus allocation {key} saved by {actor.id}: {allocated:.2f} of {request.total_budget:.2f}")
    return record


def get_allocation(db: Session, business_id: str, actor: User, department_id: str, year: int) -> BonusAllocation:
    require_permission(actor, CAN_CALCULATE_BONUSES, "view bonus allocations")
    record = db.query(BonusAllocation).filter(
        BonusAllocation.id == allocation_id(department_id, year),
        BonusAllocation.business_id == business_id,
    ).first()
    if not record:
        raise NotFound("Bonus allocation", allocation_id(department_id, year))
    return record
