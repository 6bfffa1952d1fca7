"""
Named callable functions.

POST /functions/{name} with a JSON payload, answered with the same
``{success, data}`` / ``{success: false, error}`` envelope as the REST routes.
This is the surface perfeval.client.FunctionsClient talks to.

    createBusinessAndAdmin  {business: {...}, admin: {..., password}}
    createUser              {business_id, user: {...}}
    deleteUser              {business_id, user_id}
    createDepartment        {business_id, department: {...}}
    deleteDepartment        {business_id, department_id}
"""

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import security, user_from_credentials
from perfeval.core.errors import NotFound, PermissionDenied, ValidationFailed
from perfeval.core.security import create_token_pair
from perfeval.crud import business as business_crud
from perfeval.crud import department as department_crud
from perfeval.crud import user as user_crud
from perfeval.models.user import User
from perfeval.schemas.common import ApiResponse
from perfeval.schemas.department import DepartmentCreateRequest, DepartmentResponse
from perfeval.schemas.user import BusinessRegisterRequest, BusinessResponse, UserCreateRequest, UserResponse

router = APIRouter(prefix="/functions", tags=["Functions"])
logger = logging.getLogger(__name__)


class _CreateUserCall(BaseModel):
    business_id: str
    user: UserCreateRequest


class _DeleteUserCall(BaseModel):
    business_id: str
    user_id: str


class _CreateDepartmentCall(BaseModel):
    business_id: str
    department: DepartmentCreateRequest


class _DeleteDepartmentCall(BaseModel):
    business_id: str
    department_id: str


def _parse(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailed(
            "Invalid function arguments",
            {"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        )


def _tenant_user(actor: User, business_id: str) -> User:
    if actor.business_id != business_id:
        raise PermissionDenied("User does not belong to this business")
    return actor


def _create_business_and_admin(db: Session, actor: Optional[User], payload: Dict[str, Any]) -> Dict[str, Any]:
    request = _parse(BusinessRegisterRequest, payload)
    business, admin = business_crud.register_business(db, request)
    return {
        **create_token_pair(admin),
        "business": BusinessResponse.model_validate(business).model_dump(mode="json"),
        "user": UserResponse.model_validate(admin).model_dump(mode="json"),
    }


def _create_user(db: Session, actor: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    call = _parse(_CreateUserCall, payload)
    _tenant_user(actor, call.business_id)
    user = user_crud.create_user(db, call.business_id, actor, call.user)
    return {"user_id": user.id, "user": UserResponse.model_validate(user).model_dump(mode="json")}


def _delete_user(db: Session, actor: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    call = _parse(_DeleteUserCall, payload)
    _tenant_user(actor, call.business_id)
    user_crud.delete_user(db, call.business_id, actor, call.user_id)
    return {"user_id": call.user_id, "message": "User deleted successfully"}


def _create_department(db: Session, actor: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    call = _parse(_CreateDepartmentCall, payload)
    _tenant_user(actor, call.business_id)
    department = department_crud.create_department(db, call.business_id, actor, call.department)
    return {
        "department_id": department.id,
        "department": DepartmentResponse.model_validate(department).model_dump(mode="json"),
    }


def _delete_department(db: Session, actor: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    call = _parse(_DeleteDepartmentCall, payload)
    _tenant_user(actor, call.business_id)
    department_crud.delete_department(db, call.business_id, actor, call.department_id)
    return {"department_id": call.department_id, "message": "Department deleted successfully"}


# name -> (handler, requires authentication)
FUNCTIONS: Dict[str, tuple[Callable[..., Dict[str, Any]], bool]] = {
    "createBusinessAndAdmin": (_create_business_and_admin, False),
    "createUser": (_create_user, True),
    "deleteUser": (_delete_user, True),
    "createDepartment": (_create_department, True),
    "deleteDepartment": (_delete_department, True),
}


@router.post("/{name}", response_model=ApiResponse[Dict[str, Any]])
def call_function(
    name: str,
    payload: Dict[str, Any] = Body(...),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Invoke a named function."""
    entry = FUNCTIONS.get(name)
    if entry is None:
        raise NotFound("Function", name)

    handler, needs_auth = entry
    actor = user_from_credentials(credentials, db) if needs_auth else None

    logger.info(f"Function call {name} by {actor.id if actor else 'anonymous'}")
    return ApiResponse(data=handler(db, actor, payload))
