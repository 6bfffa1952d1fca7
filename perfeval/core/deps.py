"""
FastAPI dependencies for authentication and tenant resolution.

These dependencies are used to protect endpoints and extract the calling
principal. Every tenant-scoped route lives under
``/businesses/{business_id}/...``; get_tenant_context refuses paths that name
a business other than the principal's own.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.errors import PermissionDenied, Unauthenticated
from perfeval.core.security import decode_token
from perfeval.models.user import User

# HTTP Bearer token scheme (Authorization: Bearer <token>)
security = HTTPBearer(auto_error=False)


@dataclass
class TenantContext:
    """The resolved (tenant, principal) pair handed to every operation."""
    business_id: str
    user: User

    @property
    def user_id(self) -> str:
        return self.user.id


def user_from_credentials(credentials: Optional[HTTPAuthorizationCredentials], db: Session) -> User:
    """
    Extract and validate the current user from JWT token.

    Steps:
    1. Extracts the Bearer token from Authorization header
    2. Decodes and validates the JWT
    3. Fetches the user from the database
    4. Ensures the user is active

    Raises:
        Unauthenticated: If token is missing/invalid or user not found
        PermissionDenied: If the account has been deactivated
    """
    if credentials is None:
        raise Unauthenticated("User must be authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise Unauthenticated("Could not validate credentials")

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise Unauthenticated("Could not validate credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthenticated("Could not validate credentials")

    if not user.is_active:
        raise PermissionDenied("User account is inactive")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """FastAPI dependency wrapper around user_from_credentials."""
    return user_from_credentials(credentials, db)


def get_tenant_context(
    business_id: str,
    user: User = Depends(get_current_user),
) -> TenantContext:
    """
    Core multi-tenancy dependency.

    The business_id path parameter must match the principal's business; all
    queries downstream filter by it.

    Raises:
        PermissionDenied: cross-tenant access attempt
    """
    if user.business_id != business_id:
        raise PermissionDenied("User does not belong to this business")
    return TenantContext(business_id=business_id, user=user)
