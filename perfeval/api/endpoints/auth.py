"""
Authentication endpoints for business registration, login, and token refresh.

Implements JWT-based stateless authentication:
- POST /register: Create a business and its admin account
- POST /login: Authenticate and receive JWT tokens
- POST /refresh: Get new tokens using a refresh token
- GET /me: Get current user profile
"""

import logging
from fastapi import APIRouter, Depends
from jose import JWTError
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import get_current_user
from perfeval.core.errors import Unauthenticated
from perfeval.core.security import create_token_pair, decode_token
from perfeval.crud import business as business_crud
from perfeval.crud import user as user_crud
from perfeval.models.user import User
from perfeval.schemas.common import ApiResponse
from perfeval.schemas.user import (
    BusinessRegisterRequest,
    BusinessResponse,
    RegistrationResponse,
    TokenRefreshRequest,
    TokenResponse,
    UserLoginRequest,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201, response_model=ApiResponse[RegistrationResponse])
def register(
    request: BusinessRegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new business.

    Creates:
    1. Business record with default settings
    2. Admin user with every permission flag

    Returns JWT tokens for immediate login.
    """
    business, admin = business_crud.register_business(db, request)
    tokens = create_token_pair(admin)

    return ApiResponse(data=RegistrationResponse(
        **tokens,
        business=BusinessResponse.model_validate(business),
        user=UserResponse.model_validate(admin),
    ))


@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(
    request: UserLoginRequest,
    db: Session = Depends(get_db)
):
    """Authenticate with email and password."""
    user = user_crud.authenticate(db, request.email, request.password)
    logger.info(f"User logged in: {user.email} (business_id: {user.business_id})")
    return ApiResponse(data=TokenResponse(**create_token_pair(user)))


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
def refresh_token(
    request: TokenRefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange a refresh token for a new token pair.

    The user is re-read so role changes and deactivation take effect.
    """
    try:
        payload = decode_token(request.refresh_token)
    except JWTError:
        raise Unauthenticated("Invalid refresh token")

    if payload.get("type") != "refresh" or not payload.get("sub"):
        raise Unauthenticated("Invalid refresh token")

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    return ApiResponse(data=TokenResponse(**create_token_pair(user)))


@router.get("/me", response_model=ApiResponse[UserResponse])
def get_current_user_profile(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user's profile."""
    return ApiResponse(data=UserResponse.model_validate(current_user))
