"""
Authentication router.
Handles staff login and the current user's info.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, sign_user_token
from shared.security.rate_limit import limiter
from shared.config.logging import audit_auth_event
from shared.config.settings import settings
from shared.utils.exceptions import NotFoundError, UnauthorizedError
from shared.utils.schemas import LoginRequest, LoginResponse, UserInfo
from rest_api.routers._common import get_user_id
from rest_api.services.domain import StaffService


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_info(user) -> UserInfo:
    return UserInfo(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        restaurant_id=user.restaurant_id,
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """
    Authenticate an admin, owner or staff member and return an access token.

    The token contains:
    - sub: user ID
    - restaurant_id: the user's restaurant (None for admins)
    - roles: [role]
    - email: user's email
    """
    user = StaffService(db).authenticate(body.email, body.password)
    if not user:
        audit_auth_event("LOGIN", email=body.email, success=False, reason="invalid_credentials")
        raise UnauthorizedError("Invalid email or password")

    audit_auth_event("LOGIN", user_id=user.id, email=user.email, role=user.role)

    return LoginResponse(
        access_token=sign_user_token(user),
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=_user_info(user),
    )


@router.get("/me", response_model=UserInfo)
def me(
    db: Session = Depends(get_db),
    user: dict = Depends(current_user_context),
) -> UserInfo:
    """Current user's info."""
    account = StaffService(db).get_entity(get_user_id(user))
    if not account or not account.is_active:
        raise NotFoundError("User")
    return _user_info(account)
