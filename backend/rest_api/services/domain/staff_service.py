"""
Staff Service.

Login accounts of a restaurant's owner and staff, plus credential checks
for the login endpoint.

Usage:
    from rest_api.services.domain import StaffService

    service = StaffService(db)
    staff = service.list_all(restaurant_id)
    user = service.authenticate(email, password)
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import User
from shared.config.constants import Roles
from shared.config.logging import get_logger, mask_email
from shared.infrastructure.db import safe_commit
from shared.security.password import hash_password, verify_password
from shared.utils.exceptions import DuplicateEntityError, ForbiddenError, NotFoundError
from shared.utils.schemas import StaffCreate, StaffOutput

logger = get_logger(__name__)


def staff_output(user: User) -> StaffOutput:
    return StaffOutput(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        restaurant_id=user.restaurant_id,
        is_active=user.is_active,
    )


class StaffService:
    """
    Service for user accounts.

    Business rules:
    - Emails are unique and stored lowercase
    - Owners manage STAFF and OWNER accounts of their own restaurant only
    - An owner cannot deactivate their own account
    """

    def __init__(self, db: Session):
        self._db = db
        self._entity_name = "User"

    def authenticate(self, email: str, password: str) -> User | None:
        """User matching the credentials, or None. Inactive users never match."""
        user = self._db.scalar(select(User).where(User.email == email.lower()))
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def get_entity(self, user_id: int) -> User | None:
        return self._db.get(User, user_id)

    def list_all(self, restaurant_id: int, include_inactive: bool = False) -> list[User]:
        query = select(User).where(User.restaurant_id == restaurant_id)
        if not include_inactive:
            query = query.where(User.is_active.is_(True))
        return list(self._db.execute(query.order_by(User.email)).scalars().all())

    def create(self, restaurant_id: int, data: StaffCreate) -> User:
        email = data.email.lower()
        if self._db.scalar(select(User.id).where(User.email == email)):
            raise DuplicateEntityError(self._entity_name, email)

        user = User(
            email=email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=data.role,
            restaurant_id=restaurant_id,
            is_active=True,
        )
        self._db.add(user)
        safe_commit(self._db)
        self._db.refresh(user)

        logger.info(
            "Staff created",
            user_id=user.id,
            restaurant_id=restaurant_id,
            role=user.role,
            email=mask_email(email),
        )
        return user

    def set_active(
        self,
        restaurant_id: int,
        user_id: int,
        is_active: bool,
        requesting_user_id: int,
    ) -> User:
        user = self._db.scalar(
            select(User).where(User.id == user_id, User.restaurant_id == restaurant_id)
        )
        if not user or user.role == Roles.ADMIN:
            raise NotFoundError(self._entity_name, user_id, restaurant_id=restaurant_id)
        if user.id == requesting_user_id and not is_active:
            raise ForbiddenError("deactivate your own account")

        user.is_active = is_active
        safe_commit(self._db)
        logger.info("Staff active flag changed", user_id=user_id, is_active=is_active)
        return user
