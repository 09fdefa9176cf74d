"""
Role dependencies and restaurant scoping for staff routers.
"""

from typing import Any

from fastapi import Depends

from shared.config.constants import MANAGEMENT_ROLES, STAFF_ROLES, Roles
from shared.security.auth import current_user_context as current_user
from shared.security.auth import require_restaurant, require_roles
from shared.utils.exceptions import ValidationError


def get_user_id(user: dict[str, Any]) -> int:
    """User id from the token's ``sub`` claim."""
    return int(user["sub"])


def require_admin(user: dict = Depends(current_user)) -> dict:
    """Dependency that requires ADMIN role."""
    require_roles(user, [Roles.ADMIN])
    return user


def require_management(user: dict = Depends(current_user)) -> dict:
    """Dependency that requires ADMIN or OWNER role."""
    require_roles(user, MANAGEMENT_ROLES)
    return user


def require_staff(user: dict = Depends(current_user)) -> dict:
    """Dependency that requires any staff role."""
    require_roles(user, STAFF_ROLES)
    return user


def resolve_restaurant_id(user: dict[str, Any], restaurant_id: int | None = None) -> int:
    """
    Restaurant a staff request acts on.

    Owners and staff act on their own restaurant; ``restaurant_id`` may repeat
    it but not point elsewhere. Admins have no restaurant of their own and
    must name one.
    """
    if restaurant_id is None:
        restaurant_id = user.get("restaurant_id")
        if restaurant_id is None:
            raise ValidationError("restaurant_id is required")
    require_restaurant(user, restaurant_id)
    return restaurant_id
