"""
Common utilities shared across routers.
"""

from .base import (
    get_user_id,
    require_admin,
    require_management,
    require_staff,
    resolve_restaurant_id,
)
from .errors import DOMAIN_ERRORS, raise_http_error

__all__ = [
    "get_user_id",
    "require_admin",
    "require_management",
    "require_staff",
    "resolve_restaurant_id",
    "DOMAIN_ERRORS",
    "raise_http_error",
]
