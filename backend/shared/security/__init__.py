"""
Security module: authentication, password hashing, rate limiting.
"""

from shared.security.auth import (
    sign_jwt,
    sign_user_token,
    verify_jwt,
    sign_table_token,
    verify_table_token,
    get_bearer_token,
    current_user_context,
    current_table_context,
    require_roles,
    require_restaurant,
    TableContext,
)
from shared.security.password import hash_password, verify_password
from shared.security.rate_limit import (
    limiter,
    table_key,
    rate_limit_exceeded_handler,
)

__all__ = [
    # auth
    "sign_jwt",
    "sign_user_token",
    "verify_jwt",
    "sign_table_token",
    "verify_table_token",
    "get_bearer_token",
    "current_user_context",
    "current_table_context",
    "require_roles",
    "require_restaurant",
    "TableContext",
    # password
    "hash_password",
    "verify_password",
    # rate_limit
    "limiter",
    "table_key",
    "rate_limit_exceeded_handler",
]
