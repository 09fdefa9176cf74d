"""
Authentication and authorization utilities.

Two kinds of bearer credentials exist:
- staff JWTs (ADMIN, OWNER, STAFF) sent as ``Authorization: Bearer <jwt>``;
- table tokens, issued once a customer has entered the session PIN (or by
  staff when opening a table), sent as ``X-Table-Token``. A table token is
  the customer's session context: restaurant, table and session ids.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Header, HTTPException, status

from shared.config.constants import Roles
from shared.config.settings import (
    JWT_SECRET,
    JWT_ISSUER,
    JWT_AUDIENCE,
    TABLE_TOKEN_SECRET,
    settings,
)
from shared.config.logging import get_logger
from shared.utils.exceptions import InsufficientRoleError, RestaurantAccessError

logger = get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# Staff JWT
# =============================================================================


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign a staff access token.

    Args:
        payload: Claims (sub, restaurant_id, roles, email).
        ttl_seconds: Lifetime; defaults to ``jwt_access_token_expire_minutes``.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": "access",
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def sign_user_token(user: Any) -> str:
    """Access token for a User row."""
    return sign_jwt(
        {
            "sub": str(user.id),
            "restaurant_id": user.restaurant_id,
            "roles": [user.role],
            "email": user.email,
        }
    )


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a staff access token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or malformed.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT validation failed", error=str(e))
        raise _unauthorized("Invalid token")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token: wrong type")

    try:
        int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Invalid token: malformed subject claim")

    restaurant_id = payload.get("restaurant_id")
    if restaurant_id is not None and not isinstance(restaurant_id, int):
        raise _unauthorized("Invalid token: malformed restaurant_id claim")

    if not isinstance(payload.get("roles"), list):
        raise _unauthorized("Invalid token: missing roles claim")

    return payload


def get_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise _unauthorized("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid Authorization header format. Expected: Bearer <token>")
    return authorization.split(" ", 1)[1].strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency returning the staff claims.

    Usage:
        @router.get("/dishes")
        def list_dishes(ctx: dict = Depends(current_user_context)):
            restaurant_id = ctx["restaurant_id"]

    Returns:
        Dict with: sub (user id as str), restaurant_id, roles, email
    """
    return verify_jwt(get_bearer_token(authorization))


def require_roles(ctx: dict[str, Any], allowed: list[str] | frozenset[str]) -> None:
    """
    Raise 403 unless the user holds at least one of ``allowed``.
    """
    if not set(ctx.get("roles", [])).intersection(allowed):
        raise InsufficientRoleError(sorted(allowed), user_id=ctx.get("sub"))


def require_restaurant(ctx: dict[str, Any], restaurant_id: int) -> None:
    """
    Raise 403 unless the user belongs to ``restaurant_id``. Admins pass.
    """
    if Roles.ADMIN in ctx.get("roles", []):
        return
    if ctx.get("restaurant_id") != restaurant_id:
        raise RestaurantAccessError(restaurant_id, user_id=ctx.get("sub"))


# =============================================================================
# Table tokens (customer session context)
# =============================================================================

TABLE_TOKEN_ISSUER = "tavola:table"
TABLE_TOKEN_AUDIENCE = "tavola:customer"


@dataclass(frozen=True)
class TableContext:
    """Who a customer request acts for, as proven by its table token."""

    restaurant_id: int
    table_id: int
    session_id: int


def sign_table_token(
    restaurant_id: int,
    table_id: int,
    session_id: int,
    ttl_seconds: int | None = None,
) -> str:
    """
    Issue a table token for an OPEN session.

    Defaults to ``jwt_table_token_expire_hours``.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_table_token_expire_hours * 60 * 60
    now = int(time.time())
    payload = {
        "restaurant_id": restaurant_id,
        "table_id": table_id,
        "session_id": session_id,
        "type": "table",
        "iss": TABLE_TOKEN_ISSUER,
        "aud": TABLE_TOKEN_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, TABLE_TOKEN_SECRET, algorithm="HS256")


def verify_table_token(token: str) -> TableContext:
    """
    Verify and decode a table token.

    Raises:
        HTTPException: 401 if invalid or expired.
    """
    try:
        payload = jwt.decode(
            token,
            TABLE_TOKEN_SECRET,
            algorithms=["HS256"],
            audience=TABLE_TOKEN_AUDIENCE,
            issuer=TABLE_TOKEN_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Table token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Table token validation failed", error=str(e))
        raise _unauthorized("Invalid table token")

    if payload.get("type") != "table":
        raise _unauthorized("Invalid token type")

    try:
        return TableContext(
            restaurant_id=int(payload["restaurant_id"]),
            table_id=int(payload["table_id"]),
            session_id=int(payload["session_id"]),
        )
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Invalid table token")


def current_table_context(
    x_table_token: str | None = Header(default=None, alias="X-Table-Token"),
) -> TableContext:
    """
    FastAPI dependency returning the customer's session context.

    Usage:
        @router.post("/cart")
        def add(table_ctx: TableContext = Depends(current_table_context)):
            session_id = table_ctx.session_id
    """
    if not x_table_token:
        raise _unauthorized("Missing X-Table-Token header")
    return verify_table_token(x_table_token)
