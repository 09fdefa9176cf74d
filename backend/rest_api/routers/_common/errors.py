"""
Translation of domain exceptions into HTTP errors.

Domain services raise plain exceptions; routers call ``raise_http_error``
from their ``except`` clause.

Usage:
    try:
        order = OrderService(db, changes).submit(session_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
"""

from typing import NoReturn

from rest_api.services.domain.billing_service import BillSessionNotFoundError
from rest_api.services.domain.cart_service import CartItemNotFoundError, DishNotAvailableError
from rest_api.services.domain.order_service import (
    CancellationNotAllowedError,
    EmptyCartError,
    OrderItemNotFoundError,
    RestaurantUnavailableError,
    StatusTransitionError,
)
from rest_api.services.domain.order_service import OrderNotFoundError as DomainOrderNotFoundError
from rest_api.services.domain.session_service import (
    InvalidPinError,
    NoOpenSessionError,
    SessionNotActiveError,
    TableNotFoundError,
)
from shared.utils.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    SessionNotFoundError,
    UnauthorizedError,
    ValidationError,
)

DOMAIN_ERRORS = (
    TableNotFoundError,
    NoOpenSessionError,
    SessionNotActiveError,
    InvalidPinError,
    DishNotAvailableError,
    CartItemNotFoundError,
    EmptyCartError,
    RestaurantUnavailableError,
    DomainOrderNotFoundError,
    OrderItemNotFoundError,
    StatusTransitionError,
    CancellationNotAllowedError,
    BillSessionNotFoundError,
    ValueError,
)


def raise_http_error(error: Exception) -> NoReturn:
    """Raise the HTTP error matching a domain exception."""
    if isinstance(error, TableNotFoundError):
        raise NotFoundError("Table") from error
    if isinstance(error, NoOpenSessionError):
        raise ConflictError("Table has no open session") from error
    if isinstance(error, SessionNotActiveError):
        raise ValidationError("Session is closed or invalid") from error
    if isinstance(error, InvalidPinError):
        raise UnauthorizedError("Invalid PIN") from error
    if isinstance(error, DishNotAvailableError):
        raise NotFoundError("Dish") from error
    if isinstance(error, CartItemNotFoundError):
        raise NotFoundError("Cart item") from error
    if isinstance(error, EmptyCartError):
        raise ValidationError(str(error)) from error
    if isinstance(error, RestaurantUnavailableError):
        raise ConflictError("Restaurant is not available") from error
    if isinstance(error, DomainOrderNotFoundError):
        raise OrderNotFoundError() from error
    if isinstance(error, OrderItemNotFoundError):
        raise NotFoundError("Order item") from error
    if isinstance(error, StatusTransitionError):
        raise InvalidTransitionError(error.entity, error.from_status, error.to_status) from error
    if isinstance(error, CancellationNotAllowedError):
        raise ConflictError(str(error)) from error
    if isinstance(error, BillSessionNotFoundError):
        raise SessionNotFoundError() from error
    raise ValidationError(str(error)) from error
