"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, OrderStatus, OrderItemStatus

    if role in MANAGEMENT_ROLES:
        ...

    if item.status == OrderItemStatus.PENDING:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants."""

    ADMIN: Final[str] = "ADMIN"
    OWNER: Final[str] = "OWNER"
    STAFF: Final[str] = "STAFF"
    CUSTOMER: Final[str] = "CUSTOMER"

    ALL: Final[list[str]] = [ADMIN, OWNER, STAFF, CUSTOMER]


# Role groups for common access patterns
MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.OWNER})
STAFF_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.OWNER, Roles.STAFF})


# =============================================================================
# Entity Status Enums
# =============================================================================


class SessionStatus(str, Enum):
    """Table session status."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class OrderStatus(str, Enum):
    """Order status. PAID and CANCELLED are terminal."""

    OPEN = "OPEN"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class OrderItemStatus(str, Enum):
    """Order item fulfilment status. SERVED and CANCELLED are terminal."""

    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


# Lowercase values written by older front-ends, mapped onto the closed enums.
LEGACY_SESSION_STATUS: Final[dict[str, SessionStatus]] = {
    "open": SessionStatus.OPEN,
    "closed": SessionStatus.CLOSED,
    "paid": SessionStatus.CLOSED,
    "PAID": SessionStatus.CLOSED,
}

LEGACY_ORDER_STATUS: Final[dict[str, OrderStatus]] = {
    "open": OrderStatus.OPEN,
    "waiting": OrderStatus.OPEN,
    "pending": OrderStatus.OPEN,
    "preparing": OrderStatus.OPEN,
    "ready": OrderStatus.OPEN,
    "served": OrderStatus.OPEN,
    "paid": OrderStatus.PAID,
    "completed": OrderStatus.PAID,
    "cancelled": OrderStatus.CANCELLED,
    "canceled": OrderStatus.CANCELLED,
    "CANCELED": OrderStatus.CANCELLED,
}

LEGACY_ORDER_ITEM_STATUS: Final[dict[str, OrderItemStatus]] = {
    "pending": OrderItemStatus.PENDING,
    "preparing": OrderItemStatus.IN_PREPARATION,
    "in_preparation": OrderItemStatus.IN_PREPARATION,
    "ready": OrderItemStatus.READY,
    "served": OrderItemStatus.SERVED,
    "delivered": OrderItemStatus.SERVED,
    "DELIVERED": OrderItemStatus.SERVED,
    "cancelled": OrderItemStatus.CANCELLED,
    "canceled": OrderItemStatus.CANCELLED,
    "CANCELED": OrderItemStatus.CANCELLED,
}


# =============================================================================
# Status Transitions
# =============================================================================

# Valid order item transitions (from -> [allowed to states])
# Flow: PENDING -> IN_PREPARATION -> READY -> SERVED, CANCELLED from any non-terminal
ORDER_ITEM_TRANSITIONS: Final[dict[OrderItemStatus, list[OrderItemStatus]]] = {
    OrderItemStatus.PENDING: [
        OrderItemStatus.IN_PREPARATION,
        OrderItemStatus.READY,
        OrderItemStatus.CANCELLED,
    ],
    OrderItemStatus.IN_PREPARATION: [OrderItemStatus.READY, OrderItemStatus.CANCELLED],
    OrderItemStatus.READY: [OrderItemStatus.SERVED, OrderItemStatus.CANCELLED],
    OrderItemStatus.SERVED: [],  # Terminal state
    OrderItemStatus.CANCELLED: [],  # Terminal state
}

ORDER_TRANSITIONS: Final[dict[OrderStatus, list[OrderStatus]]] = {
    OrderStatus.OPEN: [OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PAID: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_DESCRIPTION_LENGTH: Final[int] = 2000
    MAX_NOTES_LENGTH: Final[int] = 500
    MAX_URL_LENGTH: Final[int] = 2048

    # Customer count per session
    MIN_CUSTOMER_COUNT: Final[int] = 1
    MAX_CUSTOMER_COUNT: Final[int] = 50

    # Session PIN
    PIN_LENGTH: Final[int] = 4


# =============================================================================
# Row change types (change-notification stream)
# =============================================================================


class ChangeType:
    """Row change event types."""

    INSERT: Final[str] = "INSERT"
    UPDATE: Final[str] = "UPDATE"
    DELETE: Final[str] = "DELETE"

    ALL: Final[list[str]] = [INSERT, UPDATE, DELETE]


# =============================================================================
# Calendar
# =============================================================================

# Index matches Python's date.weekday(): Monday == 0
DAY_KEYS: Final[tuple[str, ...]] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class MealPeriod:
    """Meal periods of the weekly pricing schedule and of custom menu schedules."""

    LUNCH: Final[str] = "lunch"
    DINNER: Final[str] = "dinner"
    # Custom menu schedules only: the whole day
    ALL_DAY: Final[str] = "all"


class BookingStatus(str, Enum):
    """Booking status."""

    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


LEGACY_STATUS_MAPS: Final[dict[type[Enum], dict[str, Enum]]] = {
    SessionStatus: LEGACY_SESSION_STATUS,
    OrderStatus: LEGACY_ORDER_STATUS,
    OrderItemStatus: LEGACY_ORDER_ITEM_STATUS,
    BookingStatus: {"canceled": BookingStatus.CANCELLED, "CANCELED": BookingStatus.CANCELLED},
}


def normalize_status(enum_cls: type[Enum], value: "str | Enum | None") -> Enum | None:
    """
    Map a stored or submitted status string onto ``enum_cls``.

    Accepts canonical values, any letter case of them, and the legacy
    synonyms above. Raises ValueError for anything else.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    raw = value.value if isinstance(value, Enum) else str(value).strip()

    legacy = LEGACY_STATUS_MAPS.get(enum_cls, {})
    if raw in legacy:
        return legacy[raw]
    try:
        return enum_cls(raw.upper())
    except ValueError:
        pass
    if raw.lower() in legacy:
        return legacy[raw.lower()]
    raise ValueError(f"Unknown {enum_cls.__name__} value: {value!r}")
