"""
Change event constants.

Every committed write to a watched table is announced as a row change on
Redis pub/sub. This module names the watched tables, the change types and the
columns that get their own filtered channel.
"""

from shared.config.constants import ChangeType
from shared.config.settings import settings

# =============================================================================
# Change types
# =============================================================================

INSERT = ChangeType.INSERT
UPDATE = ChangeType.UPDATE
DELETE = ChangeType.DELETE

# =============================================================================
# Watched tables
# =============================================================================

TABLE_SESSIONS = "table_sessions"
CART_ITEMS = "cart_items"
ORDERS = "orders"
ORDER_ITEMS = "order_items"
RESTAURANTS = "restaurants"
DISHES = "dishes"
CATEGORIES = "categories"
TABLES = "tables"
BOOKINGS = "bookings"
CUSTOM_MENUS = "custom_menus"

# Columns that get a "<table>:<column>=<value>" channel in addition to the
# unscoped "<table>" channel. Subscribers filter by equality on one of these.
FILTER_COLUMNS: dict[str, tuple[str, ...]] = {
    TABLE_SESSIONS: ("id", "table_id", "restaurant_id"),
    CART_ITEMS: ("session_id",),
    ORDERS: ("table_session_id", "restaurant_id"),
    ORDER_ITEMS: ("order_id",),
    RESTAURANTS: ("id",),
    DISHES: ("restaurant_id",),
    CATEGORIES: ("restaurant_id",),
    TABLES: ("restaurant_id",),
    BOOKINGS: ("restaurant_id",),
    CUSTOM_MENUS: ("restaurant_id",),
}

# =============================================================================
# Size limits
# =============================================================================

MAX_EVENT_SIZE = settings.max_event_size
