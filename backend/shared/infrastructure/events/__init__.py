"""
Row-change notifications over Redis pub/sub.

- event_types.py: watched tables, change types, filter columns
- event_schema.py: ChangeEvent dataclass with validation
- channels.py: channel naming
- redis_pool.py: connection pool management
- publisher.py: publish_event with retry
- domain_publishers.py: ChangeLog and after-commit publishing
- change_feed.py: subscribing side (ChangeFeed, RedisChangeFeed)
"""

from .event_types import (
    INSERT,
    UPDATE,
    DELETE,
    TABLE_SESSIONS,
    CART_ITEMS,
    ORDERS,
    ORDER_ITEMS,
    RESTAURANTS,
    DISHES,
    CATEGORIES,
    TABLES,
    BOOKINGS,
    CUSTOM_MENUS,
    FILTER_COLUMNS,
    MAX_EVENT_SIZE,
)
from .event_schema import ChangeEvent
from .channels import channel_table, channel_filtered, channels_for_row
from .redis_pool import get_redis_pool, close_redis_pool
from .publisher import publish_event
from .domain_publishers import (
    ChangeLog,
    row_snapshot,
    publish_row_change,
    publish_changes_bg,
    schedule_changes,
)
from .change_feed import ChangeFeed, RedisChangeFeed

__all__ = [
    "INSERT",
    "UPDATE",
    "DELETE",
    "TABLE_SESSIONS",
    "CART_ITEMS",
    "ORDERS",
    "ORDER_ITEMS",
    "RESTAURANTS",
    "DISHES",
    "CATEGORIES",
    "TABLES",
    "BOOKINGS",
    "CUSTOM_MENUS",
    "FILTER_COLUMNS",
    "MAX_EVENT_SIZE",
    "ChangeEvent",
    "channel_table",
    "channel_filtered",
    "channels_for_row",
    "get_redis_pool",
    "close_redis_pool",
    "publish_event",
    "ChangeLog",
    "row_snapshot",
    "publish_row_change",
    "publish_changes_bg",
    "schedule_changes",
    "ChangeFeed",
    "RedisChangeFeed",
]
