"""
SQLAlchemy ORM Models Package.

- base: Base, id column type, StatusType
- restaurant: Restaurant
- user: User
- catalog: Category, Dish, CustomMenu, CustomMenuDish, CustomMenuSchedule
- table: Table, TableSession
- cart: CartItem
- order: Order, OrderItem
- booking: Booking
"""

from .base import Base, BigIntId, StatusType, CreatedAtMixin
from .restaurant import Restaurant
from .user import User
from .catalog import Category, CustomMenu, CustomMenuDish, CustomMenuSchedule, Dish
from .table import Table, TableSession, new_table_token
from .cart import CartItem
from .order import Order, OrderItem
from .booking import Booking

__all__ = [
    "Base",
    "BigIntId",
    "StatusType",
    "CreatedAtMixin",
    "Restaurant",
    "User",
    "Category",
    "Dish",
    "CustomMenu",
    "CustomMenuDish",
    "CustomMenuSchedule",
    "Table",
    "TableSession",
    "new_table_token",
    "CartItem",
    "Order",
    "OrderItem",
    "Booking",
]
