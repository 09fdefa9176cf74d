"""
Diner routers - /api/diner/*, /ws/diner
Customer access, cart, orders, bill and the live view of a table session.
"""

from .access import router as access_router
from .cart import router as cart_router
from .orders import router as orders_router
from .live import router as live_router

__all__ = ["access_router", "cart_router", "orders_router", "live_router"]
