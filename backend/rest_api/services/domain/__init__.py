"""
Domain Services - application layer.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Model (entity)

Services commit their own unit of work and record what they changed in a
ChangeLog; routers schedule the log for publishing after the response.

Usage:
    from rest_api.services.domain import CartService

    # In router
    changes = ChangeLog()
    line = CartService(db, changes).add_item(session_id, dish_id, quantity)
    schedule_changes(background_tasks, changes)
"""

from .session_service import SessionService
from .cart_service import CartService
from .order_service import OrderService
from .billing_service import BillingService
from .restaurant_service import RestaurantService
from .catalog_service import CatalogService
from .custom_menu_service import CustomMenuService
from .staff_service import StaffService
from .booking_service import BookingService

__all__ = [
    # Ordering flow
    "SessionService",
    "CartService",
    "OrderService",
    "BillingService",
    # Administration
    "RestaurantService",
    "CatalogService",
    "CustomMenuService",
    "StaffService",
    "BookingService",
]
