"""
Services module for business logic.

- domain/: application services (ordering flow, administration)
- live/: live session view for customers (subscribe, refetch, reduce)

Usage:
    from rest_api.services.domain import CartService
    service = CartService(db, changes)
    service.add_item(session_id, dish_id, quantity=2)
"""
