"""
Waiter routers - /api/waiter/*
"""

from .routes import router

__all__ = ["router"]
