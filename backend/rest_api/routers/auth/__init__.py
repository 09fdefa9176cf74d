"""
Authentication routers - /api/auth/*
Handles staff login and the current user.
"""

from .routes import router

__all__ = ["router"]
