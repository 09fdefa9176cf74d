"""
Kitchen routers - /api/kitchen/*
"""

from .orders import router

__all__ = ["router"]
