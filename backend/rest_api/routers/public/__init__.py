"""
Public routers - No authentication required.
- /api/public/* - QR table lookup, menu, bookings
- /api/health - Health check
"""

from .tables import router as tables_router
from .health import router as health_router

__all__ = ["tables_router", "health_router"]
