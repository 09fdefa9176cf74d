"""
Admin API router - combines all management sub-routers.

- restaurants: tenant CRUD (ADMIN)
- settings: own restaurant profile, pricing and hours (OWNER)
- catalog: categories, dishes and tables
- custom_menus: dish subsets with day/meal schedules
- staff: staff accounts
- bookings: reservations

All routes are prefixed with /api/admin
"""

from fastapi import APIRouter

from .restaurants import router as restaurants_router
from .settings import router as settings_router
from .catalog import router as catalog_router
from .custom_menus import router as custom_menus_router
from .staff import router as staff_router
from .bookings import router as bookings_router


router = APIRouter(prefix="/api/admin")

router.include_router(restaurants_router)
router.include_router(settings_router)
router.include_router(catalog_router)
router.include_router(custom_menus_router)
router.include_router(staff_router)
router.include_router(bookings_router)


__all__ = ["router"]
