"""
Own restaurant settings for owners: profile, pricing schedule, opening hours.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from rest_api.routers._common import require_management, resolve_restaurant_id
from rest_api.services.domain import RestaurantService
from rest_api.services.domain.restaurant_service import restaurant_output


router = APIRouter(tags=["admin-settings"])

# Only admins may (de)activate a tenant
_ADMIN_ONLY_FIELDS = {"is_active", "isActive"}


@router.get("/restaurant")
def get_own_restaurant(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> dict[str, Any]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return restaurant_output(RestaurantService(db).get(restaurant_id))


@router.patch("/restaurant")
def update_own_restaurant(
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> dict[str, Any]:
    """
    Update name, contacts, cover charge, AYCE and weekly schedules. camelCase
    mirror keys are accepted.
    """
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    payload = {key: value for key, value in payload.items() if key not in _ADMIN_ONLY_FIELDS}
    changes = ChangeLog()
    restaurant = RestaurantService(db, changes).update_from_payload(restaurant_id, payload)
    schedule_changes(background_tasks, changes)
    return restaurant_output(restaurant)
