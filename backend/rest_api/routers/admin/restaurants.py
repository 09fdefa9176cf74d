"""
Restaurant tenant management endpoints. ADMIN only.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.utils.schemas import RestaurantCreate
from rest_api.routers._common import get_user_id, require_admin
from rest_api.services.domain import RestaurantService
from rest_api.services.domain.restaurant_service import restaurant_output


router = APIRouter(tags=["admin-restaurants"])


@router.get("/restaurants")
def list_restaurants(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> list[dict[str, Any]]:
    """All restaurants, with camelCase mirror fields."""
    restaurants = RestaurantService(db).list_all(include_inactive=include_inactive)
    return [restaurant_output(r) for r in restaurants]


@router.get("/restaurants/{restaurant_id}")
def get_restaurant(
    restaurant_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> dict[str, Any]:
    return restaurant_output(RestaurantService(db).get(restaurant_id))


@router.post("/restaurants", status_code=status.HTTP_201_CREATED)
def create_restaurant(
    body: RestaurantCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> dict[str, Any]:
    """Create a restaurant together with its owner account."""
    changes = ChangeLog()
    restaurant = RestaurantService(db, changes).create(body)
    schedule_changes(background_tasks, changes)
    return restaurant_output(restaurant)


@router.patch("/restaurants/{restaurant_id}")
def update_restaurant(
    restaurant_id: int,
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> dict[str, Any]:
    """Partial update. Accepts snake_case fields or their camelCase mirrors."""
    changes = ChangeLog()
    restaurant = RestaurantService(db, changes).update_from_payload(restaurant_id, payload)
    schedule_changes(background_tasks, changes)
    return restaurant_output(restaurant)


@router.post("/restaurants/{restaurant_id}/toggle")
def toggle_restaurant(
    restaurant_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> dict[str, Any]:
    changes = ChangeLog()
    restaurant = RestaurantService(db, changes).toggle_active(restaurant_id)
    schedule_changes(background_tasks, changes)
    return restaurant_output(restaurant)


@router.delete("/restaurants/{restaurant_id}")
def delete_restaurant(
    restaurant_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_admin),
) -> dict[str, Any]:
    """
    Delete the restaurant and everything it owns in one transaction, then
    try to remove the owner's login. ``owner_deleted`` reports whether the
    second step succeeded.
    """
    changes = ChangeLog()
    result = RestaurantService(db, changes).delete(restaurant_id)
    schedule_changes(background_tasks, changes)
    result["deleted_by"] = get_user_id(user)
    return result
