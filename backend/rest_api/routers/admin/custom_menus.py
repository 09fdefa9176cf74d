"""
Custom menu endpoints: named dish subsets of the caller's restaurant, their
day/meal schedules, and applying one by hand. OWNER (own restaurant) or
ADMIN (any, via ``restaurant_id``).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.utils.schemas import (
    CustomMenuDishesInput,
    CustomMenuInput,
    CustomMenuOutput,
    CustomMenuScheduleInput,
    CustomMenuScheduleOutput,
    CustomMenuUpdate,
)
from rest_api.routers._common import require_management, resolve_restaurant_id
from rest_api.services.domain import CustomMenuService
from rest_api.services.domain.custom_menu_service import custom_menu_output, schedule_output


router = APIRouter(tags=["admin-custom-menus"])


@router.get("/custom-menus", response_model=list[CustomMenuOutput])
def list_custom_menus(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[CustomMenuOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return [custom_menu_output(m) for m in CustomMenuService(db).list_menus(restaurant_id)]


@router.post("/custom-menus", response_model=CustomMenuOutput, status_code=status.HTTP_201_CREATED)
def create_custom_menu(
    body: CustomMenuInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CustomMenuOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    menu = CustomMenuService(db, changes).create_menu(restaurant_id, body)
    schedule_changes(background_tasks, changes)
    return custom_menu_output(menu)


@router.post("/custom-menus/reset")
def reset_to_full_menu(
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> dict:
    """Release the menu applied by hand. Scheduled menus keep their slots."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    released = CustomMenuService(db, changes).reset_to_full_menu(restaurant_id)
    schedule_changes(background_tasks, changes)
    return {"released": released}


@router.patch("/custom-menus/{menu_id}", response_model=CustomMenuOutput)
def update_custom_menu(
    menu_id: int,
    body: CustomMenuUpdate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CustomMenuOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    menu = CustomMenuService(db, changes).update_menu(restaurant_id, menu_id, body)
    schedule_changes(background_tasks, changes)
    return custom_menu_output(menu)


@router.delete("/custom-menus/{menu_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_custom_menu(
    menu_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> None:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    CustomMenuService(db, changes).delete_menu(restaurant_id, menu_id)
    schedule_changes(background_tasks, changes)


@router.put("/custom-menus/{menu_id}/dishes", response_model=CustomMenuOutput)
def set_custom_menu_dishes(
    menu_id: int,
    body: CustomMenuDishesInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CustomMenuOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    menu = CustomMenuService(db, changes).set_dishes(restaurant_id, menu_id, body.dish_ids)
    schedule_changes(background_tasks, changes)
    return custom_menu_output(menu)


@router.post(
    "/custom-menus/{menu_id}/schedules",
    response_model=CustomMenuScheduleOutput,
    status_code=status.HTTP_201_CREATED,
)
def add_custom_menu_schedule(
    menu_id: int,
    body: CustomMenuScheduleInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CustomMenuScheduleOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    schedule = CustomMenuService(db, changes).add_schedule(restaurant_id, menu_id, body)
    schedule_changes(background_tasks, changes)
    return schedule_output(schedule)


@router.delete(
    "/custom-menus/{menu_id}/schedules/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_custom_menu_schedule(
    menu_id: int,
    schedule_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> None:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    CustomMenuService(db, changes).delete_schedule(restaurant_id, menu_id, schedule_id)
    schedule_changes(background_tasks, changes)


@router.post("/custom-menus/{menu_id}/apply", response_model=CustomMenuOutput)
def apply_custom_menu(
    menu_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CustomMenuOutput:
    """Put a menu in force now. Any other applied menu is released."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    menu = CustomMenuService(db, changes).apply_menu(restaurant_id, menu_id)
    schedule_changes(background_tasks, changes)
    return custom_menu_output(menu)
