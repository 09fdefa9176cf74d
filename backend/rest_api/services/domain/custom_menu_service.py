"""
Custom Menu Service.

Owners keep named subsets of their dishes ("Lunch specials", "Sunday brunch")
and put one in force either by hand or with day/meal schedules. While a
custom menu is in force the customer menu shows only its dishes, and only
those can be added to a cart.

Which menu is in force at ``now``:
1. a schedule of the current weekday (or of every day) for the current meal
   period wins, then one for the whole day; a specific day beats every day;
2. otherwise the menu applied by hand, for ``custom_menu_manual_hours``
   after it was applied;
3. otherwise none: the full menu.

Usage:
    service = CustomMenuService(db, changes)
    menu = service.create_menu(restaurant_id, CustomMenuInput(name="Lunch", dish_ids=[1, 2]))
    service.add_schedule(restaurant_id, menu.id, CustomMenuScheduleInput(meal_type="lunch"))
    allowed = service.available_dish_ids(restaurant_id)
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import CustomMenu, CustomMenuDish, CustomMenuSchedule, Dish, Restaurant
from rest_api.services.domain.pricing import meal_period
from shared.config.constants import MealPeriod
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import CUSTOM_MENUS, ChangeLog, row_snapshot
from shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.schemas import (
    CustomMenuInput,
    CustomMenuOutput,
    CustomMenuScheduleInput,
    CustomMenuScheduleOutput,
    CustomMenuUpdate,
)

logger = get_logger(__name__)


def custom_menu_output(menu: CustomMenu) -> CustomMenuOutput:
    return CustomMenuOutput(
        id=menu.id,
        restaurant_id=menu.restaurant_id,
        name=menu.name,
        description=menu.description,
        is_active=menu.is_active,
        activated_at=menu.activated_at,
        dish_ids=menu.dish_ids,
        schedules=[schedule_output(s) for s in menu.schedules],
    )


def schedule_output(schedule: CustomMenuSchedule) -> CustomMenuScheduleOutput:
    return CustomMenuScheduleOutput(
        id=schedule.id,
        day_of_week=schedule.day_of_week,
        meal_type=schedule.meal_type,
        is_active=schedule.is_active,
    )


class CustomMenuService:
    """
    Service for custom menus and their schedules.

    Dish and schedule edits are announced as an UPDATE of their menu row, so
    watchers of ``custom_menus`` refetch the menu.
    """

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    # =========================================================================
    # Menus
    # =========================================================================

    def list_menus(self, restaurant_id: int) -> list[CustomMenu]:
        return list(
            self._db.execute(
                select(CustomMenu)
                .options(selectinload(CustomMenu.dishes), selectinload(CustomMenu.schedules))
                .where(CustomMenu.restaurant_id == restaurant_id)
                .order_by(CustomMenu.name, CustomMenu.id)
            ).scalars().all()
        )

    def get_menu(self, restaurant_id: int, menu_id: int) -> CustomMenu:
        menu = self._db.scalar(
            select(CustomMenu).where(
                CustomMenu.id == menu_id, CustomMenu.restaurant_id == restaurant_id
            )
        )
        if not menu:
            raise NotFoundError("Custom menu", menu_id, restaurant_id=restaurant_id)
        return menu

    def create_menu(self, restaurant_id: int, data: CustomMenuInput) -> CustomMenu:
        dish_ids = self._check_dishes(restaurant_id, data.dish_ids)
        menu = CustomMenu(
            restaurant_id=restaurant_id,
            name=data.name.strip(),
            description=data.description,
            is_active=False,
        )
        menu.dishes = [CustomMenuDish(dish_id=dish_id) for dish_id in dish_ids]
        self._db.add(menu)
        safe_commit(self._db)
        self._db.refresh(menu)
        self._changes.inserted(menu)
        logger.info("Custom menu created", menu_id=menu.id, restaurant_id=restaurant_id, dishes=len(dish_ids))
        return menu

    def update_menu(self, restaurant_id: int, menu_id: int, data: CustomMenuUpdate) -> CustomMenu:
        menu = self.get_menu(restaurant_id, menu_id)
        old = row_snapshot(menu)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None:
                raise ValidationError("name cannot be null")
            menu.name = changes["name"].strip()
        if "description" in changes:
            menu.description = changes["description"]
        safe_commit(self._db)
        self._changes.updated(menu, old)
        return menu

    def delete_menu(self, restaurant_id: int, menu_id: int) -> None:
        """Delete a menu with its dish list and schedules."""
        menu = self.get_menu(restaurant_id, menu_id)
        old = row_snapshot(menu)
        self._db.delete(menu)
        safe_commit(self._db)
        self._changes.deleted(CUSTOM_MENUS, old)

    def set_dishes(self, restaurant_id: int, menu_id: int, dish_ids: list[int]) -> CustomMenu:
        """Replace the menu's dishes. Every dish must belong to the restaurant."""
        menu = self.get_menu(restaurant_id, menu_id)
        wanted = self._check_dishes(restaurant_id, dish_ids)
        old = row_snapshot(menu)

        current = {link.dish_id: link for link in menu.dishes}
        for dish_id, link in current.items():
            if dish_id not in wanted:
                menu.dishes.remove(link)
        for dish_id in wanted:
            if dish_id not in current:
                menu.dishes.append(CustomMenuDish(dish_id=dish_id))
        safe_commit(self._db)
        self._db.refresh(menu)
        self._changes.updated(menu, old)
        return menu

    def _check_dishes(self, restaurant_id: int, dish_ids: list[int]) -> list[int]:
        wanted = sorted(set(dish_ids))
        if not wanted:
            return wanted
        found = set(
            self._db.execute(
                select(Dish.id).where(Dish.id.in_(wanted), Dish.restaurant_id == restaurant_id)
            ).scalars().all()
        )
        unknown = [dish_id for dish_id in wanted if dish_id not in found]
        if unknown:
            raise ValidationError(f"Unknown dishes for this restaurant: {unknown}")
        return wanted

    # =========================================================================
    # Schedules
    # =========================================================================

    def add_schedule(
        self, restaurant_id: int, menu_id: int, data: CustomMenuScheduleInput
    ) -> CustomMenuSchedule:
        menu = self.get_menu(restaurant_id, menu_id)
        for existing in menu.schedules:
            if existing.day_of_week == data.day_of_week and existing.meal_type == data.meal_type:
                raise DuplicateEntityError("Schedule", f"{data.day_of_week}/{data.meal_type}")

        old = row_snapshot(menu)
        schedule = CustomMenuSchedule(
            day_of_week=data.day_of_week, meal_type=data.meal_type, is_active=True
        )
        menu.schedules.append(schedule)
        safe_commit(self._db)
        self._db.refresh(schedule)
        self._changes.updated(menu, old)
        return schedule

    def delete_schedule(self, restaurant_id: int, menu_id: int, schedule_id: int) -> None:
        menu = self.get_menu(restaurant_id, menu_id)
        schedule = next((s for s in menu.schedules if s.id == schedule_id), None)
        if not schedule:
            raise NotFoundError("Schedule", schedule_id, menu_id=menu_id)
        old = row_snapshot(menu)
        menu.schedules.remove(schedule)
        safe_commit(self._db)
        self._changes.updated(menu, old)

    # =========================================================================
    # Manual activation
    # =========================================================================

    def apply_menu(self, restaurant_id: int, menu_id: int, now: datetime | None = None) -> CustomMenu:
        """Put a menu in force by hand. Any other applied menu is released."""
        menu = self.get_menu(restaurant_id, menu_id)
        released = self._release_applied(restaurant_id, keep_id=menu.id)

        old = row_snapshot(menu)
        menu.is_active = True
        menu.activated_at = now or datetime.now()
        safe_commit(self._db)

        for other, other_old in released:
            self._changes.updated(other, other_old)
        self._changes.updated(menu, old)
        logger.info("Custom menu applied", menu_id=menu.id, restaurant_id=restaurant_id)
        return menu

    def reset_to_full_menu(self, restaurant_id: int) -> int:
        """Release the applied menu. Returns how many menus were released."""
        released = self._release_applied(restaurant_id)
        if not released:
            return 0
        safe_commit(self._db)
        for menu, old in released:
            self._changes.updated(menu, old)
        logger.info("Full menu restored", restaurant_id=restaurant_id)
        return len(released)

    def _release_applied(
        self, restaurant_id: int, keep_id: int | None = None
    ) -> list[tuple[CustomMenu, dict]]:
        applied = self._db.execute(
            select(CustomMenu).where(
                CustomMenu.restaurant_id == restaurant_id, CustomMenu.is_active.is_(True)
            )
        ).scalars().all()
        released = []
        for menu in applied:
            if menu.id == keep_id:
                continue
            released.append((menu, row_snapshot(menu)))
            menu.is_active = False
            menu.activated_at = None
        return released

    # =========================================================================
    # Menu in force
    # =========================================================================

    def active_menu(self, restaurant: Restaurant, now: datetime | None = None) -> CustomMenu | None:
        """The custom menu in force at ``now``, or None for the full menu."""
        now = now or datetime.now()
        return self._scheduled_menu(restaurant, now) or self._applied_menu(restaurant.id, now)

    def _scheduled_menu(self, restaurant: Restaurant, now: datetime) -> CustomMenu | None:
        period = meal_period(now, restaurant.lunch_time_start, restaurant.dinner_time_start)
        meal_types = [MealPeriod.ALL_DAY] + ([period] if period else [])

        candidates = self._db.execute(
            select(CustomMenuSchedule)
            .join(CustomMenu)
            .options(selectinload(CustomMenuSchedule.menu))
            .where(
                CustomMenu.restaurant_id == restaurant.id,
                CustomMenuSchedule.is_active.is_(True),
                CustomMenuSchedule.meal_type.in_(meal_types),
                or_(
                    CustomMenuSchedule.day_of_week == now.weekday(),
                    CustomMenuSchedule.day_of_week.is_(None),
                ),
            )
        ).scalars().all()
        if not candidates:
            return None

        best = min(
            candidates,
            key=lambda s: (s.meal_type != period, s.day_of_week is None, s.id),
        )
        return best.menu

    def _applied_menu(self, restaurant_id: int, now: datetime) -> CustomMenu | None:
        menu = self._db.scalar(
            select(CustomMenu)
            .where(CustomMenu.restaurant_id == restaurant_id, CustomMenu.is_active.is_(True))
            .order_by(CustomMenu.activated_at.desc(), CustomMenu.id.desc())
        )
        if not menu or menu.activated_at is None:
            return None
        if now - menu.activated_at >= timedelta(hours=settings.custom_menu_manual_hours):
            return None
        return menu

    def available_dish_ids(self, restaurant_id: int, now: datetime | None = None) -> set[int] | None:
        """Dish ids customers may see and order, or None when the full menu is in force."""
        restaurant = self._db.get(Restaurant, restaurant_id)
        if not restaurant:
            return None
        menu = self.active_menu(restaurant, now)
        if menu is None:
            return None
        return set(menu.dish_ids)

    def forget_dish(self, dish_id: int) -> None:
        """Drop a dish from every menu. Caller commits."""
        self._db.execute(
            CustomMenuDish.__table__.delete().where(CustomMenuDish.dish_id == dish_id)
        )


__all__ = ["CustomMenuService", "custom_menu_output", "schedule_output"]
