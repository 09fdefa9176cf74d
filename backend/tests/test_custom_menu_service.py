"""
Tests for CustomMenuService: menu CRUD, day/meal schedules, manual apply and
how the menu in force narrows the customer menu and the cart.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rest_api.models import CustomMenu, CustomMenuDish, CustomMenuSchedule, Dish
from rest_api.services.domain import CartService, CatalogService, CustomMenuService, RestaurantService
from rest_api.services.domain.cart_service import DishNotAvailableError
from shared.config.settings import settings
from shared.infrastructure.events import ChangeLog
from shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.schemas import CustomMenuInput, CustomMenuScheduleInput, CustomMenuUpdate

# 2024-01-01 is a Monday
MONDAY_LUNCH = datetime(2024, 1, 1, 12, 30)
MONDAY_DINNER = datetime(2024, 1, 1, 20, 0)
MONDAY_MORNING = datetime(2024, 1, 1, 10, 0)
TUESDAY_LUNCH = datetime(2024, 1, 2, 12, 30)


def _menu(db_session, restaurant_id, name="Specials", dish_ids=(), schedules=()):
    service = CustomMenuService(db_session)
    menu = service.create_menu(restaurant_id, CustomMenuInput(name=name, dish_ids=list(dish_ids)))
    for day, meal in schedules:
        service.add_schedule(
            restaurant_id, menu.id, CustomMenuScheduleInput(day_of_week=day, meal_type=meal)
        )
    return menu


def _count(db_session, model):
    return db_session.scalar(select(func.count()).select_from(model))


class TestMenus:
    def test_create_with_dishes(self, db_session, seed_dishes):
        changes = ChangeLog()
        menu = CustomMenuService(db_session, changes).create_menu(
            seed_dishes[0].restaurant_id,
            CustomMenuInput(name=" Lunch ", dish_ids=[seed_dishes[1].id, seed_dishes[0].id, seed_dishes[1].id]),
        )
        assert menu.name == "Lunch"
        assert menu.is_active is False
        assert menu.dish_ids == sorted([seed_dishes[0].id, seed_dishes[1].id])
        assert [(e.table, e.type) for e in changes.events] == [("custom_menus", "INSERT")]

    def test_foreign_dish_rejected(self, db_session, seed_restaurant, other_restaurant):
        foreign = Dish(restaurant_id=other_restaurant.id, name="Paella", price=Decimal("14"), is_active=True)
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(ValidationError):
            CustomMenuService(db_session).create_menu(
                seed_restaurant.id, CustomMenuInput(name="Mixed", dish_ids=[foreign.id])
            )
        assert _count(db_session, CustomMenu) == 0

    def test_set_dishes_replaces(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        menu = _menu(db_session, restaurant_id, dish_ids=[seed_dishes[0].id])
        changes = ChangeLog()

        menu = CustomMenuService(db_session, changes).set_dishes(
            restaurant_id, menu.id, [seed_dishes[1].id, seed_dishes[2].id]
        )

        assert menu.dish_ids == sorted([seed_dishes[1].id, seed_dishes[2].id])
        assert _count(db_session, CustomMenuDish) == 2
        assert [(e.table, e.type) for e in changes.events] == [("custom_menus", "UPDATE")]

    def test_update_name(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id)
        updated = CustomMenuService(db_session).update_menu(
            seed_restaurant.id, menu.id, CustomMenuUpdate(description="Weekdays only")
        )
        assert updated.name == "Specials"
        assert updated.description == "Weekdays only"

    def test_delete_takes_dishes_and_schedules(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        menu = _menu(db_session, restaurant_id, dish_ids=[seed_dishes[0].id], schedules=[(0, "lunch")])
        changes = ChangeLog()

        CustomMenuService(db_session, changes).delete_menu(restaurant_id, menu.id)

        assert _count(db_session, CustomMenu) == 0
        assert _count(db_session, CustomMenuDish) == 0
        assert _count(db_session, CustomMenuSchedule) == 0
        assert [(e.table, e.type) for e in changes.events] == [("custom_menus", "DELETE")]

    def test_other_restaurant_cannot_see_menu(self, db_session, seed_restaurant, other_restaurant):
        menu = _menu(db_session, seed_restaurant.id)
        with pytest.raises(NotFoundError):
            CustomMenuService(db_session).get_menu(other_restaurant.id, menu.id)


class TestSchedules:
    def test_duplicate_slot(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id, schedules=[(0, "lunch")])
        with pytest.raises(DuplicateEntityError):
            CustomMenuService(db_session).add_schedule(
                seed_restaurant.id, menu.id, CustomMenuScheduleInput(day_of_week=0, meal_type="lunch")
            )

    def test_day_and_meal_must_match(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id, schedules=[(0, "lunch")])
        service = CustomMenuService(db_session)

        assert service.active_menu(seed_restaurant, MONDAY_LUNCH).id == menu.id
        assert service.active_menu(seed_restaurant, MONDAY_DINNER) is None
        assert service.active_menu(seed_restaurant, MONDAY_MORNING) is None
        assert service.active_menu(seed_restaurant, TUESDAY_LUNCH) is None

    def test_every_day_all_day(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id, schedules=[(None, "all")])
        service = CustomMenuService(db_session)

        for now in (MONDAY_MORNING, MONDAY_LUNCH, MONDAY_DINNER, TUESDAY_LUNCH):
            assert service.active_menu(seed_restaurant, now).id == menu.id

    def test_meal_beats_whole_day(self, db_session, seed_restaurant):
        whole_day = _menu(db_session, seed_restaurant.id, name="Classics", schedules=[(None, "all")])
        dinner = _menu(db_session, seed_restaurant.id, name="Evening", schedules=[(None, "dinner")])
        service = CustomMenuService(db_session)

        assert service.active_menu(seed_restaurant, MONDAY_DINNER).id == dinner.id
        assert service.active_menu(seed_restaurant, MONDAY_LUNCH).id == whole_day.id

    def test_specific_day_beats_every_day(self, db_session, seed_restaurant):
        _menu(db_session, seed_restaurant.id, name="Weekday", schedules=[(None, "lunch")])
        monday = _menu(db_session, seed_restaurant.id, name="Monday", schedules=[(0, "lunch")])

        assert CustomMenuService(db_session).active_menu(seed_restaurant, MONDAY_LUNCH).id == monday.id

    def test_paused_schedule_ignored(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id, schedules=[(0, "lunch")])
        menu.schedules[0].is_active = False
        db_session.commit()

        assert CustomMenuService(db_session).active_menu(seed_restaurant, MONDAY_LUNCH) is None

    def test_delete_schedule(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id, schedules=[(0, "lunch")])
        service = CustomMenuService(db_session)

        service.delete_schedule(seed_restaurant.id, menu.id, menu.schedules[0].id)

        assert _count(db_session, CustomMenuSchedule) == 0
        assert service.active_menu(seed_restaurant, MONDAY_LUNCH) is None

    def test_unknown_schedule(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id)
        with pytest.raises(NotFoundError):
            CustomMenuService(db_session).delete_schedule(seed_restaurant.id, menu.id, 999)


class TestManualApply:
    def test_apply_releases_others(self, db_session, seed_restaurant):
        first = _menu(db_session, seed_restaurant.id, name="First")
        second = _menu(db_session, seed_restaurant.id, name="Second")
        service = CustomMenuService(db_session)
        service.apply_menu(seed_restaurant.id, first.id, now=MONDAY_LUNCH)

        changes = ChangeLog()
        CustomMenuService(db_session, changes).apply_menu(seed_restaurant.id, second.id, now=MONDAY_LUNCH)

        db_session.expire_all()
        assert db_session.get(CustomMenu, first.id).is_active is False
        assert db_session.get(CustomMenu, first.id).activated_at is None
        assert db_session.get(CustomMenu, second.id).is_active is True
        assert [e.record["id"] for e in changes.events] == [first.id, second.id]
        assert service.active_menu(seed_restaurant, MONDAY_LUNCH).id == second.id

    def test_applied_menu_expires(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id)
        service = CustomMenuService(db_session)
        service.apply_menu(seed_restaurant.id, menu.id, now=MONDAY_MORNING)

        hours = settings.custom_menu_manual_hours
        assert service.active_menu(seed_restaurant, MONDAY_MORNING + timedelta(hours=hours - 1)).id == menu.id
        assert service.active_menu(seed_restaurant, MONDAY_MORNING + timedelta(hours=hours)) is None

    def test_schedule_wins_over_applied(self, db_session, seed_restaurant):
        applied = _menu(db_session, seed_restaurant.id, name="Applied")
        scheduled = _menu(db_session, seed_restaurant.id, name="Scheduled", schedules=[(0, "lunch")])
        service = CustomMenuService(db_session)
        service.apply_menu(seed_restaurant.id, applied.id, now=MONDAY_MORNING)

        assert service.active_menu(seed_restaurant, MONDAY_LUNCH).id == scheduled.id
        assert service.active_menu(seed_restaurant, MONDAY_DINNER).id == applied.id

    def test_reset_to_full_menu(self, db_session, seed_restaurant):
        menu = _menu(db_session, seed_restaurant.id)
        service = CustomMenuService(db_session)
        service.apply_menu(seed_restaurant.id, menu.id, now=MONDAY_LUNCH)

        assert service.reset_to_full_menu(seed_restaurant.id) == 1
        assert service.reset_to_full_menu(seed_restaurant.id) == 0
        assert service.active_menu(seed_restaurant, MONDAY_LUNCH) is None


class TestMenuInForce:
    def test_customer_menu_lists_only_menu_dishes(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        custom = _menu(
            db_session, restaurant_id, name="Desserts", dish_ids=[seed_dishes[1].id], schedules=[(0, "lunch")]
        )

        menu = CatalogService(db_session).build_menu(restaurant_id, now=MONDAY_LUNCH)
        assert [d.name for d in menu.categories[0].dishes] == ["Tiramisu"]
        assert menu.custom_menu.id == custom.id
        assert menu.custom_menu.name == "Desserts"

        full = CatalogService(db_session).build_menu(restaurant_id, now=MONDAY_DINNER)
        assert [d.name for d in full.categories[0].dishes] == ["Carbonara", "Tiramisu"]
        assert full.custom_menu is None

    def test_inactive_dish_stays_hidden(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        _menu(db_session, restaurant_id, dish_ids=[seed_dishes[2].id], schedules=[(None, "all")])

        menu = CatalogService(db_session).build_menu(restaurant_id, now=MONDAY_LUNCH)
        assert menu.uncategorized == []
        assert menu.categories[0].dishes == []

    def test_cart_rejects_dish_off_menu(self, db_session, open_session, seed_dishes):
        menu = _menu(db_session, open_session.restaurant_id, dish_ids=[seed_dishes[1].id])
        CustomMenuService(db_session).apply_menu(open_session.restaurant_id, menu.id)
        service = CartService(db_session)

        with pytest.raises(DishNotAvailableError):
            service.add_item(open_session.id, seed_dishes[0].id, 1)
        line = service.add_item(open_session.id, seed_dishes[1].id, 1)
        assert line.dish_id == seed_dishes[1].id

    def test_deleted_dish_leaves_menus(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        menu = _menu(db_session, restaurant_id, dish_ids=[seed_dishes[0].id, seed_dishes[1].id])

        CatalogService(db_session).delete_dish(restaurant_id, seed_dishes[0].id)

        db_session.expire_all()
        assert db_session.get(CustomMenu, menu.id).dish_ids == [seed_dishes[1].id]

    def test_restaurant_delete_takes_menus(self, db_session, seed_dishes, other_restaurant):
        restaurant_id = seed_dishes[0].restaurant_id
        _menu(db_session, restaurant_id, dish_ids=[seed_dishes[0].id], schedules=[(None, "all")])
        kept = _menu(db_session, other_restaurant.id, name="Elsewhere", schedules=[(None, "all")])

        RestaurantService(db_session).delete(restaurant_id)

        db_session.expire_all()
        assert db_session.scalars(select(CustomMenu)).all() == [db_session.get(CustomMenu, kept.id)]
        assert _count(db_session, CustomMenuDish) == 0
        assert _count(db_session, CustomMenuSchedule) == 1
