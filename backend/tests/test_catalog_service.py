"""
Tests for CatalogService: categories, dishes, tables and the customer menu.
"""

from datetime import datetime

import pytest

from rest_api.models import CartItem, Dish
from rest_api.services.domain import CartService, CatalogService, OrderService
from rest_api.services.domain.catalog_service import table_output
from shared.infrastructure.events import ChangeLog
from shared.utils.exceptions import ConflictError, DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.schemas import (
    CategoryInput,
    CategoryUpdate,
    DishInput,
    DishUpdate,
    TableInput,
    TableUpdate,
)


class TestCategories:
    def test_ordered_by_position(self, db_session, seed_restaurant):
        service = CatalogService(db_session)
        service.create_category(seed_restaurant.id, CategoryInput(name="Dolci", order=3))
        service.create_category(seed_restaurant.id, CategoryInput(name="Antipasti", order=1))
        names = [c.name for c in service.list_categories(seed_restaurant.id)]
        assert names == ["Antipasti", "Dolci"]

    def test_update(self, db_session, seed_category):
        category = CatalogService(db_session).update_category(
            seed_category.restaurant_id, seed_category.id, CategoryUpdate(order=9)
        )
        assert category.order == 9
        assert category.name == "Primi"

    def test_delete_uncategorizes_dishes(self, db_session, seed_dishes, seed_category):
        changes = ChangeLog()
        CatalogService(db_session, changes).delete_category(seed_category.restaurant_id, seed_category.id)
        db_session.expire_all()
        assert db_session.get(Dish, seed_dishes[0].id).category_id is None
        assert [(e.table, e.type) for e in changes.events] == [("categories", "DELETE")]

    def test_foreign_category(self, db_session, seed_category, other_restaurant):
        with pytest.raises(NotFoundError):
            CatalogService(db_session).update_category(
                other_restaurant.id, seed_category.id, CategoryUpdate(name="X")
            )


class TestDishes:
    def test_create(self, db_session, seed_category):
        changes = ChangeLog()
        dish = CatalogService(db_session, changes).create_dish(
            seed_category.restaurant_id,
            DishInput(name="Amatriciana", price=11, category_id=seed_category.id),
        )
        assert float(dish.price) == 11
        assert float(dish.vat_rate) == 10
        assert changes.events[0].table == "dishes"

    def test_create_with_foreign_category(self, db_session, seed_category, other_restaurant):
        with pytest.raises(NotFoundError):
            CatalogService(db_session).create_dish(
                other_restaurant.id, DishInput(name="X", price=1, category_id=seed_category.id)
            )

    def test_list_active_only(self, db_session, seed_dishes):
        dishes = CatalogService(db_session).list_dishes(seed_dishes[0].restaurant_id, include_inactive=False)
        assert [d.name for d in dishes] == ["Carbonara", "Tiramisu"]

    def test_update_price(self, db_session, seed_dishes):
        dish = CatalogService(db_session).update_dish(
            seed_dishes[0].restaurant_id, seed_dishes[0].id, DishUpdate(price=13.5)
        )
        assert float(dish.price) == 13.5

    def test_update_rejects_null_name(self, db_session, seed_dishes):
        with pytest.raises(ValidationError):
            CatalogService(db_session).update_dish(
                seed_dishes[0].restaurant_id, seed_dishes[0].id, DishUpdate(name=None)
            )

    def test_delete_drops_cart_lines(self, db_session, seed_dishes, open_session):
        db_session.add(CartItem(session_id=open_session.id, dish_id=seed_dishes[1].id, quantity=2))
        db_session.commit()
        changes = ChangeLog()

        CatalogService(db_session, changes).delete_dish(seed_dishes[1].restaurant_id, seed_dishes[1].id)

        assert db_session.get(Dish, seed_dishes[1].id) is None
        assert [(e.table, e.type) for e in changes.events] == [
            ("cart_items", "DELETE"),
            ("dishes", "DELETE"),
        ]

    def test_ordered_dish_cannot_be_deleted(self, db_session, seed_dishes, open_session):
        CartService(db_session).add_item(open_session.id, seed_dishes[0].id, 1)
        OrderService(db_session).submit(open_session.id)
        with pytest.raises(ConflictError):
            CatalogService(db_session).delete_dish(seed_dishes[0].restaurant_id, seed_dishes[0].id)


class TestTables:
    def test_create_gets_token_and_qr(self, db_session, seed_restaurant):
        table = CatalogService(db_session).create_table(seed_restaurant.id, TableInput(number="12"))
        out = table_output(table)
        assert table.token
        assert out.qr_url.endswith(f"/table/{table.token}")
        assert out.seats == 4

    def test_duplicate_number(self, db_session, seed_table):
        with pytest.raises(DuplicateEntityError):
            CatalogService(db_session).create_table(seed_table.restaurant_id, TableInput(number="7"))

    def test_same_number_in_other_restaurant(self, db_session, seed_table, other_restaurant):
        table = CatalogService(db_session).create_table(other_restaurant.id, TableInput(number="7"))
        assert table.restaurant_id == other_restaurant.id

    def test_rename_to_taken_number(self, db_session, seed_table):
        service = CatalogService(db_session)
        other = service.create_table(seed_table.restaurant_id, TableInput(number="8"))
        with pytest.raises(DuplicateEntityError):
            service.update_table(seed_table.restaurant_id, other.id, TableUpdate(number="7"))

    def test_regenerate_token(self, db_session, seed_table):
        old_token = seed_table.token
        table = CatalogService(db_session).regenerate_token(seed_table.restaurant_id, seed_table.id)
        assert table.token != old_token
        with pytest.raises(NotFoundError):
            CatalogService(db_session).get_table_by_token(old_token)

    def test_inactive_table_not_found_by_token(self, db_session, seed_table):
        service = CatalogService(db_session)
        service.update_table(seed_table.restaurant_id, seed_table.id, TableUpdate(is_active=False))
        with pytest.raises(NotFoundError):
            service.get_table_by_token(seed_table.token)

    def test_table_with_sessions_cannot_be_deleted(self, db_session, open_session):
        with pytest.raises(ConflictError):
            CatalogService(db_session).delete_table(open_session.restaurant_id, open_session.table_id)

    def test_delete_unused_table(self, db_session, seed_table):
        CatalogService(db_session).delete_table(seed_table.restaurant_id, seed_table.id)
        with pytest.raises(NotFoundError):
            CatalogService(db_session).get_table(seed_table.restaurant_id, seed_table.id)


class TestMenu:
    def test_groups_active_dishes(self, db_session, seed_dishes):
        menu = CatalogService(db_session).build_menu(seed_dishes[0].restaurant_id)
        assert menu.restaurant_name == "Trattoria Test"
        assert [c.name for c in menu.categories] == ["Primi"]
        assert [d.name for d in menu.categories[0].dishes] == ["Carbonara", "Tiramisu"]
        assert menu.uncategorized == []
        assert menu.coperto.enabled is False
        assert menu.ayce.enabled is False

    def test_weekly_coperto_applies(self, db_session, seed_restaurant, seed_dishes):
        seed_restaurant.weekly_coperto = {
            "enabled": True,
            "defaultPrice": 2,
            "useWeeklySchedule": True,
            "schedule": {"monday": {"lunch": {"enabled": True, "price": 1.5}}},
        }
        db_session.commit()
        menu = CatalogService(db_session).build_menu(seed_restaurant.id, now=datetime(2024, 1, 1, 12, 30))
        assert menu.coperto.enabled is True
        assert menu.coperto.price == 1.5

    def test_missing_restaurant(self, db_session):
        with pytest.raises(NotFoundError):
            CatalogService(db_session).build_menu(404)
