"""
Catalog Service.

Owner-side CRUD for categories, dishes and tables, plus the customer menu.

Usage:
    service = CatalogService(db, changes)
    categories = service.list_categories(restaurant_id)
    menu = service.build_menu(restaurant_id)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from rest_api.models import CartItem, Category, Dish, OrderItem, Restaurant, Table, TableSession, new_table_token
from rest_api.services.domain.custom_menu_service import CustomMenuService
from rest_api.services.domain.pricing import current_ayce, current_coperto, is_restaurant_open
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, CATEGORIES, DISHES, TABLES, CART_ITEMS, row_snapshot
from shared.utils.exceptions import ConflictError, DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.schemas import (
    ActiveMenuOutput,
    AyceOutput,
    CategoryInput,
    CategoryOutput,
    CategoryUpdate,
    CopertoOutput,
    DishInput,
    DishOutput,
    DishUpdate,
    MenuCategoryOutput,
    MenuOutput,
    TableInput,
    TableOutput,
    TableUpdate,
)

logger = get_logger(__name__)


def table_qr_url(table: Table) -> str:
    """Link encoded in the table's QR code."""
    return f"{settings.public_menu_url.rstrip('/')}/table/{table.token}"


def category_output(category: Category) -> CategoryOutput:
    return CategoryOutput(
        id=category.id,
        restaurant_id=category.restaurant_id,
        name=category.name,
        order=category.order,
    )


def dish_output(dish: Dish) -> DishOutput:
    return DishOutput(
        id=dish.id,
        restaurant_id=dish.restaurant_id,
        category_id=dish.category_id,
        name=dish.name,
        description=dish.description,
        price=float(dish.price),
        vat_rate=float(dish.vat_rate),
        is_active=dish.is_active,
        image_url=dish.image_url,
    )


def table_output(table: Table) -> TableOutput:
    return TableOutput(
        id=table.id,
        restaurant_id=table.restaurant_id,
        number=table.number,
        seats=table.seats,
        is_active=table.is_active,
        token=table.token,
        qr_url=table_qr_url(table),
    )


class CatalogService:
    """
    Service for a restaurant's menu and floor plan.

    Business rules:
    - Everything is scoped by restaurant_id; foreign ids are 404
    - Dishes already ordered cannot be deleted, only deactivated
    - Tables with sessions cannot be deleted, only deactivated
    - Table numbers are unique within a restaurant
    """

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories(self, restaurant_id: int) -> list[Category]:
        return list(
            self._db.execute(
                select(Category)
                .where(Category.restaurant_id == restaurant_id)
                .order_by(Category.order, Category.id)
            ).scalars().all()
        )

    def _get_category(self, restaurant_id: int, category_id: int) -> Category:
        category = self._db.scalar(
            select(Category).where(
                Category.id == category_id, Category.restaurant_id == restaurant_id
            )
        )
        if not category:
            raise NotFoundError("Category", category_id, restaurant_id=restaurant_id)
        return category

    def create_category(self, restaurant_id: int, data: CategoryInput) -> Category:
        category = Category(restaurant_id=restaurant_id, name=data.name, order=data.order)
        self._db.add(category)
        safe_commit(self._db)
        self._db.refresh(category)
        self._changes.inserted(category)
        return category

    def update_category(self, restaurant_id: int, category_id: int, data: CategoryUpdate) -> Category:
        category = self._get_category(restaurant_id, category_id)
        old = row_snapshot(category)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(category, field, value)
        safe_commit(self._db)
        self._changes.updated(category, old)
        return category

    def delete_category(self, restaurant_id: int, category_id: int) -> None:
        """Delete a category. Its dishes stay on the menu, uncategorized."""
        category = self._get_category(restaurant_id, category_id)
        old = row_snapshot(category)
        self._db.execute(
            update(Dish).where(Dish.category_id == category_id).values(category_id=None)
        )
        self._db.delete(category)
        safe_commit(self._db)
        self._changes.deleted(CATEGORIES, old)

    # =========================================================================
    # Dishes
    # =========================================================================

    def list_dishes(self, restaurant_id: int, include_inactive: bool = True) -> list[Dish]:
        query = select(Dish).where(Dish.restaurant_id == restaurant_id)
        if not include_inactive:
            query = query.where(Dish.is_active.is_(True))
        return list(self._db.execute(query.order_by(Dish.name, Dish.id)).scalars().all())

    def _get_dish(self, restaurant_id: int, dish_id: int) -> Dish:
        dish = self._db.scalar(
            select(Dish).where(Dish.id == dish_id, Dish.restaurant_id == restaurant_id)
        )
        if not dish:
            raise NotFoundError("Dish", dish_id, restaurant_id=restaurant_id)
        return dish

    def _check_category(self, restaurant_id: int, category_id: int | None) -> None:
        if category_id is not None:
            self._get_category(restaurant_id, category_id)

    def create_dish(self, restaurant_id: int, data: DishInput) -> Dish:
        self._check_category(restaurant_id, data.category_id)
        dish = Dish(restaurant_id=restaurant_id, **data.model_dump())
        self._db.add(dish)
        safe_commit(self._db)
        self._db.refresh(dish)
        self._changes.inserted(dish)
        logger.info("Dish created", dish_id=dish.id, restaurant_id=restaurant_id)
        return dish

    def update_dish(self, restaurant_id: int, dish_id: int, data: DishUpdate) -> Dish:
        dish = self._get_dish(restaurant_id, dish_id)
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            self._check_category(restaurant_id, changes["category_id"])
        for field in ("name", "price", "vat_rate", "is_active"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        old = row_snapshot(dish)
        for field, value in changes.items():
            setattr(dish, field, value)
        safe_commit(self._db)
        self._db.refresh(dish)
        self._changes.updated(dish, old)
        return dish

    def delete_dish(self, restaurant_id: int, dish_id: int) -> None:
        """Delete a dish that was never ordered. Pending cart lines go with it."""
        dish = self._get_dish(restaurant_id, dish_id)
        ordered = self._db.scalar(
            select(func.count(OrderItem.id)).where(OrderItem.dish_id == dish_id)
        )
        if ordered:
            raise ConflictError("Dish has been ordered; deactivate it instead")

        old = row_snapshot(dish)
        cart_lines = self._db.execute(
            select(CartItem).where(CartItem.dish_id == dish_id)
        ).scalars().all()
        cart_old = [row_snapshot(line) for line in cart_lines]
        for line in cart_lines:
            self._db.delete(line)
        CustomMenuService(self._db).forget_dish(dish_id)
        self._db.delete(dish)
        safe_commit(self._db)

        for line_old in cart_old:
            self._changes.deleted(CART_ITEMS, line_old)
        self._changes.deleted(DISHES, old)

    # =========================================================================
    # Tables
    # =========================================================================

    def list_tables(self, restaurant_id: int) -> list[Table]:
        return list(
            self._db.execute(
                select(Table).where(Table.restaurant_id == restaurant_id).order_by(Table.id)
            ).scalars().all()
        )

    def get_table(self, restaurant_id: int, table_id: int) -> Table:
        table = self._db.scalar(
            select(Table).where(Table.id == table_id, Table.restaurant_id == restaurant_id)
        )
        if not table:
            raise NotFoundError("Table", table_id, restaurant_id=restaurant_id)
        return table

    def get_table_by_token(self, token: str) -> Table:
        table = self._db.scalar(
            select(Table).where(Table.token == token, Table.is_active.is_(True))
        )
        if not table:
            raise NotFoundError("Table")
        return table

    def _check_number_free(self, restaurant_id: int, number: str, exclude_id: int | None = None) -> None:
        query = select(Table.id).where(
            Table.restaurant_id == restaurant_id, Table.number == number
        )
        if exclude_id is not None:
            query = query.where(Table.id != exclude_id)
        if self._db.scalar(query):
            raise DuplicateEntityError("Table", number)

    def create_table(self, restaurant_id: int, data: TableInput) -> Table:
        self._check_number_free(restaurant_id, data.number)
        table = Table(restaurant_id=restaurant_id, **data.model_dump())
        self._db.add(table)
        safe_commit(self._db)
        self._db.refresh(table)
        self._changes.inserted(table)
        logger.info("Table created", table_id=table.id, restaurant_id=restaurant_id)
        return table

    def update_table(self, restaurant_id: int, table_id: int, data: TableUpdate) -> Table:
        table = self.get_table(restaurant_id, table_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "number" in changes:
            self._check_number_free(restaurant_id, changes["number"], exclude_id=table_id)
        old = row_snapshot(table)
        for field, value in changes.items():
            setattr(table, field, value)
        safe_commit(self._db)
        self._changes.updated(table, old)
        return table

    def regenerate_token(self, restaurant_id: int, table_id: int) -> Table:
        """New QR token: previously printed codes stop working."""
        table = self.get_table(restaurant_id, table_id)
        old = row_snapshot(table)
        table.token = new_table_token()
        safe_commit(self._db)
        self._changes.updated(table, old)
        logger.info("Table token regenerated", table_id=table_id)
        return table

    def delete_table(self, restaurant_id: int, table_id: int) -> None:
        table = self.get_table(restaurant_id, table_id)
        has_sessions = self._db.scalar(
            select(func.count(TableSession.id)).where(TableSession.table_id == table_id)
        )
        if has_sessions:
            raise ConflictError("Table has session history; deactivate it instead")
        old = row_snapshot(table)
        self._db.delete(table)
        safe_commit(self._db)
        self._changes.deleted(TABLES, old)

    # =========================================================================
    # Customer menu
    # =========================================================================

    def build_menu(self, restaurant_id: int, now: datetime | None = None) -> MenuOutput:
        """
        Active dishes grouped by category, with the prices in force at ``now``.

        While a custom menu is in force only its dishes are listed.
        """
        restaurant = self._db.get(Restaurant, restaurant_id)
        if not restaurant:
            raise NotFoundError("Restaurant", restaurant_id)

        dishes = self.list_dishes(restaurant_id, include_inactive=False)
        custom_menu = CustomMenuService(self._db).active_menu(restaurant, now)
        if custom_menu is not None:
            allowed = set(custom_menu.dish_ids)
            dishes = [dish for dish in dishes if dish.id in allowed]
        by_category: dict[int | None, list[DishOutput]] = {}
        for dish in dishes:
            by_category.setdefault(dish.category_id, []).append(dish_output(dish))

        categories = [
            MenuCategoryOutput(
                id=category.id,
                name=category.name,
                order=category.order,
                dishes=by_category.get(category.id, []),
            )
            for category in self.list_categories(restaurant_id)
        ]
        coperto = current_coperto(restaurant, now)
        ayce = current_ayce(restaurant, now)

        return MenuOutput(
            restaurant_id=restaurant.id,
            restaurant_name=restaurant.name,
            logo_url=restaurant.logo_url,
            categories=categories,
            uncategorized=by_category.get(None, []),
            coperto=CopertoOutput(enabled=coperto.enabled, price=float(coperto.price)),
            ayce=AyceOutput(
                enabled=ayce.enabled, price=float(ayce.price), max_orders=ayce.max_orders
            ),
            restaurant_open=is_restaurant_open(restaurant, now),
            custom_menu=(
                ActiveMenuOutput(id=custom_menu.id, name=custom_menu.name)
                if custom_menu is not None
                else None
            ),
        )
