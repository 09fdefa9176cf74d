"""
Menu management endpoints: categories, dishes and tables of the caller's
restaurant. OWNER (own restaurant) or ADMIN (any, via ``restaurant_id``).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.utils.schemas import (
    CategoryInput,
    CategoryOutput,
    CategoryUpdate,
    DishInput,
    DishOutput,
    DishUpdate,
    TableInput,
    TableOutput,
    TableUpdate,
)
from rest_api.routers._common import require_management, resolve_restaurant_id
from rest_api.services.domain import CatalogService
from rest_api.services.domain.catalog_service import category_output, dish_output, table_output


router = APIRouter(tags=["admin-catalog"])


# =============================================================================
# Categories
# =============================================================================


@router.get("/categories", response_model=list[CategoryOutput])
def list_categories(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[CategoryOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return [category_output(c) for c in CatalogService(db).list_categories(restaurant_id)]


@router.post("/categories", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CategoryOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    category = CatalogService(db, changes).create_category(restaurant_id, body)
    schedule_changes(background_tasks, changes)
    return category_output(category)


@router.patch("/categories/{category_id}", response_model=CategoryOutput)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> CategoryOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    category = CatalogService(db, changes).update_category(restaurant_id, category_id, body)
    schedule_changes(background_tasks, changes)
    return category_output(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> None:
    """Delete a category. Its dishes become uncategorized."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    CatalogService(db, changes).delete_category(restaurant_id, category_id)
    schedule_changes(background_tasks, changes)


# =============================================================================
# Dishes
# =============================================================================


@router.get("/dishes", response_model=list[DishOutput])
def list_dishes(
    restaurant_id: int | None = None,
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[DishOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    dishes = CatalogService(db).list_dishes(restaurant_id, include_inactive=include_inactive)
    return [dish_output(d) for d in dishes]


@router.post("/dishes", response_model=DishOutput, status_code=status.HTTP_201_CREATED)
def create_dish(
    body: DishInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> DishOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    dish = CatalogService(db, changes).create_dish(restaurant_id, body)
    schedule_changes(background_tasks, changes)
    return dish_output(dish)


@router.patch("/dishes/{dish_id}", response_model=DishOutput)
def update_dish(
    dish_id: int,
    body: DishUpdate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> DishOutput:
    """Partial update. Set ``is_active`` false to take a dish off the menu."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    dish = CatalogService(db, changes).update_dish(restaurant_id, dish_id, body)
    schedule_changes(background_tasks, changes)
    return dish_output(dish)


@router.delete("/dishes/{dish_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dish(
    dish_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> None:
    """Delete a dish nobody has ordered yet. 409 otherwise."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    CatalogService(db, changes).delete_dish(restaurant_id, dish_id)
    schedule_changes(background_tasks, changes)


# =============================================================================
# Tables
# =============================================================================


@router.get("/tables", response_model=list[TableOutput])
def list_tables(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[TableOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return [table_output(t) for t in CatalogService(db).list_tables(restaurant_id)]


@router.post("/tables", response_model=TableOutput, status_code=status.HTTP_201_CREATED)
def create_table(
    body: TableInput,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> TableOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    table = CatalogService(db, changes).create_table(restaurant_id, body)
    schedule_changes(background_tasks, changes)
    return table_output(table)


@router.patch("/tables/{table_id}", response_model=TableOutput)
def update_table(
    table_id: int,
    body: TableUpdate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> TableOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    table = CatalogService(db, changes).update_table(restaurant_id, table_id, body)
    schedule_changes(background_tasks, changes)
    return table_output(table)


@router.post("/tables/{table_id}/regenerate-token", response_model=TableOutput)
def regenerate_table_token(
    table_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> TableOutput:
    """Issue a new QR token. Printed codes for the old token stop working."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    table = CatalogService(db, changes).regenerate_token(restaurant_id, table_id)
    schedule_changes(background_tasks, changes)
    return table_output(table)


@router.delete("/tables/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_table(
    table_id: int,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> None:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    CatalogService(db, changes).delete_table(restaurant_id, table_id)
    schedule_changes(background_tasks, changes)
