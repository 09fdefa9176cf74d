"""
Restaurant Service.

Admin-side tenant management: create a restaurant with its owner account,
update settings (camelCase mirror keys accepted), toggle active, delete.

Usage:
    service = RestaurantService(db, changes)
    restaurant = service.create(data)
    service.update_from_payload(restaurant.id, {"isActive": False})
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import (
    Booking,
    CartItem,
    Category,
    CustomMenu,
    CustomMenuDish,
    CustomMenuSchedule,
    Dish,
    Order,
    OrderItem,
    Restaurant,
    Table,
    TableSession,
    User,
)
from shared.config.constants import Roles
from shared.config.logging import get_logger, mask_email
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, RESTAURANTS, row_snapshot
from shared.security.password import hash_password
from shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.field_mapping import add_mirror_fields, to_storage_fields
from shared.utils.schemas import RestaurantCreate, RestaurantUpdate

logger = get_logger(__name__)


def restaurant_output(restaurant: Restaurant) -> dict[str, Any]:
    """Restaurant row with camelCase mirror fields."""
    return add_mirror_fields(row_snapshot(restaurant))


class RestaurantService:
    """
    Service for restaurant tenants.

    Business rules:
    - The owner account is created before the restaurant and linked both ways
    - Deleting a restaurant removes all of its data atomically; removing the
      owner account afterwards is best-effort
    """

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()
        self._entity_name = "Restaurant"

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_all(self, include_inactive: bool = True) -> list[Restaurant]:
        query = select(Restaurant).order_by(Restaurant.name, Restaurant.id)
        if not include_inactive:
            query = query.where(Restaurant.is_active.is_(True))
        return list(self._db.execute(query).scalars().all())

    def get(self, restaurant_id: int) -> Restaurant:
        restaurant = self._db.get(Restaurant, restaurant_id)
        if not restaurant:
            raise NotFoundError(self._entity_name, restaurant_id)
        return restaurant

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(self, data: RestaurantCreate) -> Restaurant:
        """Create the owner account, then the restaurant it owns. One transaction."""
        email = data.owner.email.lower()
        if self._db.scalar(select(User.id).where(User.email == email)):
            raise DuplicateEntityError("User", email)

        owner = User(
            email=email,
            name=data.owner.name,
            password_hash=hash_password(data.owner.password),
            role=Roles.OWNER,
            is_active=True,
        )
        self._db.add(owner)
        self._db.flush()

        restaurant = Restaurant(
            name=data.name,
            address=data.address,
            phone=data.phone,
            email=data.email,
            logo_url=data.logo_url,
            owner_id=owner.id,
            is_active=True,
            cover_charge_per_person=data.cover_charge_per_person,
            all_you_can_eat=data.all_you_can_eat,
            ayce_price=data.ayce_price,
            ayce_max_orders=data.ayce_max_orders,
        )
        self._db.add(restaurant)
        self._db.flush()
        owner.restaurant_id = restaurant.id

        safe_commit(self._db)
        self._db.refresh(restaurant)
        self._changes.inserted(restaurant)

        logger.info(
            "Restaurant created",
            restaurant_id=restaurant.id,
            owner_id=owner.id,
            owner_email=mask_email(email),
        )
        return restaurant

    def update(self, restaurant_id: int, data: RestaurantUpdate) -> Restaurant:
        """Apply the fields present in ``data``."""
        restaurant = self.get(restaurant_id)
        old = row_snapshot(restaurant)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(restaurant, field, value)

        safe_commit(self._db)
        self._db.refresh(restaurant)
        self._changes.updated(restaurant, old)

        logger.info(
            "Restaurant updated",
            restaurant_id=restaurant_id,
            fields=sorted(data.model_fields_set),
        )
        return restaurant

    def update_from_payload(self, restaurant_id: int, payload: dict[str, Any]) -> Restaurant:
        """
        Update from a raw JSON body. camelCase mirror keys are folded into
        their snake_case columns first; unknown keys are ignored.
        """
        try:
            data = RestaurantUpdate.model_validate(to_storage_fields(payload))
        except PydanticValidationError as e:
            raise ValidationError(str(e.errors()[0].get("msg", "Invalid restaurant data")))
        return self.update(restaurant_id, data)

    def toggle_active(self, restaurant_id: int) -> Restaurant:
        restaurant = self.get(restaurant_id)
        return self.update(restaurant_id, RestaurantUpdate(is_active=not restaurant.is_active))

    def delete(self, restaurant_id: int) -> dict[str, Any]:
        """
        Delete a restaurant and everything that belongs to it.

        All restaurant data goes in one transaction: if any step fails nothing
        is deleted. The owner account is removed afterwards in its own
        transaction; a failure there is logged and the restaurant stays
        deleted.

        Returns:
            {"restaurant_id", "owner_deleted"}
        """
        restaurant = self.get(restaurant_id)
        owner_id = restaurant.owner_id
        old = row_snapshot(restaurant)

        session_ids = select(TableSession.id).where(TableSession.restaurant_id == restaurant_id)
        order_ids = select(Order.id).where(Order.restaurant_id == restaurant_id)
        menu_ids = select(CustomMenu.id).where(CustomMenu.restaurant_id == restaurant_id)

        try:
            self._db.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids)))
            self._db.execute(delete(Order).where(Order.restaurant_id == restaurant_id))
            self._db.execute(delete(CartItem).where(CartItem.session_id.in_(session_ids)))
            self._db.execute(delete(TableSession).where(TableSession.restaurant_id == restaurant_id))
            self._db.execute(delete(Booking).where(Booking.restaurant_id == restaurant_id))
            self._db.execute(delete(Table).where(Table.restaurant_id == restaurant_id))
            self._db.execute(delete(CustomMenuSchedule).where(CustomMenuSchedule.custom_menu_id.in_(menu_ids)))
            self._db.execute(delete(CustomMenuDish).where(CustomMenuDish.custom_menu_id.in_(menu_ids)))
            self._db.execute(delete(CustomMenu).where(CustomMenu.restaurant_id == restaurant_id))
            self._db.execute(delete(Dish).where(Dish.restaurant_id == restaurant_id))
            self._db.execute(delete(Category).where(Category.restaurant_id == restaurant_id))
            self._db.execute(
                delete(User).where(User.restaurant_id == restaurant_id, User.id != owner_id)
            )
            # Owner row outlives the restaurant until the best-effort step below
            self._db.execute(
                update(User).where(User.id == owner_id).values(restaurant_id=None)
            )
            self._db.execute(delete(Restaurant).where(Restaurant.id == restaurant_id))
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error("Restaurant delete failed, rolled back", restaurant_id=restaurant_id, error=str(e))
            raise

        self._changes.deleted(RESTAURANTS, old)
        logger.info("Restaurant deleted", restaurant_id=restaurant_id)

        owner_deleted = False
        if owner_id is not None:
            try:
                owner_deleted = self._delete_owner_account(owner_id)
            except SQLAlchemyError as e:
                self._db.rollback()
                logger.warning(
                    "Owner account not deleted",
                    restaurant_id=restaurant_id,
                    owner_id=owner_id,
                    error=str(e),
                )

        return {"restaurant_id": restaurant_id, "owner_deleted": owner_deleted}

    def _delete_owner_account(self, owner_id: int) -> bool:
        owner = self._db.get(User, owner_id)
        if not owner:
            return False
        self._db.delete(owner)
        safe_commit(self._db)
        return True
