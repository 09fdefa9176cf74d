"""
Catalog models: Category, Dish and custom menus (named dish subsets that
replace the full menu when applied by hand or by schedule).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, CreatedAtMixin

if TYPE_CHECKING:
    from .restaurant import Restaurant


class Category(CreatedAtMixin, Base):
    """Menu section. Listed by ``order`` ascending."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="categories")
    dishes: Mapped[list["Dish"]] = relationship(back_populates="category")


class Dish(CreatedAtMixin, Base):
    """A menu entry. Read-only from the ordering flow."""

    __tablename__ = "dishes"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("categories.id"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("10"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="dishes")
    category: Mapped[Optional["Category"]] = relationship(back_populates="dishes")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_dishes_price_non_negative"),
        Index("ix_dishes_restaurant_active", "restaurant_id", "is_active"),
    )


class CustomMenu(CreatedAtMixin, Base):
    """
    A named subset of the restaurant's dishes.

    While a custom menu is in force, customers only see and order its dishes.
    It is in force when one of its schedules matches the current day and meal,
    or when the owner applied it by hand (``is_active``, ``activated_at``).
    """

    __tablename__ = "custom_menus"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Restaurant local time, same clock as the pricing schedule
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    dishes: Mapped[list["CustomMenuDish"]] = relationship(
        back_populates="menu", cascade="all, delete-orphan"
    )
    schedules: Mapped[list["CustomMenuSchedule"]] = relationship(
        back_populates="menu", cascade="all, delete-orphan", order_by="CustomMenuSchedule.id"
    )

    @property
    def dish_ids(self) -> list[int]:
        return sorted(link.dish_id for link in self.dishes)


class CustomMenuDish(Base):
    """Membership of a dish in a custom menu."""

    __tablename__ = "custom_menu_dishes"

    custom_menu_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("custom_menus.id", ondelete="CASCADE"), primary_key=True
    )
    dish_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("dishes.id", ondelete="CASCADE"), primary_key=True
    )

    menu: Mapped["CustomMenu"] = relationship(back_populates="dishes")


class CustomMenuSchedule(CreatedAtMixin, Base):
    """
    When a custom menu is in force: a weekday (0 = Monday, None = every day)
    and a meal period ("lunch", "dinner" or "all" for the whole day).
    """

    __tablename__ = "custom_menu_schedules"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    custom_menu_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("custom_menus.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[Optional[int]] = mapped_column(Integer)
    meal_type: Mapped[str] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    menu: Mapped["CustomMenu"] = relationship(back_populates="schedules")

    __table_args__ = (
        CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_custom_menu_schedules_day",
        ),
        CheckConstraint(
            "meal_type IN ('lunch', 'dinner', 'all')", name="ck_custom_menu_schedules_meal"
        ),
        UniqueConstraint(
            "custom_menu_id", "day_of_week", "meal_type", name="uq_custom_menu_schedules_slot"
        ),
    )
