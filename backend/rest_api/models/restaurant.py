"""
Restaurant model: the tenant every other row belongs to.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import BigInteger, Boolean, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, CreatedAtMixin

if TYPE_CHECKING:
    from .catalog import Category, Dish
    from .table import Table


class Restaurant(CreatedAtMixin, Base):
    """
    A restaurant tenant.

    Pricing: ``cover_charge_per_person`` and ``all_you_can_eat``/``ayce_price``
    are the flat settings; ``weekly_coperto`` and ``weekly_ayce`` hold optional
    per-day, per-meal schedules that take precedence when present (see
    rest_api.services.domain.pricing).
    """

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(Text)
    logo_url: Mapped[Optional[str]] = mapped_column(Text)
    # No FK: users.restaurant_id already points here
    owner_id: Mapped[Optional[int]] = mapped_column(BigInteger, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    cover_charge_per_person: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    all_you_can_eat: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ayce_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    ayce_max_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    weekly_coperto: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    weekly_ayce: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    weekly_service_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    lunch_time_start: Mapped[str] = mapped_column(String(5), default="12:00", nullable=False)
    dinner_time_start: Mapped[str] = mapped_column(String(5), default="19:00", nullable=False)

    # Minutes a booking holds its table
    reservation_duration: Mapped[int] = mapped_column(Integer, default=120, nullable=False)

    categories: Mapped[list["Category"]] = relationship(back_populates="restaurant")
    dishes: Mapped[list["Dish"]] = relationship(back_populates="restaurant")
    tables: Mapped[list["Table"]] = relationship(back_populates="restaurant")
