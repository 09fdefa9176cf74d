"""
Order models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, OrderItemStatus
from .base import Base, BigIntId, CreatedAtMixin, StatusType

if TYPE_CHECKING:
    from .table import TableSession
    from .catalog import Dish


class Order(CreatedAtMixin, Base):
    """
    A submitted cart. The line set never changes after creation; only the
    order status and the item statuses move.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    table_session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_sessions.id"), nullable=False, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        StatusType(OrderStatus), default=OrderStatus.OPEN, nullable=False, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    session: Mapped["TableSession"] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id"
    )

    __table_args__ = (
        Index("ix_orders_restaurant_status", "restaurant_id", "status"),
    )


class OrderItem(CreatedAtMixin, Base):
    """One dish line of an order, with its own fulfilment status."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("orders.id"), nullable=False, index=True
    )
    dish_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("dishes.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[OrderItemStatus] = mapped_column(
        StatusType(OrderItemStatus), default=OrderItemStatus.PENDING, nullable=False, index=True
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    dish: Mapped["Dish"] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )
