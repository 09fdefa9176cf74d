"""
Cart model: CartItem, the draft order lines of a session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, CreatedAtMixin

if TYPE_CHECKING:
    from .table import TableSession
    from .catalog import Dish


class CartItem(CreatedAtMixin, Base):
    """
    A draft line owned by a table session, shared by everyone at the table.

    Lines are identified by (dish, notes): adding the same dish with the same
    notes merges into the existing line. Submitting the cart turns the lines
    into OrderItems and deletes them.
    """

    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_sessions.id"), nullable=False, index=True
    )
    dish_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("dishes.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    session: Mapped["TableSession"] = relationship(back_populates="cart_items")
    dish: Mapped["Dish"] = relationship()

    __table_args__ = (
        Index("ix_cart_items_session_dish", "session_id", "dish_id"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<CartItem(id={self.id}, session_id={self.session_id}, dish_id={self.dish_id}, qty={self.quantity})>"
