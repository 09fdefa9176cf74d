"""
Table and session models: Table, TableSession.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import SessionStatus
from .base import Base, BigIntId, CreatedAtMixin, StatusType

if TYPE_CHECKING:
    from .restaurant import Restaurant
    from .cart import CartItem
    from .order import Order


def new_table_token() -> str:
    """Opaque token printed in the table's QR code."""
    return secrets.token_urlsafe(16)


class Table(CreatedAtMixin, Base):
    """A physical table. Customers reach it through the QR ``token``."""

    __tablename__ = "tables"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    number: Mapped[str] = mapped_column(Text, nullable=False)  # "7", "Terrazza 2"
    token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, default=new_table_token
    )
    seats: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="tables")
    sessions: Mapped[list["TableSession"]] = relationship(back_populates="table")


class TableSession(Base):
    """
    One seating at one table, from opening to bill.

    At most one OPEN session per table: enforced by the partial unique index
    below and by the row lock taken in SessionService.open_session.
    """

    __tablename__ = "table_sessions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    table_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tables.id"), nullable=False, index=True
    )
    status: Mapped[SessionStatus] = mapped_column(
        StatusType(SessionStatus), default=SessionStatus.OPEN, nullable=False
    )
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    customer_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    session_pin: Mapped[str] = mapped_column(String(8), nullable=False)
    coperto_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ayce_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    opened_by_user_id: Mapped[Optional[int]] = mapped_column(BigInteger)

    table: Mapped["Table"] = relationship(back_populates="sessions")
    cart_items: Mapped[list["CartItem"]] = relationship(back_populates="session")
    orders: Mapped[list["Order"]] = relationship(back_populates="session")

    __table_args__ = (
        Index(
            "uq_table_sessions_one_open_per_table",
            "table_id",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
        Index("ix_table_sessions_table_status", "table_id", "status"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    def __repr__(self) -> str:
        return f"<TableSession(id={self.id}, table_id={self.table_id}, status={self.status})>"
