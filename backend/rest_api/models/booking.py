"""
Booking model: table reservations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import BookingStatus
from .base import Base, BigIntId, CreatedAtMixin, StatusType


class Booking(CreatedAtMixin, Base):
    """A reservation, optionally assigned to a table."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurants.id"), nullable=False, index=True
    )
    table_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("tables.id"))
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[BookingStatus] = mapped_column(
        StatusType(BookingStatus), default=BookingStatus.CONFIRMED, nullable=False
    )

    __table_args__ = (
        Index("ix_bookings_restaurant_date", "restaurant_id", "date_time"),
    )
