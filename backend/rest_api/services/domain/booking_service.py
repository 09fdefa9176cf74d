"""
Booking Service.

Reservations. Public bookings are assigned automatically to the smallest
free active table that seats the party; when none fits the booking is kept
without a table for the owner to place by hand.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Booking, Restaurant, Table
from shared.config.constants import BookingStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, row_snapshot
from shared.utils.exceptions import ConflictError, NotFoundError
from shared.utils.schemas import BookingCreate, BookingOutput, BookingUpdate

logger = get_logger(__name__)

DEFAULT_RESERVATION_MINUTES = 120
DEFAULT_TABLE_SEATS = 4


def booking_output(booking: Booking) -> BookingOutput:
    return BookingOutput(
        id=booking.id,
        restaurant_id=booking.restaurant_id,
        table_id=booking.table_id,
        name=booking.name,
        email=booking.email,
        phone=booking.phone,
        date_time=booking.date_time,
        guests=booking.guests,
        notes=booking.notes,
        status=booking.status,
    )


def _naive(value: datetime) -> datetime:
    """Bookings are stored in restaurant local time without offset."""
    return value.replace(tzinfo=None)


class BookingService:
    """Service for bookings of one restaurant."""

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    def _restaurant(self, restaurant_id: int) -> Restaurant:
        restaurant = self._db.get(Restaurant, restaurant_id)
        if not restaurant or not restaurant.is_active:
            raise NotFoundError("Restaurant", restaurant_id)
        return restaurant

    def _duration(self, restaurant: Restaurant) -> timedelta:
        return timedelta(minutes=restaurant.reservation_duration or DEFAULT_RESERVATION_MINUTES)

    def _busy_table_ids(
        self,
        restaurant: Restaurant,
        start: datetime,
        exclude_booking_id: int | None = None,
    ) -> set[int]:
        """Tables with a live booking overlapping [start, start + duration)."""
        duration = self._duration(restaurant)
        query = select(Booking.table_id, Booking.date_time).where(
            Booking.restaurant_id == restaurant.id,
            Booking.table_id.is_not(None),
            Booking.status != BookingStatus.CANCELLED,
            Booking.date_time < start + duration,
            Booking.date_time > start - duration,
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        return {table_id for table_id, _ in self._db.execute(query).all()}

    def find_free_table(self, restaurant: Restaurant, start: datetime, guests: int) -> Table | None:
        """Smallest active table that seats ``guests`` and is free at ``start``."""
        busy = self._busy_table_ids(restaurant, start)
        tables = self._db.execute(
            select(Table).where(Table.restaurant_id == restaurant.id, Table.is_active.is_(True))
        ).scalars().all()
        fitting = [
            table
            for table in tables
            if (table.seats or DEFAULT_TABLE_SEATS) >= guests and table.id not in busy
        ]
        fitting.sort(key=lambda table: (table.seats or DEFAULT_TABLE_SEATS, table.id))
        return fitting[0] if fitting else None

    def list_bookings(
        self,
        restaurant_id: int,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Booking]:
        query = select(Booking).where(Booking.restaurant_id == restaurant_id)
        if date_from is not None:
            query = query.where(Booking.date_time >= _naive(date_from))
        if date_to is not None:
            query = query.where(Booking.date_time < _naive(date_to))
        return list(self._db.execute(query.order_by(Booking.date_time, Booking.id)).scalars().all())

    def create(self, restaurant_id: int, data: BookingCreate, auto_assign: bool = True) -> Booking:
        """
        Create a CONFIRMED booking. An explicit ``table_id`` must belong to the
        restaurant and be free; otherwise a table is picked when ``auto_assign``.
        """
        restaurant = self._restaurant(restaurant_id)
        start = _naive(data.date_time)

        table_id = data.table_id
        if table_id is not None:
            self._check_table_free(restaurant, table_id, start)
        elif auto_assign:
            table = self.find_free_table(restaurant, start, data.guests)
            table_id = table.id if table else None

        booking = Booking(
            restaurant_id=restaurant_id,
            table_id=table_id,
            name=data.name,
            email=data.email,
            phone=data.phone,
            date_time=start,
            guests=data.guests,
            notes=data.notes,
            status=BookingStatus.CONFIRMED,
        )
        self._db.add(booking)
        safe_commit(self._db)
        self._db.refresh(booking)
        self._changes.inserted(booking)

        logger.info(
            "Booking created",
            booking_id=booking.id,
            restaurant_id=restaurant_id,
            table_id=table_id,
            guests=data.guests,
        )
        return booking

    def _check_table_free(
        self,
        restaurant: Restaurant,
        table_id: int,
        start: datetime,
        exclude_booking_id: int | None = None,
    ) -> None:
        table = self._db.scalar(
            select(Table).where(Table.id == table_id, Table.restaurant_id == restaurant.id)
        )
        if not table:
            raise NotFoundError("Table", table_id, restaurant_id=restaurant.id)
        if table_id in self._busy_table_ids(restaurant, start, exclude_booking_id):
            raise ConflictError(f"Table {table.number} is already booked at that time")

    def update(self, restaurant_id: int, booking_id: int, data: BookingUpdate) -> Booking:
        booking = self._db.scalar(
            select(Booking).where(Booking.id == booking_id, Booking.restaurant_id == restaurant_id)
        )
        if not booking:
            raise NotFoundError("Booking", booking_id, restaurant_id=restaurant_id)

        changes = data.model_dump(exclude_unset=True)
        if "date_time" in changes and changes["date_time"] is not None:
            changes["date_time"] = _naive(changes["date_time"])

        new_table = changes.get("table_id", booking.table_id)
        new_start = changes.get("date_time") or booking.date_time
        if new_table is not None and ("table_id" in changes or "date_time" in changes):
            self._check_table_free(
                self._restaurant(restaurant_id), new_table, new_start, exclude_booking_id=booking.id
            )

        old = row_snapshot(booking)
        for field, value in changes.items():
            if value is None and field not in ("table_id", "phone", "notes"):
                continue
            setattr(booking, field, value)
        safe_commit(self._db)
        self._changes.updated(booking, old)
        return booking
