"""
Booking management endpoints for owners.
"""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.utils.schemas import BookingCreate, BookingOutput, BookingUpdate
from rest_api.routers._common import require_management, resolve_restaurant_id
from rest_api.services.domain import BookingService
from rest_api.services.domain.booking_service import booking_output


router = APIRouter(tags=["admin-bookings"])


@router.get("/bookings", response_model=list[BookingOutput])
def list_bookings(
    restaurant_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[BookingOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    bookings = BookingService(db).list_bookings(restaurant_id, date_from, date_to)
    return [booking_output(b) for b in bookings]


@router.post("/bookings", response_model=BookingOutput, status_code=status.HTTP_201_CREATED)
def create_booking(
    body: BookingCreate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> BookingOutput:
    """Booking taken by phone. An explicit table must be free at that time."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    booking = BookingService(db, changes).create(restaurant_id, body)
    schedule_changes(background_tasks, changes)
    return booking_output(booking)


@router.patch("/bookings/{booking_id}", response_model=BookingOutput)
def update_booking(
    booking_id: int,
    body: BookingUpdate,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> BookingOutput:
    """Move, reassign, confirm, complete or cancel a booking."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    booking = BookingService(db, changes).update(restaurant_id, booking_id, body)
    schedule_changes(background_tasks, changes)
    return booking_output(booking)
