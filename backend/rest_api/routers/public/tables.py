"""
Public table and booking endpoints. No authentication.

The QR code on a table links to the customer app with the table's token; the
app looks the table up here, shows the menu, and asks for the session PIN
(see diner/access.py).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.security.rate_limit import limiter
from shared.utils.schemas import BookingCreate, BookingOutput, MenuOutput, TableLookupOutput
from rest_api.models import Restaurant
from rest_api.services.domain import BookingService, CatalogService, SessionService
from rest_api.services.domain.booking_service import booking_output
from rest_api.services.domain.pricing import is_restaurant_open
from shared.utils.exceptions import NotFoundError


router = APIRouter(prefix="/api/public", tags=["public"])


def _active_restaurant(db: Session, restaurant_id: int) -> Restaurant:
    restaurant = db.get(Restaurant, restaurant_id)
    if not restaurant or not restaurant.is_active:
        raise NotFoundError("Restaurant", restaurant_id)
    return restaurant


@router.get("/tables/{token}", response_model=TableLookupOutput)
def lookup_table(token: str, db: Session = Depends(get_db)) -> TableLookupOutput:
    """Resolve a QR token to its table and restaurant."""
    table = CatalogService(db).get_table_by_token(token)
    restaurant = _active_restaurant(db, table.restaurant_id)

    return TableLookupOutput(
        table_id=table.id,
        table_number=table.number,
        restaurant_id=restaurant.id,
        restaurant_name=restaurant.name,
        has_open_session=SessionService(db).get_active_session(table.id) is not None,
        restaurant_open=is_restaurant_open(restaurant),
    )


@router.get("/tables/{token}/menu", response_model=MenuOutput)
def table_menu(token: str, db: Session = Depends(get_db)) -> MenuOutput:
    """Menu of the table's restaurant, browsable before joining the session."""
    catalog = CatalogService(db)
    table = catalog.get_table_by_token(token)
    _active_restaurant(db, table.restaurant_id)
    return catalog.build_menu(table.restaurant_id)


@router.post("/restaurants/{restaurant_id}/bookings", response_model=BookingOutput, status_code=201)
@limiter.limit("10/minute")
def create_booking(
    request: Request,
    restaurant_id: int,
    body: BookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> BookingOutput:
    """
    Public reservation form. The smallest free table that seats the party is
    assigned automatically; a client-chosen table is ignored.
    """
    changes = ChangeLog()
    booking = BookingService(db, changes).create(
        restaurant_id, body.model_copy(update={"table_id": None})
    )
    schedule_changes(background_tasks, changes)
    return booking_output(booking)
