"""
Waiter router.
Handles operations performed by restaurant staff on the floor: table
dashboard, opening a table, entering orders for customers without a phone,
the bill and closing the table.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.security.auth import require_restaurant, sign_table_token
from shared.utils.exceptions import SessionNotFoundError
from shared.utils.schemas import (
    BillOutput,
    OpenSessionRequest,
    OpenSessionResponse,
    OrderOutput,
    StaffOrderRequest,
    StaffSessionOutput,
    TableCard,
)
from rest_api.models import TableSession
from rest_api.routers._common import (
    DOMAIN_ERRORS,
    get_user_id,
    raise_http_error,
    require_staff,
    resolve_restaurant_id,
)
from rest_api.services.domain import BillingService, OrderService, SessionService
from rest_api.services.domain.order_service import order_output
from rest_api.services.domain.session_service import staff_session_output

logger = get_logger(__name__)

router = APIRouter(prefix="/api/waiter", tags=["waiter"])


class CustomerCountUpdate(BaseModel):
    customer_count: int = Field(ge=Limits.MIN_CUSTOMER_COUNT, le=Limits.MAX_CUSTOMER_COUNT)


def _table_in_scope(db: Session, user: dict, table_id: int):
    try:
        table = SessionService(db).get_table(table_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    require_restaurant(user, table.restaurant_id)
    return table


def _session_in_scope(db: Session, user: dict, session_id: int) -> TableSession:
    session = db.get(TableSession, session_id)
    if not session:
        raise SessionNotFoundError(session_id)
    require_restaurant(user, session.restaurant_id)
    return session


@router.get("/tables", response_model=list[TableCard])
def list_tables(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> list[TableCard]:
    """Every active table with its open session, PIN and kitchen progress."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return SessionService(db).table_overview(restaurant_id)


@router.post("/tables/{table_id}/session", response_model=OpenSessionResponse)
def open_table(
    table_id: int,
    body: OpenSessionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> OpenSessionResponse:
    """
    Open the table for ``customer_count`` guests.

    Idempotent: when the table already has an open session it is returned
    unchanged with ``created`` false.
    """
    _table_in_scope(db, user, table_id)
    changes = ChangeLog()
    try:
        session, created = SessionService(db, changes).open_session(
            table_id,
            customer_count=body.customer_count,
            coperto_enabled=body.coperto_enabled,
            ayce_enabled=body.ayce_enabled,
            opened_by=get_user_id(user),
        )
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)

    return OpenSessionResponse(
        session=staff_session_output(session),
        table_token=sign_table_token(session.restaurant_id, session.table_id, session.id),
        created=created,
    )


@router.get("/sessions/{session_id}", response_model=StaffSessionOutput)
def get_session(
    session_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> StaffSessionOutput:
    return staff_session_output(_session_in_scope(db, user, session_id))


@router.patch("/sessions/{session_id}/customers", response_model=StaffSessionOutput)
def update_customer_count(
    session_id: int,
    body: CustomerCountUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> StaffSessionOutput:
    """Change the guest count; cover and AYCE lines on the bill follow it."""
    _session_in_scope(db, user, session_id)
    changes = ChangeLog()
    try:
        session = SessionService(db, changes).update_customer_count(session_id, body.customer_count)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return staff_session_output(session)


@router.post(
    "/tables/{table_id}/orders",
    response_model=OrderOutput,
    status_code=status.HTTP_201_CREATED,
)
def submit_table_order(
    table_id: int,
    body: StaffOrderRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> OrderOutput:
    """Enter an order on behalf of the table, opening it if needed."""
    table = _table_in_scope(db, user, table_id)
    changes = ChangeLog()
    try:
        order = OrderService(db, changes).submit_for_table(
            table_id, body.items, opened_by=get_user_id(user)
        )
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_output(order, table)


@router.get("/sessions/{session_id}/orders", response_model=list[OrderOutput])
def list_session_orders(
    session_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> list[OrderOutput]:
    session = _session_in_scope(db, user, session_id)
    orders = OrderService(db).list_session_orders(session_id)
    return [order_output(order, session.table) for order in orders]


@router.get("/sessions/{session_id}/bill", response_model=BillOutput)
def get_bill(
    session_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> BillOutput:
    session = _session_in_scope(db, user, session_id)
    try:
        return BillingService(db).compute_bill(session_id, session.restaurant_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)


@router.post("/sessions/{session_id}/close", response_model=StaffSessionOutput)
def close_session(
    session_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> StaffSessionOutput:
    """
    Close the table after payment. Open orders become PAID and the leftover
    cart is dropped; connected customers see the session end.
    """
    _session_in_scope(db, user, session_id)
    changes = ChangeLog()
    try:
        session = SessionService(db, changes).close_session(session_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    logger.info("Table closed by staff", session_id=session_id, user_id=get_user_id(user))
    return staff_session_output(session)
