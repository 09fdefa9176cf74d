"""
Diner Orders Router.
Session info, menu, order submission and cancellation, and the bill for
customers at a table. Uses table token authentication.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.security.auth import TableContext, current_table_context
from shared.security.rate_limit import limiter
from shared.utils.exceptions import SessionNotFoundError
from shared.utils.schemas import BillOutput, MenuOutput, OrderItemOutput, OrderOutput, SessionOutput
from rest_api.models import TableSession
from rest_api.routers._common import DOMAIN_ERRORS, raise_http_error
from rest_api.services.domain import BillingService, CatalogService, OrderService
from rest_api.services.domain.order_service import order_item_output, order_output
from rest_api.services.domain.session_service import session_output


router = APIRouter(prefix="/api/diner", tags=["diner"])


@router.get("/session", response_model=SessionOutput)
def get_session(
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> SessionOutput:
    """The session the table token belongs to, open or closed."""
    session = db.get(TableSession, table_ctx.session_id)
    if not session:
        raise SessionNotFoundError(table_ctx.session_id)
    return session_output(session)


@router.get("/menu", response_model=MenuOutput)
def get_menu(
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> MenuOutput:
    """Menu of the table's restaurant with current cover and AYCE prices."""
    return CatalogService(db).build_menu(table_ctx.restaurant_id)


@router.post("/orders", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.cart_rate_limit)
def submit_order(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> OrderOutput:
    """
    Send the cart to the kitchen.

    Creates the order and one PENDING item per cart line and empties the
    cart, all in one transaction.
    """
    changes = ChangeLog()
    try:
        order = OrderService(db, changes).submit(table_ctx.session_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_output(order)


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> list[OrderOutput]:
    """Orders of the session, newest first."""
    orders = OrderService(db).list_session_orders(table_ctx.session_id)
    return [order_output(order) for order in orders]


@router.post("/orders/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> OrderOutput:
    """Cancel an order the kitchen has not started on."""
    changes = ChangeLog()
    try:
        order = OrderService(db, changes).cancel_order_by_customer(table_ctx.session_id, order_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_output(order)


@router.post("/order-items/{item_id}/cancel", response_model=OrderItemOutput)
def cancel_order_item(
    item_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> OrderItemOutput:
    """Cancel one still-PENDING line of an order."""
    changes = ChangeLog()
    try:
        item = OrderService(db, changes).cancel_item_by_customer(table_ctx.session_id, item_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_item_output(item)


@router.get("/bill", response_model=BillOutput)
def get_bill(
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> BillOutput:
    """Bill so far, including cover charge and AYCE lines."""
    try:
        return BillingService(db).compute_bill(table_ctx.session_id, table_ctx.restaurant_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
