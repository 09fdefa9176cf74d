"""
Kitchen router.
Order queue and item status changes for kitchen staff.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.utils.schemas import (
    OrderItemOutput,
    OrderOutput,
    UpdateOrderItemStatusRequest,
    UpdateOrderStatusRequest,
)
from rest_api.routers._common import DOMAIN_ERRORS, raise_http_error, require_staff, resolve_restaurant_id
from rest_api.services.domain import OrderService
from rest_api.services.domain.order_service import order_item_output, order_output


router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> list[OrderOutput]:
    """OPEN orders of the restaurant, oldest first, with their table."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    orders = OrderService(db).list_active_orders(restaurant_id)
    return [order_output(order, order.session.table) for order in orders]


@router.patch("/order-items/{item_id}", response_model=OrderItemOutput)
def update_item_status(
    item_id: int,
    body: UpdateOrderItemStatusRequest,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> OrderItemOutput:
    """
    Move an item along PENDING -> IN_PREPARATION -> READY -> SERVED, or
    cancel it before it is served.
    """
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    try:
        item = OrderService(db, changes).update_item_status(restaurant_id, item_id, body.status)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_item_output(item)


@router.patch("/orders/{order_id}", response_model=OrderOutput)
def update_order_status(
    order_id: int,
    body: UpdateOrderStatusRequest,
    background_tasks: BackgroundTasks,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_staff),
) -> OrderOutput:
    """Mark an OPEN order PAID or CANCELLED."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    changes = ChangeLog()
    try:
        order = OrderService(db, changes).update_order_status(restaurant_id, order_id, body.status)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return order_output(order)
