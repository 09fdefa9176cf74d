"""
Shared Cart Router.
Draft lines shared by everyone at the table. Uses table token authentication.
Every change is published on the session's cart channel after commit.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import ChangeLog, schedule_changes
from shared.security.auth import TableContext, current_table_context
from shared.security.rate_limit import limiter
from shared.utils.schemas import AddToCartRequest, CartItemOutput, CartOutput, UpdateCartItemRequest
from rest_api.routers._common import DOMAIN_ERRORS, raise_http_error
from rest_api.services.domain import CartService
from rest_api.services.domain.cart_service import cart_item_output


router = APIRouter(prefix="/api/diner/cart", tags=["diner-cart"])


@router.get("", response_model=CartOutput)
def get_cart(
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> CartOutput:
    """Current cart of the session."""
    return CartService(db).build_cart_output(table_ctx.session_id)


@router.post("/items", response_model=CartItemOutput, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.cart_rate_limit)
def add_to_cart(
    request: Request,
    body: AddToCartRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> CartItemOutput:
    """
    Add a dish to the shared cart.

    The same dish with the same notes merges into one line.
    Requires X-Table-Token header.
    """
    changes = ChangeLog()
    try:
        line = CartService(db, changes).add_item(
            table_ctx.session_id, body.dish_id, body.quantity, body.notes
        )
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return cart_item_output(line)


@router.patch("/items/{item_id}", response_model=CartItemOutput | None)
@limiter.limit(settings.cart_rate_limit)
def update_cart_item(
    request: Request,
    item_id: int,
    body: UpdateCartItemRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> CartItemOutput | None:
    """Set a line's quantity. Zero or less removes the line and returns null."""
    changes = ChangeLog()
    try:
        line = CartService(db, changes).update_item(table_ctx.session_id, item_id, body.quantity)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
    return cart_item_output(line) if line else None


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(
    item_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> None:
    """Remove a line. Removing a line that no longer exists succeeds."""
    changes = ChangeLog()
    try:
        CartService(db, changes).remove_item(table_ctx.session_id, item_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    table_ctx: TableContext = Depends(current_table_context),
) -> None:
    """Empty the cart."""
    changes = ChangeLog()
    try:
        CartService(db, changes).clear(table_ctx.session_id)
    except DOMAIN_ERRORS as e:
        raise_http_error(e)
    schedule_changes(background_tasks, changes)
