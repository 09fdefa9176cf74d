"""
Order Domain Service.

Turns a session's cart into an order, and moves orders and order items
through their status machines for kitchen, waiters and customers.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload, selectinload

from shared.config.constants import (
    ORDER_ITEM_TRANSITIONS,
    ORDER_TRANSITIONS,
    OrderItemStatus,
    OrderStatus,
)
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, CART_ITEMS, row_snapshot
from shared.utils.schemas import OrderItemOutput, OrderLineInput, OrderOutput
from rest_api.models import CartItem, Dish, Order, OrderItem, Restaurant, Table, TableSession
from rest_api.services.domain.cart_service import DishNotAvailableError
from rest_api.services.domain.session_service import SessionNotActiveError, SessionService

logger = get_logger(__name__)

TERMINAL_ITEM_STATUSES = frozenset({OrderItemStatus.SERVED, OrderItemStatus.CANCELLED})


class EmptyCartError(Exception):
    """Nothing to submit."""
    pass


class RestaurantUnavailableError(Exception):
    """Restaurant missing or deactivated."""
    pass


class OrderNotFoundError(Exception):
    """Order not found in this scope."""
    pass


class OrderItemNotFoundError(Exception):
    """Order item not found in this scope."""
    pass


class StatusTransitionError(Exception):
    """Requested status change is not allowed from the current status."""

    def __init__(self, entity: str, from_status: str, to_status: str):
        self.entity = entity
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot change {entity} from {from_status} to {to_status}")


class CancellationNotAllowedError(Exception):
    """Customer cancellation refused: the kitchen already picked it up."""
    pass


class OrderService:
    """Domain service for Order and OrderItem operations."""

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    # =========================================================================
    # Submission
    # =========================================================================

    def _require_restaurant(self, restaurant_id: int) -> Restaurant:
        restaurant = self._db.get(Restaurant, restaurant_id)
        if not restaurant or not restaurant.is_active:
            raise RestaurantUnavailableError(f"Restaurant {restaurant_id} is not available")
        return restaurant

    def _require_open_session(self, session_id: int) -> TableSession:
        session = self._db.get(TableSession, session_id)
        if not session or not session.is_open:
            raise SessionNotActiveError("Session is not active or does not exist")
        return session

    def _create_order(
        self,
        session: TableSession,
        lines: list[tuple[Dish, int, str | None]],
    ) -> Order:
        """Order plus one PENDING item per (dish, quantity, note). Not committed."""
        total = sum((dish.price * quantity for dish, quantity, _ in lines), Decimal("0"))
        order = Order(
            restaurant_id=session.restaurant_id,
            table_session_id=session.id,
            status=OrderStatus.OPEN,
            total_amount=total,
        )
        self._db.add(order)
        for dish, quantity, note in lines:
            order.items.append(
                OrderItem(
                    dish_id=dish.id,
                    quantity=quantity,
                    note=note,
                    status=OrderItemStatus.PENDING,
                )
            )
        return order

    def _record_new_order(self, order: Order) -> None:
        self._db.refresh(order)
        self._changes.inserted(order)
        for item in order.items:
            self._changes.inserted(item)

    def submit(self, session_id: int) -> Order:
        """
        Submit the session's cart.

        The order, its items and the cart clear commit together; any failure
        rolls all of it back and leaves the cart untouched.
        """
        session = self._require_open_session(session_id)
        self._require_restaurant(session.restaurant_id)

        cart = self._db.execute(
            select(CartItem)
            .options(joinedload(CartItem.dish))
            .where(CartItem.session_id == session_id)
            .order_by(CartItem.created_at, CartItem.id)
        ).scalars().all()
        if not cart:
            raise EmptyCartError("Cart is empty")

        order = self._create_order(
            session, [(line.dish, line.quantity, line.notes) for line in cart]
        )
        cleared = [row_snapshot(line) for line in cart]
        for line in cart:
            self._db.delete(line)

        safe_commit(self._db)

        self._record_new_order(order)
        for old in cleared:
            self._changes.deleted(CART_ITEMS, old)

        logger.info(
            "Order submitted",
            order_id=order.id,
            session_id=session_id,
            items=len(cleared),
            total_amount=str(order.total_amount),
        )
        return order

    def submit_for_table(
        self,
        table_id: int,
        lines: list[OrderLineInput],
        opened_by: int | None = None,
    ) -> Order:
        """
        Waiter-entered order. Opens a session for one guest when the table has
        none, then submits ``lines`` directly without going through the cart.
        """
        if not lines:
            raise EmptyCartError("No items to order")

        sessions = SessionService(self._db, self._changes)
        table = sessions.get_table(table_id)
        self._require_restaurant(table.restaurant_id)

        dish_ids = {line.dish_id for line in lines}
        dishes = {
            dish.id: dish
            for dish in self._db.execute(
                select(Dish).where(
                    Dish.id.in_(dish_ids),
                    Dish.restaurant_id == table.restaurant_id,
                    Dish.is_active.is_(True),
                )
            ).scalars()
        }
        missing = dish_ids - dishes.keys()
        if missing:
            raise DishNotAvailableError(f"Dishes not available: {sorted(missing)}")

        session, _ = sessions.open_session(table_id, customer_count=1, opened_by=opened_by)
        order = self._create_order(
            session, [(dishes[line.dish_id], line.quantity, line.note) for line in lines]
        )
        safe_commit(self._db)
        self._record_new_order(order)

        logger.info(
            "Staff order submitted",
            order_id=order.id,
            table_id=table_id,
            session_id=session.id,
            opened_by=opened_by,
        )
        return order

    # =========================================================================
    # Queries
    # =========================================================================

    def list_session_orders(self, session_id: int) -> list[Order]:
        """Orders of a session with items and dishes, newest first."""
        return list(
            self._db.execute(
                select(Order)
                .options(selectinload(Order.items).joinedload(OrderItem.dish))
                .where(Order.table_session_id == session_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            ).scalars().all()
        )

    def list_active_orders(self, restaurant_id: int) -> list[Order]:
        """OPEN orders of the restaurant for the kitchen, oldest first."""
        return list(
            self._db.execute(
                select(Order)
                .options(
                    selectinload(Order.items).joinedload(OrderItem.dish),
                    joinedload(Order.session).joinedload(TableSession.table),
                )
                .where(
                    Order.restaurant_id == restaurant_id,
                    Order.status == OrderStatus.OPEN,
                )
                .order_by(Order.created_at, Order.id)
            ).scalars().all()
        )

    def get_order(self, order_id: int, restaurant_id: int | None = None) -> Order:
        stmt = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        if restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == restaurant_id)
        order = self._db.scalar(stmt)
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    # =========================================================================
    # Staff transitions
    # =========================================================================

    def update_item_status(
        self,
        restaurant_id: int,
        item_id: int,
        new_status: OrderItemStatus,
    ) -> OrderItem:
        """Kitchen/waiter item status change, checked against the item state machine."""
        item = self._db.scalar(
            select(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .where(OrderItem.id == item_id, Order.restaurant_id == restaurant_id)
        )
        if not item:
            raise OrderItemNotFoundError(f"Order item {item_id} not found")

        if new_status not in ORDER_ITEM_TRANSITIONS[item.status]:
            raise StatusTransitionError("order item", item.status.value, new_status.value)

        old = row_snapshot(item)
        item.status = new_status
        safe_commit(self._db)
        self._changes.updated(item, old)

        logger.info(
            "Order item status changed",
            item_id=item_id,
            order_id=item.order_id,
            from_status=old["status"],
            to_status=new_status.value,
        )
        return item

    def update_order_status(
        self,
        restaurant_id: int,
        order_id: int,
        new_status: OrderStatus,
    ) -> Order:
        """
        Staff order status change. Cancelling an order cancels its items that
        have not reached a terminal status.
        """
        order = self.get_order(order_id, restaurant_id)
        if new_status not in ORDER_TRANSITIONS[order.status]:
            raise StatusTransitionError("order", order.status.value, new_status.value)
        return self._close_order(order, new_status)

    def _close_order(self, order: Order, new_status: OrderStatus) -> Order:
        touched = []
        if new_status == OrderStatus.CANCELLED:
            for item in order.items:
                if item.status not in TERMINAL_ITEM_STATUSES:
                    touched.append((item, row_snapshot(item)))
                    item.status = OrderItemStatus.CANCELLED

        old = row_snapshot(order)
        order.status = new_status
        order.closed_at = datetime.now(timezone.utc)
        safe_commit(self._db)

        for item, item_old in touched:
            self._changes.updated(item, item_old)
        self._changes.updated(order, old)

        logger.info(
            "Order status changed",
            order_id=order.id,
            from_status=old["status"],
            to_status=new_status.value,
        )
        return order

    # =========================================================================
    # Customer cancellations
    # =========================================================================

    def cancel_order_by_customer(self, session_id: int, order_id: int) -> Order:
        """
        Customer cancels a whole order. Only while the order is OPEN and the
        kitchen has not started any of its items.
        """
        order = self._db.scalar(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.table_session_id == session_id)
        )
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.status != OrderStatus.OPEN:
            raise CancellationNotAllowedError("Order is no longer open")
        if any(item.status != OrderItemStatus.PENDING for item in order.items):
            raise CancellationNotAllowedError("The kitchen has already started this order")
        return self._close_order(order, OrderStatus.CANCELLED)

    def cancel_item_by_customer(self, session_id: int, item_id: int) -> OrderItem:
        """
        Customer cancels one line while it is still PENDING. When that leaves
        the order with no live items the order is cancelled too.
        """
        item = self._db.scalar(
            select(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .where(OrderItem.id == item_id, Order.table_session_id == session_id)
        )
        if not item:
            raise OrderItemNotFoundError(f"Order item {item_id} not found")
        order = item.order
        if order.status != OrderStatus.OPEN or item.status != OrderItemStatus.PENDING:
            raise CancellationNotAllowedError("Item can no longer be cancelled")

        old = row_snapshot(item)
        item.status = OrderItemStatus.CANCELLED

        order_old = None
        if all(i.status == OrderItemStatus.CANCELLED for i in order.items):
            order_old = row_snapshot(order)
            order.status = OrderStatus.CANCELLED
            order.closed_at = datetime.now(timezone.utc)

        safe_commit(self._db)
        self._changes.updated(item, old)
        if order_old is not None:
            self._changes.updated(order, order_old)

        logger.info("Order item cancelled by customer", item_id=item_id, order_id=order.id)
        return item


# =============================================================================
# Output builders
# =============================================================================


def order_item_output(item: OrderItem) -> OrderItemOutput:
    return OrderItemOutput(
        id=item.id,
        order_id=item.order_id,
        dish_id=item.dish_id,
        dish_name=item.dish.name,
        unit_price=float(item.dish.price),
        quantity=item.quantity,
        note=item.note,
        status=item.status,
        created_at=item.created_at,
    )


def order_output(order: Order, table: Table | None = None) -> OrderOutput:
    return OrderOutput(
        id=order.id,
        restaurant_id=order.restaurant_id,
        table_session_id=order.table_session_id,
        status=order.status,
        total_amount=float(order.total_amount),
        created_at=order.created_at,
        closed_at=order.closed_at,
        items=[order_item_output(item) for item in order.items],
        table_id=table.id if table else None,
        table_number=table.number if table else None,
    )
