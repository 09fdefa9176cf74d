"""
Session Domain Service.

Resolves the single OPEN session of a table: lookup, open, PIN check, close.
"""

import secrets
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.config.constants import Limits, OrderItemStatus, OrderStatus, SessionStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, CART_ITEMS, row_snapshot
from rest_api.models import CartItem, Order, OrderItem, Restaurant, Table, TableSession
from rest_api.services.domain.pricing import current_ayce, current_coperto
from shared.utils.schemas import SessionOutput, StaffSessionOutput, TableCard

logger = get_logger(__name__)


class TableNotFoundError(Exception):
    """Table does not exist or is inactive."""
    pass


class NoOpenSessionError(Exception):
    """Table has no OPEN session."""
    pass


class SessionNotActiveError(Exception):
    """Session does not exist or is not OPEN."""
    pass


class InvalidPinError(Exception):
    """PIN does not match the table's OPEN session."""
    pass


def generate_pin() -> str:
    """Random numeric PIN, zero padded."""
    return f"{secrets.randbelow(10 ** Limits.PIN_LENGTH):0{Limits.PIN_LENGTH}d}"


class SessionService:
    """
    Domain service for TableSession operations.

    At most one OPEN session exists per table. ``open_session`` locks the
    table row while it checks and inserts, and the partial unique index on
    ``table_sessions`` rejects whatever slips past the lock.
    """

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    def get_table(self, table_id: int) -> Table:
        table = self._db.scalar(
            select(Table).where(Table.id == table_id, Table.is_active.is_(True))
        )
        if not table:
            raise TableNotFoundError(f"Table {table_id} not found")
        return table

    def get_active_session(self, table_id: int) -> TableSession | None:
        """OPEN session of the table, or None."""
        return self._db.scalar(
            select(TableSession).where(
                TableSession.table_id == table_id,
                TableSession.status == SessionStatus.OPEN,
            )
        )

    def require_active_session(self, table_id: int) -> TableSession:
        """OPEN session of the table. Raises NoOpenSessionError when there is none."""
        session = self.get_active_session(table_id)
        if not session:
            raise NoOpenSessionError(f"Table {table_id} has no open session")
        return session

    def get_open_session(self, session_id: int) -> TableSession:
        """Session by id. Raises SessionNotActiveError unless it is OPEN."""
        session = self._db.get(TableSession, session_id)
        if not session or not session.is_open:
            raise SessionNotActiveError("Session is not active or does not exist")
        return session

    def open_session(
        self,
        table_id: int,
        customer_count: int = 1,
        coperto_enabled: bool | None = None,
        ayce_enabled: bool | None = None,
        opened_by: int | None = None,
        now: datetime | None = None,
    ) -> tuple[TableSession, bool]:
        """
        Return the table's OPEN session, creating it if there is none.

        ``coperto_enabled``/``ayce_enabled`` default to whatever the
        restaurant's pricing schedule has in force right now.

        Returns (session, created) tuple.
        """
        if customer_count < Limits.MIN_CUSTOMER_COUNT:
            raise ValueError(f"customer_count must be at least {Limits.MIN_CUSTOMER_COUNT}")

        # Serializes concurrent openers of the same table (no-op on SQLite)
        table = self._db.scalar(
            select(Table)
            .where(Table.id == table_id, Table.is_active.is_(True))
            .with_for_update()
        )
        if not table:
            raise TableNotFoundError(f"Table {table_id} not found")

        existing = self.get_active_session(table_id)
        if existing:
            return existing, False

        restaurant = self._db.get(Restaurant, table.restaurant_id)
        if coperto_enabled is None:
            coperto_enabled = current_coperto(restaurant, now).enabled
        if ayce_enabled is None:
            ayce_enabled = current_ayce(restaurant, now).enabled

        session = TableSession(
            restaurant_id=table.restaurant_id,
            table_id=table.id,
            status=SessionStatus.OPEN,
            customer_count=customer_count,
            session_pin=generate_pin(),
            coperto_enabled=coperto_enabled,
            ayce_enabled=ayce_enabled,
            opened_by_user_id=opened_by,
        )
        self._db.add(session)
        try:
            safe_commit(self._db)
        except IntegrityError:
            # Another opener won the race
            existing = self.get_active_session(table_id)
            if existing:
                logger.info("Session already opened concurrently", table_id=table_id)
                return existing, False
            raise
        self._db.refresh(session)
        self._changes.inserted(session)

        logger.info(
            "Session opened",
            session_id=session.id,
            table_id=table_id,
            customer_count=customer_count,
        )
        return session, True

    def verify_session_pin(self, table_id: int, pin: str) -> TableSession:
        """
        Check ``pin`` against the table's OPEN session. Surrounding whitespace
        on either side is ignored.
        """
        session = self.get_active_session(table_id)
        if not session:
            raise NoOpenSessionError(f"Table {table_id} has no open session")
        if (pin or "").strip() != (session.session_pin or "").strip():
            logger.warning("Invalid session PIN", table_id=table_id, session_id=session.id)
            raise InvalidPinError("Invalid PIN")
        return session

    def update_customer_count(self, session_id: int, customer_count: int) -> TableSession:
        if customer_count < Limits.MIN_CUSTOMER_COUNT:
            raise ValueError(f"customer_count must be at least {Limits.MIN_CUSTOMER_COUNT}")
        session = self.get_open_session(session_id)
        old = row_snapshot(session)
        session.customer_count = customer_count
        safe_commit(self._db)
        self._changes.updated(session, old)
        return session

    def table_overview(self, restaurant_id: int) -> list[TableCard]:
        """Active tables of a restaurant with their OPEN session and kitchen load."""
        tables = self._db.execute(
            select(Table)
            .where(Table.restaurant_id == restaurant_id, Table.is_active.is_(True))
            .order_by(Table.number, Table.id)
        ).scalars().all()
        sessions = {
            session.table_id: session
            for session in self._db.execute(
                select(TableSession).where(
                    TableSession.restaurant_id == restaurant_id,
                    TableSession.status == SessionStatus.OPEN,
                )
            ).scalars()
        }

        open_orders: dict[int, int] = {}
        item_counts: dict[tuple[int, str], int] = {}
        if sessions:
            session_ids = [session.id for session in sessions.values()]
            for session_id, count in self._db.execute(
                select(Order.table_session_id, func.count(Order.id))
                .where(Order.table_session_id.in_(session_ids), Order.status == OrderStatus.OPEN)
                .group_by(Order.table_session_id)
            ).all():
                open_orders[session_id] = count
            for session_id, item_status, count in self._db.execute(
                select(Order.table_session_id, OrderItem.status, func.count(OrderItem.id))
                .join(Order, OrderItem.order_id == Order.id)
                .where(Order.table_session_id.in_(session_ids), Order.status == OrderStatus.OPEN)
                .group_by(Order.table_session_id, OrderItem.status)
            ).all():
                item_counts[(session_id, OrderItemStatus(item_status).value)] = count

        cards = []
        for table in tables:
            session = sessions.get(table.id)
            if session is None:
                cards.append(TableCard(
                    table_id=table.id, number=table.number, seats=table.seats, status="available"
                ))
                continue
            cards.append(TableCard(
                table_id=table.id,
                number=table.number,
                seats=table.seats,
                status="occupied",
                session_id=session.id,
                session_pin=session.session_pin,
                customer_count=session.customer_count,
                open_orders=open_orders.get(session.id, 0),
                pending_items=item_counts.get((session.id, OrderItemStatus.PENDING.value), 0),
                ready_items=item_counts.get((session.id, OrderItemStatus.READY.value), 0),
            ))
        return cards

    def close_session(self, session_id: int) -> TableSession:
        """
        Close the session: leftover cart lines are dropped, OPEN orders are
        marked PAID, and the session becomes CLOSED. One transaction.
        """
        session = self.get_open_session(session_id)
        now = datetime.now(timezone.utc)

        cart_items = self._db.execute(
            select(CartItem).where(CartItem.session_id == session_id)
        ).scalars().all()
        deleted = [row_snapshot(item) for item in cart_items]
        for item in cart_items:
            self._db.delete(item)

        open_orders = self._db.execute(
            select(Order).where(
                Order.table_session_id == session_id,
                Order.status == OrderStatus.OPEN,
            )
        ).scalars().all()
        paid = []
        for order in open_orders:
            paid.append((order, row_snapshot(order)))
            order.status = OrderStatus.PAID
            order.closed_at = now

        old_session = row_snapshot(session)
        session.status = SessionStatus.CLOSED
        session.closed_at = now

        safe_commit(self._db)

        for old in deleted:
            self._changes.deleted(CART_ITEMS, old)
        for order, old in paid:
            self._changes.updated(order, old)
        self._changes.updated(session, old_session)

        logger.info(
            "Session closed",
            session_id=session_id,
            table_id=session.table_id,
            orders_paid=len(paid),
            cart_lines_dropped=len(deleted),
        )
        return session


# =============================================================================
# Output builders
# =============================================================================


def session_output(session: TableSession) -> SessionOutput:
    """Session as customers see it."""
    return SessionOutput(
        id=session.id,
        table_id=session.table_id,
        restaurant_id=session.restaurant_id,
        status=session.status,
        opened_at=session.opened_at,
        closed_at=session.closed_at,
        customer_count=session.customer_count,
        coperto_enabled=session.coperto_enabled,
        ayce_enabled=session.ayce_enabled,
    )


def staff_session_output(session: TableSession) -> StaffSessionOutput:
    """Session with its PIN, for staff."""
    return StaffSessionOutput(
        **session_output(session).model_dump(),
        session_pin=session.session_pin,
    )
