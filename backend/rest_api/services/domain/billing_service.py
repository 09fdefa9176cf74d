"""
Billing Domain Service.

Computes the bill of a table session: one line per served-or-pending dish
line, plus the virtual cover charge and all-you-can-eat lines charged per
guest when the session has them enabled.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import OrderItemStatus, OrderStatus
from shared.config.logging import get_logger
from shared.utils.schemas import BillLine, BillOutput
from rest_api.models import Order, OrderItem, Restaurant, TableSession
from rest_api.services.domain.pricing import current_ayce, current_coperto

logger = get_logger(__name__)

COPERTO_LABEL = "Coperto"
AYCE_LABEL = "All You Can Eat"


class BillSessionNotFoundError(Exception):
    """Session not found in this restaurant."""
    pass


class BillingService:
    """Domain service for bill computation."""

    def __init__(self, db: Session):
        self._db = db

    def compute_bill(
        self,
        session_id: int,
        restaurant_id: int | None = None,
        now: datetime | None = None,
    ) -> BillOutput:
        """
        Bill of a session, open or closed.

        Cancelled orders and cancelled items are not billed. Cover charge and
        AYCE use the prices in force at ``now``.
        """
        session = self._db.get(TableSession, session_id)
        if not session or (restaurant_id is not None and session.restaurant_id != restaurant_id):
            raise BillSessionNotFoundError(f"Session {session_id} not found")
        restaurant = self._db.get(Restaurant, session.restaurant_id)

        orders = self._db.execute(
            select(Order)
            .options(selectinload(Order.items).joinedload(OrderItem.dish))
            .where(
                Order.table_session_id == session_id,
                Order.status != OrderStatus.CANCELLED,
            )
            .order_by(Order.created_at, Order.id)
        ).scalars().all()

        lines: list[BillLine] = []
        subtotal = Decimal("0")
        for order in orders:
            for item in order.items:
                if item.status == OrderItemStatus.CANCELLED:
                    continue
                line_total = item.dish.price * item.quantity
                subtotal += line_total
                lines.append(
                    BillLine(
                        kind="dish",
                        description=item.dish.name,
                        quantity=item.quantity,
                        unit_price=float(item.dish.price),
                        total=float(line_total),
                        dish_id=item.dish_id,
                        order_item_id=item.id,
                    )
                )

        guests = session.customer_count
        coperto_total = Decimal("0")
        if session.coperto_enabled:
            coperto = current_coperto(restaurant, now)
            if coperto.enabled and coperto.price > 0:
                coperto_total = coperto.price * guests
                lines.append(
                    BillLine(
                        kind="coperto",
                        description=COPERTO_LABEL,
                        quantity=guests,
                        unit_price=float(coperto.price),
                        total=float(coperto_total),
                    )
                )

        ayce_total = Decimal("0")
        if session.ayce_enabled:
            ayce = current_ayce(restaurant, now)
            if ayce.enabled and ayce.price > 0:
                ayce_total = ayce.price * guests
                lines.append(
                    BillLine(
                        kind="ayce",
                        description=AYCE_LABEL,
                        quantity=guests,
                        unit_price=float(ayce.price),
                        total=float(ayce_total),
                    )
                )

        total = subtotal + coperto_total + ayce_total
        logger.debug("Bill computed", session_id=session_id, total=str(total))

        return BillOutput(
            session_id=session.id,
            table_id=session.table_id,
            customer_count=guests,
            lines=lines,
            subtotal_dishes=float(subtotal),
            coperto_total=float(coperto_total),
            ayce_total=float(ayce_total),
            total=float(total),
        )
