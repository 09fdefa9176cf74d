"""
Cart Domain Service.

Draft order lines shared by everyone at a table. Lines are keyed by
(dish, notes): adding the same pair again merges quantities.
"""

from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import ChangeLog, CART_ITEMS, row_snapshot
from shared.utils.schemas import CartItemOutput, CartOutput
from shared.utils.validators import normalize_notes
from rest_api.models import CartItem, Dish, TableSession
from rest_api.services.domain.custom_menu_service import CustomMenuService
from rest_api.services.domain.session_service import SessionNotActiveError

logger = get_logger(__name__)


class DishNotAvailableError(Exception):
    """Dish does not exist, is inactive or belongs to another restaurant."""
    pass


class CartItemNotFoundError(Exception):
    """Cart line not found in this session."""
    pass


def _notes_match(notes: str | None):
    if notes is None:
        return or_(CartItem.notes.is_(None), CartItem.notes == "")
    return CartItem.notes == notes


class CartService:
    """Domain service for CartItem operations."""

    def __init__(self, db: Session, changes: ChangeLog | None = None):
        self._db = db
        self._changes = changes if changes is not None else ChangeLog()

    def _require_open_session(self, session_id: int) -> TableSession:
        session = self._db.get(TableSession, session_id)
        if not session or not session.is_open:
            raise SessionNotActiveError("Session is not active or does not exist")
        return session

    def _get_line(self, session_id: int, item_id: int) -> CartItem | None:
        return self._db.scalar(
            select(CartItem).where(CartItem.id == item_id, CartItem.session_id == session_id)
        )

    def list_items(self, session_id: int) -> list[CartItem]:
        """Lines of the session in the order they were added."""
        return list(
            self._db.execute(
                select(CartItem)
                .options(joinedload(CartItem.dish))
                .where(CartItem.session_id == session_id)
                .order_by(CartItem.created_at, CartItem.id)
            ).scalars().all()
        )

    def add_item(
        self,
        session_id: int,
        dish_id: int,
        quantity: int = 1,
        notes: str | None = None,
    ) -> CartItem:
        """
        Add ``quantity`` of a dish. Merges into the line with the same dish and
        notes when there is one. Fails without writing anything when the
        session is not OPEN, or when a custom menu is in force and the dish
        is not on it.
        """
        if quantity < Limits.MIN_QUANTITY:
            raise ValueError(f"Minimum quantity is {Limits.MIN_QUANTITY}")
        session = self._require_open_session(session_id)

        dish = self._db.scalar(
            select(Dish).where(
                Dish.id == dish_id,
                Dish.restaurant_id == session.restaurant_id,
                Dish.is_active.is_(True),
            )
        )
        if not dish:
            raise DishNotAvailableError(f"Dish {dish_id} is not available")
        allowed = CustomMenuService(self._db).available_dish_ids(session.restaurant_id)
        if allowed is not None and dish_id not in allowed:
            raise DishNotAvailableError(f"Dish {dish_id} is not on the current menu")

        notes = normalize_notes(notes)
        line = self._db.scalar(
            select(CartItem)
            .where(
                CartItem.session_id == session_id,
                CartItem.dish_id == dish_id,
                _notes_match(notes),
            )
            .order_by(CartItem.id)
        )

        if line:
            old = row_snapshot(line)
            line.quantity += quantity
            safe_commit(self._db)
            self._changes.updated(line, old)
        else:
            line = CartItem(
                session_id=session_id,
                dish_id=dish_id,
                quantity=quantity,
                notes=notes,
            )
            self._db.add(line)
            safe_commit(self._db)
            self._db.refresh(line)
            self._changes.inserted(line)

        logger.debug(
            "Cart line added",
            session_id=session_id,
            dish_id=dish_id,
            quantity=line.quantity,
        )
        return line

    def update_item(self, session_id: int, item_id: int, quantity: int) -> CartItem | None:
        """
        Set a line's quantity. A quantity of zero or less deletes the line and
        returns None.
        """
        self._require_open_session(session_id)
        line = self._get_line(session_id, item_id)
        if not line:
            raise CartItemNotFoundError(f"Cart item {item_id} not found")

        if quantity <= 0:
            self._delete(line)
            return None

        old = row_snapshot(line)
        line.quantity = quantity
        safe_commit(self._db)
        self._changes.updated(line, old)
        return line

    def remove_item(self, session_id: int, item_id: int) -> bool:
        """
        Delete a line. Removing a line that is already gone is a no-op, but the
        session must still be OPEN.
        """
        self._require_open_session(session_id)
        line = self._get_line(session_id, item_id)
        if not line:
            return False
        self._delete(line)
        return True

    def clear(self, session_id: int) -> int:
        """Delete every line of the session. Returns the number removed."""
        self._require_open_session(session_id)
        lines = self._db.execute(
            select(CartItem).where(CartItem.session_id == session_id)
        ).scalars().all()
        if not lines:
            return 0
        snapshots = [row_snapshot(line) for line in lines]
        for line in lines:
            self._db.delete(line)
        safe_commit(self._db)
        for old in snapshots:
            self._changes.deleted(CART_ITEMS, old)
        return len(snapshots)

    def _delete(self, line: CartItem) -> None:
        old = row_snapshot(line)
        self._db.delete(line)
        safe_commit(self._db)
        self._changes.deleted(CART_ITEMS, old)

    def build_cart_output(self, session_id: int) -> CartOutput:
        """Cart with dish names, unit prices and total."""
        lines = self.list_items(session_id)
        items = [cart_item_output(line) for line in lines]
        total = sum((line.dish.price * line.quantity for line in lines), Decimal("0"))
        return CartOutput(
            session_id=session_id,
            items=items,
            total=float(total),
            item_count=sum(line.quantity for line in lines),
        )


def cart_item_output(line: CartItem) -> CartItemOutput:
    return CartItemOutput(
        id=line.id,
        session_id=line.session_id,
        dish_id=line.dish_id,
        dish_name=line.dish.name,
        unit_price=float(line.dish.price),
        quantity=line.quantity,
        notes=line.notes,
        created_at=line.created_at,
    )
