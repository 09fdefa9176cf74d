"""
Live view state and its reducer.

The view never patches rows from change events. An event only triggers a
refetch of one slice (cart, orders or session); the fetched snapshot replaces
that slice wholesale. Each refetch carries the sequence number of the event
that caused it, and a snapshot older than the one already applied for its
slice is dropped, so the most recent fetch always wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from shared.config.constants import SessionStatus
from shared.infrastructure.events import (
    CART_ITEMS,
    ORDERS,
    ORDER_ITEMS,
    TABLE_SESSIONS,
    ChangeEvent,
    channel_filtered,
    channel_table,
)

CART = "cart"
ORDERS_SLICE = "orders"
SESSION = "session"
ALL_SLICES = (SESSION, CART, ORDERS_SLICE)


@dataclass(frozen=True)
class Snapshot:
    """Result of one refetch."""

    slice: str
    data: Any
    seq: int


@dataclass(frozen=True)
class LiveViewState:
    session_id: int
    session: dict[str, Any] | None = None
    cart: tuple[dict[str, Any], ...] = ()
    orders: tuple[dict[str, Any], ...] = ()
    closed: bool = False
    applied: dict[str, int] = field(default_factory=dict)

    @property
    def cart_total(self) -> float:
        return round(sum(line["unit_price"] * line["quantity"] for line in self.cart), 2)

    @property
    def order_ids(self) -> frozenset[int]:
        return frozenset(order["id"] for order in self.orders)

    @property
    def ready(self) -> bool:
        """Every slice has been fetched at least once."""
        return all(name in self.applied for name in ALL_SLICES)

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "SNAPSHOT",
            "session": self.session,
            "cart": list(self.cart),
            "orders": list(self.orders),
            "cart_total": self.cart_total,
        }


def initial_state(session_id: int) -> LiveViewState:
    return LiveViewState(session_id=session_id)


def subscription_channels(session_id: int) -> list[str]:
    """Channels a session's live view listens on."""
    return [
        channel_filtered(CART_ITEMS, "session_id", session_id),
        channel_filtered(ORDERS, "table_session_id", session_id),
        # order_items has no session column to filter on
        channel_table(ORDER_ITEMS),
        channel_filtered(TABLE_SESSIONS, "id", session_id),
    ]


def slices_for_event(state: LiveViewState, event: ChangeEvent) -> tuple[str, ...]:
    """Slices an event makes stale. Empty when it concerns another session."""
    row = event.row
    if event.table == CART_ITEMS:
        return (CART,) if row.get("session_id") == state.session_id else ()
    if event.table == ORDERS:
        return (ORDERS_SLICE,) if row.get("table_session_id") == state.session_id else ()
    if event.table == ORDER_ITEMS:
        # New orders arrive through the orders channel; items only matter once
        # their order is known, or before the first orders fetch.
        if ORDERS_SLICE not in state.applied or row.get("order_id") in state.order_ids:
            return (ORDERS_SLICE,)
        return ()
    if event.table == TABLE_SESSIONS:
        return (SESSION,) if row.get("id") == state.session_id else ()
    return ()


def reduce(state: LiveViewState, snapshot: Snapshot) -> LiveViewState:
    """
    Apply a snapshot. Returns ``state`` itself when the snapshot is stale or
    the view is already closed.
    """
    if state.closed:
        return state
    if snapshot.seq < state.applied.get(snapshot.slice, -1):
        return state

    applied = {**state.applied, snapshot.slice: snapshot.seq}

    if snapshot.slice == CART:
        return replace(state, cart=tuple(snapshot.data), applied=applied)
    if snapshot.slice == ORDERS_SLICE:
        return replace(state, orders=tuple(snapshot.data), applied=applied)
    if snapshot.slice == SESSION:
        session = snapshot.data
        closed = session is None or session.get("status") != SessionStatus.OPEN.value
        return replace(state, session=session, closed=closed, applied=applied)
    raise ValueError(f"Unknown live view slice: {snapshot.slice}")
