"""
Live View Synchronizer.

Keeps one session's view (session row, cart, orders with items) current:
subscribe to the session's change channels, refetch the affected slice on
every event, feed the snapshot to the reducer and emit the new state.

Lifecycle:
    sync = LiveViewSynchronizer(session_id, RedisChangeFeed(), DatabaseSnapshotFetcher())
    async with sync:
        async for state in sync.states():
            await websocket.send_json(state.to_message())

A newer event for a slice cancels that slice's in-flight refetch. A failed
refetch is retried with backoff, and any event for the session also refetches
slices that never loaded. Leaving the ``async with`` block cancels every
in-flight refetch and unsubscribes. If the change feed itself fails,
``states()`` raises LiveViewFeedError.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from starlette.concurrency import run_in_threadpool

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db_context
from shared.infrastructure.events import ChangeEvent, ChangeFeed
from shared.infrastructure.events.publisher import retry_delay_with_jitter
from rest_api.models import TableSession
from rest_api.services.domain.cart_service import CartService, cart_item_output
from rest_api.services.domain.order_service import OrderService, order_output
from rest_api.services.domain.session_service import session_output
from rest_api.services.live.reducer import (
    ALL_SLICES,
    CART,
    ORDERS_SLICE,
    SESSION,
    LiveViewState,
    Snapshot,
    initial_state,
    reduce,
    slices_for_event,
    subscription_channels,
)

logger = get_logger(__name__)

_END = object()


class LiveViewFeedError(Exception):
    """The change feed failed; the view can no longer be kept current."""


class SnapshotFetcher(ABC):
    """Loads the current content of one live view slice."""

    @abstractmethod
    async def fetch(self, slice_name: str, session_id: int) -> Any:
        """JSON-ready data for ``slice_name``."""


class DatabaseSnapshotFetcher(SnapshotFetcher):
    """
    Reads slices from the database in the threadpool.

    A cancelled fetch stops being awaited at once; the worker thread finishes
    its query and its result is discarded.
    """

    async def fetch(self, slice_name: str, session_id: int) -> Any:
        return await run_in_threadpool(self._fetch_sync, slice_name, session_id)

    def _fetch_sync(self, slice_name: str, session_id: int) -> Any:
        with get_db_context() as db:
            if slice_name == CART:
                return [
                    cart_item_output(line).model_dump(mode="json")
                    for line in CartService(db).list_items(session_id)
                ]
            if slice_name == ORDERS_SLICE:
                return [
                    order_output(order).model_dump(mode="json")
                    for order in OrderService(db).list_session_orders(session_id)
                ]
            if slice_name == SESSION:
                session = db.get(TableSession, session_id)
                return session_output(session).model_dump(mode="json") if session else None
        raise ValueError(f"Unknown live view slice: {slice_name}")


class LiveViewSynchronizer:
    """Subscribe-and-refetch loop for one session."""

    def __init__(
        self,
        session_id: int,
        feed: ChangeFeed,
        fetcher: SnapshotFetcher,
        refetch_timeout: float | None = None,
        refetch_retries: int | None = None,
        retry_delay: float | None = None,
    ):
        self.session_id = session_id
        self._feed = feed
        self._fetcher = fetcher
        self._refetch_timeout = refetch_timeout or settings.live_view_refetch_timeout
        self._refetch_retries = (
            settings.live_view_refetch_retries if refetch_retries is None else refetch_retries
        )
        self._retry_delay = retry_delay or settings.live_view_refetch_retry_delay
        self._state = initial_state(session_id)
        self._results: asyncio.Queue[Any] = asyncio.Queue()
        self._inflight: dict[str, asyncio.Task] = {}
        self._events: AsyncIterator[ChangeEvent] | None = None
        self._listener: asyncio.Task | None = None
        self._feed_error: Exception | None = None
        self._seq = 0

    @property
    def state(self) -> LiveViewState:
        return self._state

    @property
    def inflight(self) -> dict[str, asyncio.Task]:
        return dict(self._inflight)

    async def __aenter__(self) -> "LiveViewSynchronizer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Subscribe, then fetch every slice once."""
        self._events = self._feed.subscribe(subscription_channels(self.session_id))
        self._listener = asyncio.create_task(self._listen())
        for slice_name in ALL_SLICES:
            self._refetch(slice_name)
        logger.debug("Live view started", session_id=self.session_id)

    async def close(self) -> None:
        """Cancel in-flight refetches, stop listening and unsubscribe."""
        tasks = list(self._inflight.values())
        if self._listener is not None:
            tasks.append(self._listener)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        self._listener = None

        if self._events is not None:
            await self._events.aclose()
            self._events = None
        logger.debug("Live view closed", session_id=self.session_id)

    async def _listen(self) -> None:
        try:
            async for event in self._events:
                stale = slices_for_event(self._state, event)
                if not stale:
                    continue
                for slice_name in ALL_SLICES:
                    if slice_name in stale or self._never_loaded(slice_name):
                        self._refetch(slice_name)
        except Exception as e:
            logger.error("Live view change feed failed", session_id=self.session_id, error=str(e))
            self._feed_error = e
        finally:
            self._results.put_nowait(_END)

    def _never_loaded(self, slice_name: str) -> bool:
        return slice_name not in self._state.applied and slice_name not in self._inflight

    def _refetch(self, slice_name: str) -> None:
        self._seq += 1
        previous = self._inflight.pop(slice_name, None)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self._fetch(slice_name, self._seq))
        self._inflight[slice_name] = task
        task.add_done_callback(lambda t, name=slice_name: self._forget(name, t))

    def _forget(self, slice_name: str, task: asyncio.Task) -> None:
        if self._inflight.get(slice_name) is task:
            del self._inflight[slice_name]

    async def _fetch(self, slice_name: str, seq: int) -> None:
        attempts = self._refetch_retries + 1
        for attempt in range(attempts):
            if attempt:
                await asyncio.sleep(retry_delay_with_jitter(attempt - 1, self._retry_delay))
            try:
                data = await asyncio.wait_for(
                    self._fetcher.fetch(slice_name, self.session_id),
                    timeout=self._refetch_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Live view refetch timed out",
                    session_id=self.session_id,
                    slice=slice_name,
                    attempt=attempt + 1,
                )
                continue
            except Exception as e:
                logger.warning(
                    "Live view refetch failed",
                    session_id=self.session_id,
                    slice=slice_name,
                    attempt=attempt + 1,
                    error=str(e),
                )
                continue
            await self._results.put(Snapshot(slice=slice_name, data=data, seq=seq))
            return

        # The next event for the session refetches again
        logger.error(
            "Live view refetch gave up",
            session_id=self.session_id,
            slice=slice_name,
            attempts=attempts,
        )

    async def states(self) -> AsyncIterator[LiveViewState]:
        """
        Yield the view state each time it changes, once every slice has been
        fetched. Ends after yielding a closed state, or when the feed ends.

        Raises:
            LiveViewFeedError: If the change feed failed.
        """
        while True:
            item = await self._results.get()
            if item is _END:
                if self._feed_error is not None:
                    raise LiveViewFeedError(str(self._feed_error)) from self._feed_error
                return
            new_state = reduce(self._state, item)
            if new_state is self._state:
                continue
            self._state = new_state
            if new_state.closed:
                yield new_state
                return
            if new_state.ready:
                yield new_state
