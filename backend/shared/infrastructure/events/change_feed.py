"""
Change feed: the subscribing side of the row-change stream.

Delivery is at-least-once from the consumer's point of view: a reconnect may
replay nothing and a publisher retry may deliver twice. Consumers only use
events as a cue to refetch, so both are harmless.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

import redis.asyncio as redis
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.config.logging import get_logger
from .event_schema import ChangeEvent
from .redis_pool import get_redis_pool

logger = get_logger(__name__)


class ChangeFeed(ABC):
    """Source of row-change events for a set of channels."""

    @abstractmethod
    def subscribe(self, channels: list[str]) -> AsyncIterator[ChangeEvent]:
        """
        Yield events published on any of ``channels`` until the iterator is
        closed. Closing the iterator (``aclose()``) unsubscribes.
        """


class RedisChangeFeed(ChangeFeed):
    """ChangeFeed over Redis pub/sub."""

    def __init__(self, redis_client: redis.Redis | None = None, poll_timeout: float = 1.0):
        self._redis = redis_client
        self._poll_timeout = poll_timeout

    async def subscribe(self, channels: list[str]) -> AsyncIterator[ChangeEvent]:
        client = self._redis or await get_redis_pool()
        pubsub = client.pubsub()
        await pubsub.subscribe(*channels)
        logger.debug("Change feed subscribed", channels=channels)

        try:
            while True:
                try:
                    msg = await pubsub.get_message(
                        ignore_subscribe_messages=True, timeout=self._poll_timeout
                    )
                except RedisTimeoutError:
                    continue

                if msg is None or msg.get("type") != "message":
                    continue

                try:
                    event = ChangeEvent.from_json(msg["data"])
                except (ValueError, TypeError, json.JSONDecodeError) as e:
                    logger.warning(
                        "Dropping malformed change event",
                        channel=msg.get("channel"),
                        error=str(e),
                    )
                    continue

                yield event
        finally:
            await pubsub.unsubscribe(*channels)
            await pubsub.aclose()
            logger.debug("Change feed unsubscribed", channels=channels)
