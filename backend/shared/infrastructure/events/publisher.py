"""
Core change publishing with retry and size validation.
"""

from __future__ import annotations

import asyncio
import random

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from shared.config.settings import settings
from shared.config.logging import get_logger
from .event_types import MAX_EVENT_SIZE
from .event_schema import ChangeEvent

logger = get_logger(__name__)


def retry_delay_with_jitter(attempt: int, base_delay: float, max_delay: float = 5.0) -> float:
    """Exponential backoff (base * 2^attempt) capped at ``max_delay``, with +-25% jitter."""
    delay = min(base_delay * (2 ** attempt), max_delay)
    return max(0.0, delay + delay * random.uniform(-0.25, 0.25))


def _validate_event_size(event_json: str, table: str) -> None:
    size = len(event_json.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(
            f"Change event for {table} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes"
        )


async def publish_event(
    redis_client: redis.Redis,
    channel: str,
    event: ChangeEvent,
) -> int:
    """
    Publish a change event to one Redis channel.

    Retries ``redis_publish_max_retries`` times with jittered exponential
    backoff.

    Returns:
        Number of subscribers that received the message.

    Raises:
        ValueError: If the serialized event is too large.
        redis.exceptions.RedisError: If every attempt failed.
    """
    event_json = event.to_json()
    _validate_event_size(event_json, event.table)

    last_error: Exception | None = None
    for attempt in range(settings.redis_publish_max_retries):
        try:
            return await redis_client.publish(channel, event_json)
        except (RedisConnectionError, RedisTimeoutError) as e:
            last_error = e
            if attempt < settings.redis_publish_max_retries - 1:
                delay = retry_delay_with_jitter(attempt, settings.redis_publish_retry_delay)
                logger.warning(
                    "Redis publish failed, retrying",
                    channel=channel,
                    attempt=attempt + 1,
                    delay_seconds=round(delay, 2),
                    error=str(e),
                )
                await asyncio.sleep(delay)

    logger.error(
        "Redis publish failed after all retries",
        channel=channel,
        table=event.table,
        error=str(last_error),
    )
    raise last_error  # type: ignore[misc]
