"""
Row-change publishing for domain writes.

Domain services record what they changed in a ``ChangeLog`` once their
transaction has committed; routers hand the log to FastAPI background tasks
so publishing happens after the response and never fails the request.

Usage:
    changes = ChangeLog()
    service = CartService(db, changes)
    service.add_item(...)
    schedule_changes(background_tasks, changes)
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis
from sqlalchemy import inspect

from shared.config.logging import get_logger
from .event_types import INSERT, UPDATE, DELETE
from .event_schema import ChangeEvent
from .channels import channels_for_row
from .publisher import publish_event
from .redis_pool import get_redis_pool

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def row_snapshot(obj: Any) -> dict[str, Any]:
    """Column values of an ORM instance as a JSON-friendly dict."""
    mapper = inspect(obj).mapper
    return {attr.key: _plain(getattr(obj, attr.key)) for attr in mapper.column_attrs}


class ChangeLog:
    """Collects row changes of one unit of work, in commit order."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    def __len__(self) -> int:
        return len(self.events)

    def inserted(self, obj: Any) -> None:
        self.events.append(
            ChangeEvent(table=obj.__tablename__, type=INSERT, record=row_snapshot(obj))
        )

    def updated(self, obj: Any, old_record: dict[str, Any] | None = None) -> None:
        self.events.append(
            ChangeEvent(
                table=obj.__tablename__,
                type=UPDATE,
                record=row_snapshot(obj),
                old_record=old_record or {},
            )
        )

    def deleted(self, table: str, old_record: dict[str, Any]) -> None:
        self.events.append(ChangeEvent(table=table, type=DELETE, old_record=old_record))


async def publish_row_change(redis_client: redis.Redis, event: ChangeEvent) -> int:
    """
    Fan one change out to the unscoped table channel and every filtered
    channel matching the old or new row.

    Returns the total number of receiving subscribers.
    """
    received = 0
    for channel in channels_for_row(event.table, event.record, event.old_record):
        received += await publish_event(redis_client, channel, event)
    return received


async def publish_changes_bg(events: list[ChangeEvent]) -> None:
    """Background task: publish committed changes, logging instead of raising."""
    try:
        redis_client = await get_redis_pool()
    except Exception as e:
        logger.error("Redis unavailable, changes not published", count=len(events), error=str(e))
        return

    for event in events:
        try:
            await publish_row_change(redis_client, event)
        except Exception as e:
            logger.error(
                "Failed to publish row change (bg)",
                table=event.table,
                change=event.type,
                error=str(e),
            )


def schedule_changes(background_tasks: "BackgroundTasks", changes: ChangeLog) -> None:
    """Queue the publication of ``changes`` to run after the response is sent."""
    if changes.events:
        background_tasks.add_task(publish_changes_bg, list(changes.events))
