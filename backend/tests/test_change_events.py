"""
Tests for the row-change stream: channel naming, event validation,
ChangeLog recording and publishing with retry.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rest_api.models import CartItem
from shared.infrastructure.events import (
    ChangeEvent,
    ChangeLog,
    channel_filtered,
    channel_table,
    channels_for_row,
    publish_event,
    publish_row_change,
    row_snapshot,
)


class TestChannels:
    def test_table_channel(self):
        assert channel_table("cart_items") == "changes:cart_items"

    def test_filtered_channel(self):
        assert channel_filtered("orders", "table_session_id", 5) == "changes:orders:table_session_id=5"

    def test_unknown_table(self):
        with pytest.raises(ValueError):
            channel_table("payments")

    def test_unfiltered_column(self):
        with pytest.raises(ValueError):
            channel_filtered("cart_items", "dish_id", 1)

    def test_update_reaches_old_and_new_filter_values(self):
        channels = channels_for_row(
            "table_sessions",
            {"id": 3, "table_id": 8, "restaurant_id": 1},
            {"id": 3, "table_id": 9, "restaurant_id": 1},
        )
        assert channels == [
            "changes:table_sessions",
            "changes:table_sessions:id=3",
            "changes:table_sessions:table_id=8",
            "changes:table_sessions:table_id=9",
            "changes:table_sessions:restaurant_id=1",
        ]


class TestChangeEvent:
    def test_round_trip(self):
        event = ChangeEvent(table="cart_items", type="INSERT", record={"id": 1, "session_id": 2})
        parsed = ChangeEvent.from_json(event.to_json())
        assert parsed.record == {"id": 1, "session_id": 2}
        assert parsed.ts is not None

    def test_delete_needs_old_record(self):
        with pytest.raises(ValueError):
            ChangeEvent(table="cart_items", type="DELETE")

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            ChangeEvent(table="cart_items", type="TRUNCATE", record={"id": 1})

    def test_row_falls_back_to_old_record(self):
        event = ChangeEvent(table="cart_items", type="DELETE", old_record={"id": 1, "session_id": 4})
        assert event.row["session_id"] == 4


class TestChangeLog:
    def test_records_in_order(self, db_session, open_session, seed_dishes):
        line = CartItem(session_id=open_session.id, dish_id=seed_dishes[0].id, quantity=1)
        db_session.add(line)
        db_session.commit()

        changes = ChangeLog()
        changes.inserted(line)
        old = row_snapshot(line)
        line.quantity = 2
        db_session.commit()
        changes.updated(line, old)
        changes.deleted("cart_items", row_snapshot(line))

        assert [e.type for e in changes.events] == ["INSERT", "UPDATE", "DELETE"]
        assert changes.events[1].old_record["quantity"] == 1
        assert changes.events[1].record["quantity"] == 2
        assert len(changes) == 3

    def test_snapshot_is_json_friendly(self, db_session, seed_dishes):
        snapshot = row_snapshot(seed_dishes[0])
        json.dumps(snapshot)
        assert snapshot["price"] == 12.5


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_row_change_fans_out(self):
        redis_client = AsyncMock()
        redis_client.publish.return_value = 1
        event = ChangeEvent(table="cart_items", type="INSERT", record={"id": 1, "session_id": 2})

        received = await publish_row_change(redis_client, event)

        channels = [call.args[0] for call in redis_client.publish.call_args_list]
        assert channels == ["changes:cart_items", "changes:cart_items:session_id=2"]
        assert received == 2

    @pytest.mark.asyncio
    async def test_publish_retries_then_succeeds(self):
        redis_client = AsyncMock()
        redis_client.publish.side_effect = [RedisConnectionError("down"), 3]
        event = ChangeEvent(table="orders", type="INSERT", record={"id": 1})

        with patch("shared.infrastructure.events.publisher.asyncio.sleep", new=AsyncMock()):
            assert await publish_event(redis_client, "changes:orders", event) == 3
        assert redis_client.publish.call_count == 2

    @pytest.mark.asyncio
    async def test_publish_gives_up(self):
        redis_client = AsyncMock()
        redis_client.publish.side_effect = RedisConnectionError("down")
        event = ChangeEvent(table="orders", type="INSERT", record={"id": 1})

        with patch("shared.infrastructure.events.publisher.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RedisConnectionError):
                await publish_event(redis_client, "changes:orders", event)

    @pytest.mark.asyncio
    async def test_oversized_event_rejected(self):
        redis_client = AsyncMock()
        event = ChangeEvent(table="orders", type="INSERT", record={"id": 1, "blob": "x" * 70_000})
        with pytest.raises(ValueError):
            await publish_event(redis_client, "changes:orders", event)
        redis_client.publish.assert_not_called()
