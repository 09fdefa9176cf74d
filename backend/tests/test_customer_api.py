"""
Tests for the customer-facing API: QR lookup, PIN access, shared cart,
order submission, cancellation, bill and the live view socket.
"""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from rest_api.main import app
from rest_api.routers.diner.live import get_change_feed, get_snapshot_fetcher
from rest_api.services.domain import SessionService
from rest_api.services.live import SnapshotFetcher
from shared.infrastructure.events import ChangeFeed
from shared.security.auth import sign_table_token


class TestPublicTables:
    def test_lookup(self, client, open_session, seed_table):
        response = client.get(f"/api/public/tables/{seed_table.token}")
        assert response.status_code == 200
        data = response.json()
        assert data["table_number"] == "7"
        assert data["restaurant_name"] == "Trattoria Test"
        assert data["has_open_session"] is True

    def test_unknown_token(self, client, seed_table):
        assert client.get("/api/public/tables/not-a-token").status_code == 404

    def test_menu_before_joining(self, client, seed_table, seed_dishes):
        response = client.get(f"/api/public/tables/{seed_table.token}/menu")
        assert response.status_code == 200
        dishes = response.json()["categories"][0]["dishes"]
        assert [d["name"] for d in dishes] == ["Carbonara", "Tiramisu"]

    def test_inactive_restaurant_hidden(self, client, db_session, seed_table):
        seed_table.restaurant.is_active = False
        db_session.commit()
        assert client.get(f"/api/public/tables/{seed_table.token}").status_code == 404

    def test_public_booking_ignores_table_choice(self, client, seed_table):
        response = client.post(
            f"/api/public/restaurants/{seed_table.restaurant_id}/bookings",
            json={
                "name": "Bianchi",
                "date_time": "2024-05-10T20:00:00",
                "guests": 2,
                "table_id": 424242,
            },
        )
        assert response.status_code == 201
        assert response.json()["table_id"] == seed_table.id
        assert response.json()["status"] == "CONFIRMED"


class TestPinAccess:
    def test_correct_pin(self, client, open_session):
        response = client.post(f"/api/diner/tables/{open_session.table_id}/access", json={"pin": " 1234 "})
        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == open_session.id

        session = client.get("/api/diner/session", headers={"X-Table-Token": data["table_token"]})
        assert session.status_code == 200
        assert "session_pin" not in session.json()

    def test_wrong_pin(self, client, open_session):
        response = client.post(f"/api/diner/tables/{open_session.table_id}/access", json={"pin": "9999"})
        assert response.status_code == 401

    def test_table_without_session(self, client, seed_table):
        response = client.post(f"/api/diner/tables/{seed_table.id}/access", json={"pin": "1234"})
        assert response.status_code == 409

    def test_unknown_table(self, client, seed_restaurant):
        response = client.post("/api/diner/tables/999999/access", json={"pin": "1234"})
        assert response.status_code == 404

    def test_missing_token(self, client, open_session):
        assert client.get("/api/diner/cart").status_code == 401

    def test_forged_token(self, client, open_session):
        response = client.get("/api/diner/cart", headers={"X-Table-Token": "abc.def.ghi"})
        assert response.status_code == 401


class TestCartAndOrders:
    def test_shared_cart_flow(self, client, table_headers, seed_dishes, published):
        carbonara, tiramisu, _ = seed_dishes

        first = client.post("/api/diner/cart/items", json={"dish_id": carbonara.id}, headers=table_headers)
        assert first.status_code == 201
        merged = client.post(
            "/api/diner/cart/items", json={"dish_id": carbonara.id, "quantity": 2}, headers=table_headers
        )
        assert merged.json()["id"] == first.json()["id"]
        assert merged.json()["quantity"] == 3

        client.post(
            "/api/diner/cart/items",
            json={"dish_id": tiramisu.id, "notes": "no cocoa"},
            headers=table_headers,
        )
        cart = client.get("/api/diner/cart", headers=table_headers).json()
        assert len(cart["items"]) == 2
        assert cart["total"] == 43.5

        assert [e.table for batch in published for e in batch] == ["cart_items"] * 3

    def test_inactive_dish_rejected(self, client, table_headers, seed_dishes):
        response = client.post(
            "/api/diner/cart/items", json={"dish_id": seed_dishes[2].id}, headers=table_headers
        )
        assert response.status_code == 404

    def test_zero_quantity_removes_line(self, client, table_headers, seed_dishes):
        line = client.post(
            "/api/diner/cart/items", json={"dish_id": seed_dishes[0].id}, headers=table_headers
        ).json()
        response = client.patch(
            f"/api/diner/cart/items/{line['id']}", json={"quantity": 0}, headers=table_headers
        )
        assert response.status_code == 200
        assert response.json() is None
        assert client.get("/api/diner/cart", headers=table_headers).json()["items"] == []

    def test_remove_missing_line_succeeds(self, client, table_headers):
        assert client.delete("/api/diner/cart/items/123456", headers=table_headers).status_code == 204

    def test_submit_cancel_and_bill(self, client, table_headers, seed_dishes, published):
        client.post(
            "/api/diner/cart/items", json={"dish_id": seed_dishes[0].id, "quantity": 2}, headers=table_headers
        )
        client.post("/api/diner/cart/items", json={"dish_id": seed_dishes[1].id}, headers=table_headers)
        published.clear()

        response = client.post("/api/diner/orders", headers=table_headers)
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "OPEN"
        assert order["total_amount"] == 31.0
        assert {i["status"] for i in order["items"]} == {"PENDING"}
        assert client.get("/api/diner/cart", headers=table_headers).json()["items"] == []
        assert [e.table for e in published[0]] == ["orders", "order_items", "order_items", "cart_items", "cart_items"]

        tiramisu_line = next(i for i in order["items"] if i["dish_id"] == seed_dishes[1].id)
        cancelled = client.post(f"/api/diner/order-items/{tiramisu_line['id']}/cancel", headers=table_headers)
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "CANCELLED"

        bill = client.get("/api/diner/bill", headers=table_headers).json()
        assert bill["total"] == 25.0
        assert [line["kind"] for line in bill["lines"]] == ["dish"]

    def test_empty_cart_cannot_be_submitted(self, client, table_headers):
        assert client.post("/api/diner/orders", headers=table_headers).status_code == 400

    def test_cancel_order_after_kitchen_started(
        self, client, db_session, table_headers, seed_dishes, staff_headers
    ):
        client.post("/api/diner/cart/items", json={"dish_id": seed_dishes[0].id}, headers=table_headers)
        order = client.post("/api/diner/orders", headers=table_headers).json()
        item_id = order["items"][0]["id"]
        client.patch(f"/api/kitchen/order-items/{item_id}", json={"status": "preparing"}, headers=staff_headers)

        response = client.post(f"/api/diner/orders/{order['id']}/cancel", headers=table_headers)
        assert response.status_code == 409

    def test_closed_session_token_cannot_order(self, client, db_session, table_headers, open_session, seed_dishes):
        SessionService(db_session).close_session(open_session.id)
        response = client.post(
            "/api/diner/cart/items", json={"dish_id": seed_dishes[0].id}, headers=table_headers
        )
        assert response.status_code == 400
        session = client.get("/api/diner/session", headers=table_headers).json()
        assert session["status"] == "CLOSED"
        assert client.delete("/api/diner/cart/items/1", headers=table_headers).status_code == 400
        assert client.delete("/api/diner/cart", headers=table_headers).status_code == 400


# =============================================================================
# Live view socket
# =============================================================================


class IdleFeed(ChangeFeed):
    """A feed on which nothing ever happens."""

    async def subscribe(self, channels):
        await asyncio.Event().wait()
        yield


class DownFeed(ChangeFeed):
    """A feed that cannot reach Redis."""

    async def subscribe(self, channels):
        raise ConnectionError("redis down")
        yield


class StaticFetcher(SnapshotFetcher):
    def __init__(self, status="OPEN"):
        self.status = status

    async def fetch(self, slice_name, session_id):
        if slice_name == "session":
            return {"id": session_id, "status": self.status}
        if slice_name == "cart":
            return [{"id": 1, "dish_name": "Carbonara", "unit_price": 12.5, "quantity": 2}]
        return []


@pytest.fixture
def live_overrides():
    def install(fetcher, feed=IdleFeed):
        app.dependency_overrides[get_change_feed] = feed
        app.dependency_overrides[get_snapshot_fetcher] = lambda: fetcher

    yield install
    app.dependency_overrides.pop(get_change_feed, None)
    app.dependency_overrides.pop(get_snapshot_fetcher, None)


class TestLiveView:
    def test_bad_token_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws/diner?table_token=garbage"):
                pass
        assert exc.value.code == 4001

    def test_snapshot_then_heartbeat(self, client, live_overrides):
        live_overrides(StaticFetcher())
        token = sign_table_token(1, 2, 3)
        with client.websocket_connect(f"/ws/diner?table_token={token}") as ws:
            snapshot = ws.receive_json()
            assert snapshot["type"] == "SNAPSHOT"
            assert snapshot["session"]["id"] == 3
            assert snapshot["cart_total"] == 25.0

            ws.send_text("ping")
            assert ws.receive_json() == {"type": "pong"}

    def test_closed_session(self, client, live_overrides):
        live_overrides(StaticFetcher(status="CLOSED"))
        token = sign_table_token(1, 2, 3)
        with client.websocket_connect(f"/ws/diner?table_token={token}") as ws:
            message = ws.receive_json()
            assert message["type"] == "SESSION_CLOSED"
            assert message["session"]["status"] == "CLOSED"
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
            assert exc.value.code == 1000

    def test_feed_failure_closes_with_error_code(self, client, live_overrides):
        live_overrides(StaticFetcher(), feed=DownFeed)
        token = sign_table_token(1, 2, 3)
        with client.websocket_connect(f"/ws/diner?table_token={token}") as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                while True:
                    ws.receive_json()
            assert exc.value.code == 1011
