"""
Tests for BillingService.compute_bill.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from rest_api.services.domain import BillingService, CartService, OrderService
from rest_api.services.domain.billing_service import BillSessionNotFoundError
from shared.config.constants import OrderItemStatus

MONDAY_LUNCH = datetime(2024, 1, 1, 13, 0)


@pytest.fixture
def ordered_session(db_session, open_session, seed_dishes):
    cart = CartService(db_session)
    cart.add_item(open_session.id, seed_dishes[0].id, 2)
    cart.add_item(open_session.id, seed_dishes[1].id, 1)
    OrderService(db_session).submit(open_session.id)
    return open_session


def test_dish_lines_only(db_session, ordered_session):
    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)

    assert [line.kind for line in bill.lines] == ["dish", "dish"]
    assert bill.subtotal_dishes == pytest.approx(31.00)
    assert bill.coperto_total == 0
    assert bill.ayce_total == 0
    assert bill.total == pytest.approx(31.00)


def test_cancelled_items_not_billed(db_session, ordered_session):
    order = OrderService(db_session).list_session_orders(ordered_session.id)[0]
    OrderService(db_session).cancel_item_by_customer(ordered_session.id, order.items[1].id)

    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)
    assert len(bill.lines) == 1
    assert bill.total == pytest.approx(25.00)


def test_cancelled_orders_not_billed(db_session, ordered_session):
    order = OrderService(db_session).list_session_orders(ordered_session.id)[0]
    OrderService(db_session).cancel_order_by_customer(ordered_session.id, order.id)

    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)
    assert bill.lines == []
    assert bill.total == 0


def test_coperto_and_ayce_per_guest(db_session, ordered_session, seed_restaurant):
    seed_restaurant.cover_charge_per_person = Decimal("2.00")
    seed_restaurant.all_you_can_eat = True
    seed_restaurant.ayce_price = Decimal("20.00")
    ordered_session.coperto_enabled = True
    ordered_session.ayce_enabled = True
    ordered_session.customer_count = 3
    db_session.commit()

    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)

    virtual = [line for line in bill.lines if line.kind != "dish"]
    assert [(line.kind, line.quantity, line.unit_price) for line in virtual] == [
        ("coperto", 3, 2.0),
        ("ayce", 3, 20.0),
    ]
    assert bill.coperto_total == pytest.approx(6.0)
    assert bill.ayce_total == pytest.approx(60.0)
    assert bill.total == pytest.approx(31.0 + 6.0 + 60.0)


def test_coperto_skipped_when_session_flag_off(db_session, ordered_session, seed_restaurant):
    seed_restaurant.cover_charge_per_person = Decimal("2.00")
    db_session.commit()

    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)
    assert all(line.kind == "dish" for line in bill.lines)


def test_served_items_are_billed(db_session, ordered_session):
    service = OrderService(db_session)
    order = service.list_session_orders(ordered_session.id)[0]
    service.update_item_status(order.restaurant_id, order.items[0].id, OrderItemStatus.READY)
    service.update_item_status(order.restaurant_id, order.items[0].id, OrderItemStatus.SERVED)

    bill = BillingService(db_session).compute_bill(ordered_session.id, now=MONDAY_LUNCH)
    assert bill.total == pytest.approx(31.00)


def test_other_restaurant_cannot_read_bill(db_session, ordered_session, other_restaurant):
    with pytest.raises(BillSessionNotFoundError):
        BillingService(db_session).compute_bill(ordered_session.id, restaurant_id=other_restaurant.id)
