"""
Tests for the pricing schedule lookup (cover charge, AYCE, service hours).
"""

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from rest_api.services.domain.pricing import (
    current_ayce,
    current_coperto,
    is_restaurant_open,
    meal_period,
)

# 2024-01-01 is a Monday
MONDAY_LUNCH = datetime(2024, 1, 1, 13, 0)
MONDAY_DINNER = datetime(2024, 1, 1, 20, 30)
MONDAY_MORNING = datetime(2024, 1, 1, 9, 0)
TUESDAY_LUNCH = datetime(2024, 1, 2, 13, 0)


def restaurant(**overrides):
    values = dict(
        cover_charge_per_person=Decimal("0"),
        all_you_can_eat=False,
        ayce_price=Decimal("0"),
        ayce_max_orders=0,
        weekly_coperto=None,
        weekly_ayce=None,
        weekly_service_hours=None,
        lunch_time_start="12:00",
        dinner_time_start="19:00",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestMealPeriod:
    def test_lunch(self):
        assert meal_period(MONDAY_LUNCH, "12:00", "19:00") == "lunch"

    def test_dinner_boundary_inclusive(self):
        assert meal_period(datetime(2024, 1, 1, 19, 0), "12:00", "19:00") == "dinner"

    def test_before_lunch(self):
        assert meal_period(MONDAY_MORNING, "12:00", "19:00") is None

    def test_custom_boundaries(self):
        assert meal_period(datetime(2024, 1, 1, 18, 0), "11:30", "18:00") == "dinner"


class TestCoperto:
    def test_legacy_flat_price(self):
        price = current_coperto(restaurant(cover_charge_per_person=Decimal("2.50")), MONDAY_LUNCH)
        assert price.enabled is True
        assert price.price == Decimal("2.50")

    def test_legacy_zero_is_disabled(self):
        assert current_coperto(restaurant(), MONDAY_LUNCH).enabled is False

    def test_schedule_disabled(self):
        r = restaurant(
            cover_charge_per_person=Decimal("3"),
            weekly_coperto={"enabled": False, "defaultPrice": 2},
        )
        price = current_coperto(r, MONDAY_LUNCH)
        assert price.enabled is False
        assert price.price == Decimal("0")

    def test_default_price_without_weekly(self):
        r = restaurant(weekly_coperto={"enabled": True, "defaultPrice": 2, "useWeeklySchedule": False})
        assert current_coperto(r, MONDAY_DINNER).price == Decimal("2")

    def test_weekly_meal_price(self):
        r = restaurant(weekly_coperto={
            "enabled": True,
            "defaultPrice": 2,
            "useWeeklySchedule": True,
            "schedule": {
                "monday": {
                    "lunch": {"enabled": True, "price": 1.5},
                    "dinner": {"enabled": False, "price": 3},
                },
            },
        })
        assert current_coperto(r, MONDAY_LUNCH).price == Decimal("1.5")
        assert current_coperto(r, MONDAY_DINNER).enabled is False
        # No entry for Tuesday: default applies
        assert current_coperto(r, TUESDAY_LUNCH).price == Decimal("2")
        # Outside meal periods: default applies
        assert current_coperto(r, MONDAY_MORNING).price == Decimal("2")


class TestAyce:
    def test_legacy_columns(self):
        r = restaurant(all_you_can_eat=True, ayce_price=Decimal("24.90"), ayce_max_orders=5)
        price = current_ayce(r, MONDAY_LUNCH)
        assert price.enabled is True
        assert price.price == Decimal("24.90")
        assert price.max_orders == 5

    def test_weekly_max_orders_override(self):
        r = restaurant(weekly_ayce={
            "enabled": True,
            "defaultPrice": 20,
            "defaultMaxOrders": 3,
            "useWeeklySchedule": True,
            "schedule": {
                "monday": {
                    "dinner": {"enabled": True, "price": 28},
                    "maxOrders": 6,
                },
                "tuesday": {"lunch": {"enabled": True, "price": 18}},
            },
        })
        dinner = current_ayce(r, MONDAY_DINNER)
        assert dinner.price == Decimal("28")
        assert dinner.max_orders == 6

        tuesday = current_ayce(r, TUESDAY_LUNCH)
        assert tuesday.price == Decimal("18")
        assert tuesday.max_orders == 3

    def test_disabled_schedule(self):
        r = restaurant(all_you_can_eat=True, ayce_price=Decimal("20"), weekly_ayce={"enabled": False})
        assert current_ayce(r, MONDAY_LUNCH).enabled is False


class TestServiceHours:
    HOURS = {
        "enabled": True,
        "useWeeklySchedule": True,
        "schedule": {
            "monday": {
                "lunch": {"enabled": True, "start": "12:00", "end": "15:00"},
                "dinner": {"enabled": True, "start": "19:00", "end": "23:00"},
            },
        },
    }

    def test_open_without_configuration(self):
        assert is_restaurant_open(restaurant(), MONDAY_MORNING) is True

    @pytest.mark.parametrize(
        "now, expected",
        [
            (MONDAY_LUNCH, True),
            (MONDAY_DINNER, True),
            (MONDAY_MORNING, False),
            (TUESDAY_LUNCH, False),
        ],
    )
    def test_weekly_hours(self, now, expected):
        assert is_restaurant_open(restaurant(weekly_service_hours=self.HOURS), now) is expected

    def test_missing_restaurant_is_closed(self):
        assert is_restaurant_open(None) is False
