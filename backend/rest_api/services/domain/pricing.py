"""
Pricing schedule: cover charge (coperto) and all-you-can-eat lookup.

A restaurant may carry a weekly schedule for each price. The schedule JSON is:

    {
        "enabled": true,
        "defaultPrice": 2.5,
        "defaultMaxOrders": 3,          # AYCE only
        "useWeeklySchedule": true,
        "schedule": {
            "monday": {
                "lunch": {"enabled": true, "price": 2.0},
                "dinner": {"enabled": true, "price": 3.0},
                "maxOrders": 4          # AYCE only
            },
            ...
        }
    }

Without a schedule the flat restaurant columns apply. Service hours use the
same shape with ``start``/``end`` ("HH:MM") per meal instead of prices.

All functions are pure: ``now`` is the restaurant's local wall-clock time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from typing import Any

from shared.config.constants import DAY_KEYS, MealPeriod
from shared.config.settings import settings


@dataclass(frozen=True)
class CopertoPrice:
    enabled: bool
    price: Decimal


@dataclass(frozen=True)
class AycePrice:
    enabled: bool
    price: Decimal
    max_orders: int


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def meal_period(
    now: datetime,
    lunch_start: str | None = None,
    dinner_start: str | None = None,
) -> str | None:
    """
    Meal period at ``now``: lunch from lunch start until dinner start, dinner
    from dinner start until midnight, None before lunch.
    """
    lunch = _parse_hhmm(lunch_start or settings.default_lunch_start)
    dinner = _parse_hhmm(dinner_start or settings.default_dinner_start)
    current = now.time().replace(second=0, microsecond=0)

    if lunch <= current < dinner:
        return MealPeriod.LUNCH
    if current >= dinner:
        return MealPeriod.DINNER
    return None


def _day_key(now: datetime) -> str:
    return DAY_KEYS[now.weekday()]


def _scheduled_meal(
    schedule: dict[str, Any], restaurant: Any, now: datetime
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """(day config, meal config) for ``now``, either may be None."""
    period = meal_period(
        now,
        getattr(restaurant, "lunch_time_start", None),
        getattr(restaurant, "dinner_time_start", None),
    )
    if period is None:
        return None, None
    day = (schedule.get("schedule") or {}).get(_day_key(now))
    if not day:
        return None, None
    return day, day.get(period)


def current_coperto(restaurant: Any, now: datetime | None = None) -> CopertoPrice:
    """Cover charge per person in force at ``now``."""
    now = now or datetime.now()
    schedule = getattr(restaurant, "weekly_coperto", None)

    if not schedule:
        legacy = _money(getattr(restaurant, "cover_charge_per_person", None))
        return CopertoPrice(enabled=legacy > 0, price=legacy)

    if not schedule.get("enabled"):
        return CopertoPrice(enabled=False, price=Decimal("0"))

    default = CopertoPrice(enabled=True, price=_money(schedule.get("defaultPrice")))
    if not schedule.get("useWeeklySchedule"):
        return default

    _, meal = _scheduled_meal(schedule, restaurant, now)
    if not meal:
        return default
    return CopertoPrice(enabled=bool(meal.get("enabled")), price=_money(meal.get("price")))


def current_ayce(restaurant: Any, now: datetime | None = None) -> AycePrice:
    """All-you-can-eat price and order cap in force at ``now``."""
    now = now or datetime.now()
    schedule = getattr(restaurant, "weekly_ayce", None)

    if not schedule:
        return AycePrice(
            enabled=bool(getattr(restaurant, "all_you_can_eat", False)),
            price=_money(getattr(restaurant, "ayce_price", None)),
            max_orders=int(getattr(restaurant, "ayce_max_orders", 0) or 0),
        )

    if not schedule.get("enabled"):
        return AycePrice(enabled=False, price=Decimal("0"), max_orders=0)

    default_max = int(schedule.get("defaultMaxOrders") or 0)
    default = AycePrice(
        enabled=True,
        price=_money(schedule.get("defaultPrice")),
        max_orders=default_max,
    )
    if not schedule.get("useWeeklySchedule"):
        return default

    day, meal = _scheduled_meal(schedule, restaurant, now)
    if not meal:
        return default

    max_orders = day.get("maxOrders")
    return AycePrice(
        enabled=bool(meal.get("enabled")),
        price=_money(meal.get("price")),
        max_orders=int(max_orders) if max_orders is not None else default_max,
    )


def is_restaurant_open(restaurant: Any, now: datetime | None = None) -> bool:
    """
    Whether the weekly service hours allow ordering at ``now``.

    Restaurants that have not configured (or have switched off) weekly
    service hours are always open. A configured week with no entry for
    today is closed.
    """
    if restaurant is None:
        return False
    hours = getattr(restaurant, "weekly_service_hours", None)
    if not hours or not hours.get("enabled") or not hours.get("useWeeklySchedule"):
        return True

    now = now or datetime.now()
    today = (hours.get("schedule") or {}).get(_day_key(now))
    if not today:
        return False

    current = now.strftime("%H:%M")
    for period in (MealPeriod.LUNCH, MealPeriod.DINNER):
        meal = today.get(period) or {}
        start, end = meal.get("start"), meal.get("end")
        if meal.get("enabled") and start and end and start <= current <= end:
            return True
    return False
