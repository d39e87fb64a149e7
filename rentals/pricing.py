"""
Price calculation for reservations.

A rental costs the car's daily rate times the number of calendar days it
spans, counting both the pick-up and the return day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidDateRange

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Quote:
    price_per_day: Decimal
    day_count: int
    total_amount: Decimal


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def rental_days(start_date: date, end_date: date) -> int:
    """Inclusive number of days between ``start_date`` and ``end_date``."""
    days = (end_date - start_date).days + 1
    if days < 1:
        raise InvalidDateRange("La fecha de fin no puede ser anterior a la de inicio.", code="invalid_range")
    return days


def total_amount(price_per_day: Decimal, day_count: int) -> Decimal:
    return to_money(to_money(price_per_day) * Decimal(day_count))


def quote(daily_rate: Decimal, start_date: date, end_date: date) -> Quote:
    price_per_day = to_money(daily_rate)
    days = rental_days(start_date, end_date)
    return Quote(
        price_per_day=price_per_day,
        day_count=days,
        total_amount=total_amount(price_per_day, days),
    )
