"""
Overlap detection and the car availability flag.

``Car.available`` is not a source of truth: it is recomputed from the
reservations of the car every time one of them leaves the holding states.

The two answer different questions. A rejected request no longer holds the
car, so the flag can go back to True, but its dates stay blocked for new
bookings.
"""

from __future__ import annotations

import logging
from datetime import date

from django.utils import timezone

from .models import Car, Reservation

logger = logging.getLogger(__name__)


def has_overlap(car_id: int, start_date: date, end_date: date) -> bool:
    """Whether a date-blocking reservation of the car crosses the inclusive range."""
    return (
        Reservation.objects.for_car(car_id)
        .blocking_dates()
        .overlapping(start_date, end_date)
        .exists()
    )


def recompute_availability(car_id: int) -> bool:
    available = not Reservation.objects.for_car(car_id).holding().exists()
    updated = Car.objects.filter(pk=car_id).exclude(available=available).update(
        available=available, updated_at=timezone.now()
    )
    if updated:
        logger.info("Car %s availability set to %s", car_id, available)
    return available
