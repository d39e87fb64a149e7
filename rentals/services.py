"""
rentals.services

Booking engine: creates reservations and moves them through their
workflow, keeping each car's availability flag consistent with the
reservations that hold it.

Every write runs in a transaction that first locks the car row
(``SELECT ... FOR UPDATE``). Two bookings of the same car are therefore
serialized: the second one sees the first one's reservation in its
overlap check and fails with ``CarUnavailable``.
"""

from __future__ import annotations

import logging
from datetime import date

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from . import pricing, transitions
from .availability import has_overlap, recompute_availability
from .exceptions import CarUnavailable, Forbidden, InvalidDateRange, NotFound
from .models import Car, Customer, Reservation

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def validate_booking_dates(start_date: date | None, end_date: date | None) -> None:
    if start_date is None or end_date is None:
        raise InvalidDateRange("Complete ambas fechas.", code="missing_dates")
    if start_date < timezone.localdate():
        raise InvalidDateRange("La fecha de inicio no puede estar en el pasado.", code="past_start")
    if end_date <= start_date:
        raise InvalidDateRange(
            "La fecha de fin debe ser posterior a la de inicio.", code="end_not_after_start"
        )


def customer_for(user) -> Customer:
    try:
        return Customer.objects.get(user_id=user.pk)
    except Customer.DoesNotExist:
        raise NotFound(f"El usuario {user} no tiene perfil de cliente.") from None


def _lock_car(car_id: int) -> Car:
    try:
        return Car.objects.select_for_update().get(pk=car_id)
    except Car.DoesNotExist:
        raise NotFound(f"Vehículo {car_id} no encontrado.") from None


def _lock_reservation(reservation_id: int) -> Reservation:
    """Lock the reservation's car, then the reservation, in the same order as ``book``."""
    car_id = (
        Reservation.objects.filter(pk=reservation_id).values_list("car_id", flat=True).first()
    )
    if car_id is None:
        raise NotFound(f"Reserva {reservation_id} no encontrada.")
    _lock_car(car_id)
    return Reservation.objects.select_for_update().get(pk=reservation_id)


def _check_owner(reservation: Reservation, user) -> None:
    if not reservation.is_owned_by(user):
        raise Forbidden("Solo puede gestionar sus propias reservas.")


def _apply(reservation: Reservation, target: str, actor: str) -> Reservation:
    if not transitions.resolve(reservation.status, target, actor):
        logger.debug("Reservation %s already %s", reservation.pk, target)
        return reservation

    previous = reservation.status
    reservation.status = target
    reservation.save(update_fields=["status", "updated_at"])
    if target in transitions.RELEASING_STATUSES:
        recompute_availability(reservation.car_id)
    logger.info(
        "Reservation %s moved from %s to %s by %s", reservation.pk, previous, target, actor
    )
    return reservation


def _transition(reservation_id: int, target: str, actor: str, *, owner=None) -> Reservation:
    with transaction.atomic():
        reservation = _lock_reservation(reservation_id)
        if owner is not None:
            _check_owner(reservation, owner)
        return _apply(reservation, target, actor)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


def book(car_id: int, requester, start_date: date, end_date: date) -> Reservation:
    """Create a pending reservation of ``car_id`` for the requesting user."""
    validate_booking_dates(start_date, end_date)
    customer = customer_for(requester)

    with transaction.atomic():
        car = _lock_car(car_id)
        if has_overlap(car.pk, start_date, end_date):
            logger.info(
                "Car %s already booked between %s and %s", car.pk, start_date, end_date
            )
            raise CarUnavailable(
                "El vehículo ya está reservado en esas fechas. "
                "Elija otro periodo u otro vehículo.",
                code="overlap",
            )

        quote = pricing.quote(car.daily_rate, start_date, end_date)
        reservation = Reservation.objects.create(
            car=car,
            customer=customer,
            start_date=start_date,
            end_date=end_date,
            status=Reservation.PENDING,
            price_per_day=quote.price_per_day,
        )
        car.available = False
        car.save(update_fields=["available", "updated_at"])

    logger.info(
        "Reservation %s created for car %s (%s - %s, %s days, total %s)",
        reservation.pk,
        car.pk,
        start_date,
        end_date,
        reservation.day_count,
        reservation.total_amount,
    )
    return reservation


def cancel(reservation_id: int, requester) -> Reservation:
    with transaction.atomic():
        reservation = _lock_reservation(reservation_id)
        _check_owner(reservation, requester)
        if reservation.is_terminal:
            logger.debug("Reservation %s already finished (%s)", reservation.pk, reservation.status)
            return reservation
        return _apply(reservation, Reservation.CANCELLED, transitions.ACTOR_CUSTOMER)


def approve(reservation_id: int) -> Reservation:
    return _transition(reservation_id, Reservation.ACTIVE, transitions.ACTOR_MANAGER)


def reject(reservation_id: int) -> Reservation:
    return _transition(reservation_id, Reservation.REJECTED, transitions.ACTOR_MANAGER)


def complete(reservation_id: int, actor=None) -> Reservation:
    """Finish an active rental; with ``actor`` the customer closes their own rental."""
    if actor is None:
        return _transition(reservation_id, Reservation.COMPLETED, transitions.ACTOR_MANAGER)
    return _transition(
        reservation_id, Reservation.COMPLETED, transitions.ACTOR_CUSTOMER, owner=actor
    )


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def is_available_for_dates(car_id: int, start_date: date | None, end_date: date | None) -> bool:
    if start_date is None or end_date is None or start_date > end_date:
        return False
    return not has_overlap(car_id, start_date, end_date)


def available_cars(start_date: date | None, end_date: date | None, cars: QuerySet | None = None) -> QuerySet:
    """Narrow ``cars`` to those free for the range; a malformed range filters nothing."""
    if cars is None:
        cars = Car.objects.all()
    if start_date is None or end_date is None or start_date > end_date:
        return cars
    return cars.exclude(id__in=Reservation.conflicting_car_ids(start_date, end_date))


def quote_for(car: Car, start_date: date | None, end_date: date | None) -> pricing.Quote | None:
    if start_date is None or end_date is None or end_date <= start_date:
        return None
    return pricing.quote(car.daily_rate, start_date, end_date)


def get_reservation(reservation_id: int) -> Reservation:
    try:
        return Reservation.objects.select_related("car", "customer__user").get(pk=reservation_id)
    except Reservation.DoesNotExist:
        raise NotFound(f"Reserva {reservation_id} no encontrada.") from None


def list_all() -> QuerySet:
    return Reservation.objects.select_related("car", "customer__user").newest_first()


def list_by_customer(customer) -> QuerySet:
    return list_all().filter(customer=customer)


def list_by_status(status: str) -> QuerySet:
    if status not in dict(Reservation.STATUS_CHOICES):
        raise ValueError(f"Estado desconocido: {status}")
    return list_all().filter(status=status)
