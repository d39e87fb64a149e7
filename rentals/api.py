"""
rentals.api

JSON endpoints mirroring the HTML pages. Session authentication is used;
booking errors are mapped to HTTP status codes in ``api_view``.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from functools import wraps

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from . import services
from .exceptions import BookingError, CarUnavailable, Forbidden, InvalidDateRange, InvalidTransition, NotFound
from .models import Car, Reservation
from .roles import is_manager, visible_catalogs

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidDateRange: 400,
    CarUnavailable: 409,
    InvalidTransition: 409,
    Forbidden: 403,
    NotFound: 404,
}


def _error(kind: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"ok": False, "error": kind, "message": message}, status=status)


def api_view(*methods: str, login: bool = True):
    """Restrict methods, require a session and render errors as JSON."""

    def decorator(view):
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if login and not request.user.is_authenticated:
                return _error("unauthorized", "Autenticación requerida.", 401)
            try:
                return view(request, *args, **kwargs)
            except BookingError as exc:
                status = next(
                    (code for error, code in ERROR_STATUS.items() if isinstance(exc, error)), 400
                )
                return _error(exc.kind, exc.message_text, status)
            except PermissionDenied as exc:
                return _error("forbidden", str(exc) or "Acceso denegado.", 403)
            except ValueError as exc:
                return _error("bad_request", str(exc), 400)

        return wrapper

    return decorator


# -----------------------------------------------------------------------------
# Serializers
# -----------------------------------------------------------------------------


def serialize_car(car: Car) -> dict:
    return {
        "id": car.id,
        "make": car.make,
        "model": car.model,
        "vehicle_class": car.vehicle_class,
        "transmission": car.transmission,
        "year": car.year,
        "daily_rate": car.daily_rate,
        "available": car.available,
        "catalog": car.catalog,
        "photo_url": car.photo_url,
    }


def serialize_reservation(reservation: Reservation) -> dict:
    return {
        "id": reservation.id,
        "car_id": reservation.car_id,
        "customer_id": reservation.customer_id,
        "start_date": reservation.start_date,
        "end_date": reservation.end_date,
        "status": reservation.status,
        "price_per_day": reservation.price_per_day,
        "day_count": reservation.day_count,
        "total_amount": reservation.total_amount,
        "created_at": reservation.created_at,
        "updated_at": reservation.updated_at,
    }


def _read_json(request) -> dict:
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValueError("JSON inválido") from None
    if not isinstance(payload, dict):
        raise ValueError("JSON inválido")
    return payload


def _parse_date(value, name: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        raise ValueError(f"Fecha inválida en '{name}'.") from None


def _optional_date(value) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _visible_cars(request):
    return Car.objects.filter(catalog__in=visible_catalogs(request.user))


# -----------------------------------------------------------------------------
# Cars
# -----------------------------------------------------------------------------


@api_view("GET", login=False)
def cars_api(request):
    cars = _visible_cars(request)
    catalog = (request.GET.get("catalog") or "").strip().lower()
    if catalog:
        if catalog not in dict(Car.CATALOG_CHOICES):
            raise ValueError(f"Catálogo desconocido: {catalog}")
        cars = cars.filter(catalog=catalog)
    return JsonResponse([serialize_car(car) for car in cars], safe=False)


@api_view("GET", login=False)
def car_detail_api(request, pk: int):
    car = _visible_cars(request).filter(pk=pk).first()
    if car is None:
        raise NotFound(f"Vehículo {pk} no encontrado.")
    return JsonResponse(serialize_car(car))


@api_view("GET", login=False)
def available_cars_api(request):
    start_date = _optional_date(request.GET.get("start_date"))
    end_date = _optional_date(request.GET.get("end_date"))
    cars = services.available_cars(start_date, end_date, _visible_cars(request))
    return JsonResponse([serialize_car(car) for car in cars], safe=False)


# -----------------------------------------------------------------------------
# Reservations
# -----------------------------------------------------------------------------


@api_view("GET", "POST")
def reservations_api(request):
    if request.method == "POST":
        payload = _read_json(request)
        try:
            car_id = int(payload.get("car_id"))
        except (TypeError, ValueError):
            raise ValueError("'car_id' es obligatorio.") from None
        reservation = services.book(
            car_id,
            request.user,
            _parse_date(payload.get("start_date"), "start_date"),
            _parse_date(payload.get("end_date"), "end_date"),
        )
        return JsonResponse({"ok": True, "reservation": serialize_reservation(reservation)}, status=201)

    if is_manager(request.user):
        status = (request.GET.get("status") or "").strip().lower()
        reservations = services.list_by_status(status) if status else services.list_all()
    else:
        reservations = services.list_by_customer(services.customer_for(request.user))
    return JsonResponse([serialize_reservation(r) for r in reservations], safe=False)


@api_view("GET")
def reservation_detail_api(request, pk: int):
    reservation = services.get_reservation(pk)
    if not (is_manager(request.user) or reservation.is_owned_by(request.user)):
        raise Forbidden("No tiene acceso a esta reserva.")
    return JsonResponse(serialize_reservation(reservation))


@api_view("POST")
def reservation_action_api(request, pk: int, action: str):
    if action == "cancel":
        reservation = services.cancel(pk, request.user)
    elif action == "complete" and not is_manager(request.user):
        reservation = services.complete(pk, request.user)
    else:
        if not is_manager(request.user):
            raise Forbidden("Solo un gerente o administrador puede realizar esta acción.")
        command = {"approve": services.approve, "reject": services.reject, "complete": services.complete}[action]
        reservation = command(pk)
    logger.debug("API %s on reservation %s by %s", action, pk, request.user)
    return JsonResponse({"ok": True, "reservation": serialize_reservation(reservation)})
