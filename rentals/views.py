"""
rentals.views

Server-rendered pages: public catalog, registration, booking, the
customer's account and the manager's reservation desk. Business rules
live in ``rentals.services``; these views only translate requests.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

from django.contrib import messages
from django.contrib.auth import login
from django.contrib.auth.decorators import login_required
from django.contrib.auth.forms import UserCreationForm
from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.contrib.auth.models import Group
from django.core.exceptions import PermissionDenied
from django.db.models import Q
from django.shortcuts import redirect, render
from django.urls import reverse, reverse_lazy
from django.views.decorators.http import require_POST
from django.views.generic import CreateView, FormView, ListView, TemplateView

from . import services, transitions
from .exceptions import CarUnavailable, InvalidDateRange, InvalidTransition
from .forms import BookingForm, ReservationFilterForm
from .models import Car, Reservation
from .roles import ROLE_CLIENT, is_manager, visible_catalogs

USER_ERRORS = (InvalidDateRange, CarUnavailable, InvalidTransition)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


class ManagerRequiredMixin(LoginRequiredMixin, UserPassesTestMixin):
    def test_func(self) -> bool:
        return is_manager(self.request.user)


def _parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_decimal(value: str | None) -> Decimal | None:
    if not value:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def _with_actions(reservations, actor: str) -> list[Reservation]:
    """Attach the statuses ``actor`` may move each reservation to."""
    reservations = list(reservations)
    for reservation in reservations:
        reservation.actions = transitions.allowed_targets(reservation.status, actor)
    return reservations


def _run(request, action, *args) -> Reservation | None:
    """Call a booking command, turning user errors into flash messages."""
    try:
        return action(*args)
    except USER_ERRORS as exc:
        messages.error(request, exc.message_text)
        return None


# -----------------------------------------------------------------------------
# Public pages
# -----------------------------------------------------------------------------


def home_view(request):
    """Catalog with optional search filters and a date range."""
    query = (request.GET.get("q") or "").strip()
    vehicle_class = (request.GET.get("vehicle_class") or "").strip()
    transmission = (request.GET.get("transmission") or "").strip()
    max_price_raw = request.GET.get("max_price") or ""
    start_raw = request.GET.get("start_date") or ""
    end_raw = request.GET.get("end_date") or ""

    start_date = _parse_iso_date(start_raw)
    end_date = _parse_iso_date(end_raw)
    max_price = _parse_decimal(max_price_raw)

    qs = Car.objects.filter(catalog__in=visible_catalogs(request.user))
    if query:
        for term in query.split():
            qs = qs.filter(Q(make__icontains=term) | Q(model__icontains=term))
    if vehicle_class:
        qs = qs.filter(vehicle_class__iexact=vehicle_class)
    if transmission:
        qs = qs.filter(transmission__iexact=transmission)
    if max_price is not None:
        qs = qs.filter(daily_rate__lte=max_price)

    qs = services.available_cars(start_date, end_date, qs).order_by("make", "model", "year")

    cars = list(qs)
    for car in cars:
        car.quote = services.quote_for(car, start_date, end_date)

    context = {
        "cars": cars,
        "q": query,
        "vehicle_class": vehicle_class,
        "transmission": transmission,
        "max_price": max_price_raw if max_price is not None else "",
        "start_date": start_raw,
        "end_date": end_raw,
        "vehicle_classes": Car.objects.order_by("vehicle_class")
        .values_list("vehicle_class", flat=True)
        .distinct(),
    }
    return render(request, "rentals/catalog.html", context)


class RegisterView(CreateView):
    form_class = UserCreationForm
    template_name = "registration/register.html"
    success_url = reverse_lazy("rentals:account")

    def form_valid(self, form):
        response = super().form_valid(form)
        group, _ = Group.objects.get_or_create(name=ROLE_CLIENT)
        self.object.groups.add(group)
        login(self.request, self.object)
        messages.success(self.request, "Cuenta creada correctamente.")
        return response


def rentals_root(request):
    """/rentals/ -> redirect by role."""
    if not request.user.is_authenticated:
        return redirect(f"{reverse('login')}?next={request.path}")
    if is_manager(request.user):
        return redirect("rentals:manager_reservations")
    return redirect("rentals:account")


# -----------------------------------------------------------------------------
# Customer pages
# -----------------------------------------------------------------------------


class BookingView(LoginRequiredMixin, FormView):
    form_class = BookingForm
    template_name = "rentals/booking.html"

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs["user"] = self.request.user
        return kwargs

    def get_initial(self):
        initial = super().get_initial()
        for source, target in (("car_id", "car"), ("start_date", "start_date"), ("end_date", "end_date")):
            value = self.request.GET.get(source)
            if value:
                initial[target] = value
        return initial

    def form_valid(self, form):
        try:
            reservation = services.book(
                form.cleaned_data["car"].pk,
                self.request.user,
                form.cleaned_data["start_date"],
                form.cleaned_data["end_date"],
            )
        except USER_ERRORS as exc:
            form.add_error(None, exc.message_text)
            return self.form_invalid(form)

        messages.success(
            self.request,
            f"Reserva #{reservation.pk} registrada. Total: {reservation.total_amount}.",
        )
        return redirect(f"{reverse('rentals:account')}?booked={reservation.pk}")


class AccountView(LoginRequiredMixin, TemplateView):
    template_name = "rentals/account.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        customer = getattr(self.request.user, "customer", None)
        context["customer"] = customer
        context["reservations"] = (
            _with_actions(services.list_by_customer(customer), transitions.ACTOR_CUSTOMER) if customer else []
        )
        return context


@login_required
@require_POST
def cancel_reservation_view(request, pk: int):
    if _run(request, services.cancel, pk, request.user):
        messages.success(request, f"Reserva #{pk} cancelada.")
    return redirect("rentals:account")


@login_required
@require_POST
def complete_own_reservation_view(request, pk: int):
    if _run(request, services.complete, pk, request.user):
        messages.success(request, f"Reserva #{pk} completada.")
    return redirect("rentals:account")


# -----------------------------------------------------------------------------
# Manager pages
# -----------------------------------------------------------------------------


class ManagerReservationListView(ManagerRequiredMixin, ListView):
    template_name = "rentals/manager_reservations.html"
    context_object_name = "reservations"

    def get_filter_form(self) -> ReservationFilterForm:
        if not hasattr(self, "_filter_form"):
            self._filter_form = ReservationFilterForm(self.request.GET or None)
        return self._filter_form

    def get_queryset(self):
        form = self.get_filter_form()
        status, query = ReservationFilterForm.STATUS_ALL, ""
        if form.is_bound and form.is_valid():
            status = form.cleaned_data["status"]
            query = form.cleaned_data["q"]

        if status == ReservationFilterForm.STATUS_ALL:
            reservations = services.list_all()
        else:
            reservations = services.list_by_status(status)

        if not query:
            return reservations
        return [
            reservation
            for reservation in reservations
            if query in reservation.customer.user.get_username().lower()
            or query in f"{reservation.car.make} {reservation.car.model}".lower()
            or query == str(reservation.pk)
        ]

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["reservations"] = _with_actions(context["reservations"], transitions.ACTOR_MANAGER)
        context["filter_form"] = self.get_filter_form()
        return context


MANAGER_ACTIONS = {
    "approve": (services.approve, "aprobada"),
    "reject": (services.reject, "rechazada"),
    "complete": (services.complete, "completada"),
}


@login_required
@require_POST
def manager_reservation_action_view(request, pk: int, action: str):
    if not is_manager(request.user):
        raise PermissionDenied
    command, label = MANAGER_ACTIONS[action]
    if _run(request, command, pk):
        messages.success(request, f"Reserva #{pk} {label}.")
    return redirect("rentals:manager_reservations")
