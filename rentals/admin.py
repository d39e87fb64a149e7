"""
Django admin customizations for the rentals app.

Reservation status is read-only here: staff move reservations through the
admin actions below, which go through the booking engine so the car
availability flag stays in sync.
"""

from __future__ import annotations

from django.contrib import admin, messages

from . import services
from .exceptions import BookingError
from .models import Car, Customer, Reservation


class ReservationInline(admin.TabularInline):
    model = Reservation
    extra = 0
    can_delete = False
    fields = ("start_date", "end_date", "status", "day_count", "total_amount")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Car)
class CarAdmin(admin.ModelAdmin):
    list_display = ("make", "model", "year", "vehicle_class", "catalog", "daily_rate", "available", "updated_at")
    search_fields = ("make", "model", "vehicle_class")
    list_filter = ("catalog", "available", "transmission", "year")
    readonly_fields = ("available",)
    inlines = (ReservationInline,)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "user", "phone", "updated_at")
    search_fields = ("full_name", "user__username", "user__email", "phone")
    inlines = (ReservationInline,)


def _run_for_each(modeladmin, request, queryset, command, label: str) -> None:
    done = 0
    for reservation in queryset:
        try:
            command(reservation.pk)
        except BookingError as exc:
            modeladmin.message_user(request, f"#{reservation.pk}: {exc.message_text}", messages.ERROR)
        else:
            done += 1
    if done:
        modeladmin.message_user(request, f"{done} reserva(s) {label}.", messages.SUCCESS)


@admin.action(description="Aprobar reservas seleccionadas")
def approve_reservations(modeladmin, request, queryset):
    _run_for_each(modeladmin, request, queryset, services.approve, "aprobadas")


@admin.action(description="Rechazar reservas seleccionadas")
def reject_reservations(modeladmin, request, queryset):
    _run_for_each(modeladmin, request, queryset, services.reject, "rechazadas")


@admin.action(description="Completar reservas seleccionadas")
def complete_reservations(modeladmin, request, queryset):
    _run_for_each(modeladmin, request, queryset, services.complete, "completadas")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "car", "start_date", "end_date", "status", "total_amount", "created_at")
    list_filter = ("status", "start_date")
    search_fields = ("customer__full_name", "customer__user__username", "car__make", "car__model")
    readonly_fields = (
        "customer",
        "car",
        "start_date",
        "end_date",
        "status",
        "price_per_day",
        "day_count",
        "total_amount",
        "created_at",
        "updated_at",
    )
    actions = (approve_reservations, reject_reservations, complete_reservations)

    def has_add_permission(self, request) -> bool:
        return False
