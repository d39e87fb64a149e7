"""
Data models for the car rental application.

This module defines the core entities of the system (cars, customers and
reservations) and their relationships. Reservations snapshot the car's
daily rate when they are created and always keep their day count and
total amount derived from their dates.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from . import pricing


class Car(models.Model):
    """Represents a vehicle of the fleet."""

    CATALOG_REGULAR = "regular"
    CATALOG_TAXI = "taxi"
    CATALOG_DELIVERY = "delivery"
    CATALOG_CHOICES = [
        (CATALOG_REGULAR, "General"),
        (CATALOG_TAXI, "Taxi"),
        (CATALOG_DELIVERY, "Reparto"),
    ]

    TRANSMISSION_CHOICES = [
        ("AT", "Automática"),
        ("MT", "Manual"),
    ]

    make = models.CharField(max_length=64, verbose_name="Marca")
    model = models.CharField(max_length=64, verbose_name="Modelo")
    vehicle_class = models.CharField(max_length=32, verbose_name="Clase")
    transmission = models.CharField(
        max_length=8, choices=TRANSMISSION_CHOICES, default="AT", verbose_name="Transmisión"
    )
    year = models.PositiveIntegerField(
        validators=[MinValueValidator(1980), MaxValueValidator(2100)], verbose_name="Año"
    )
    daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("1.00"))],
        verbose_name="Tarifa diaria",
        help_text="Precio por día",
    )
    # Cached projection of the reservations holding the car; see rentals.availability.
    available = models.BooleanField(default=True, verbose_name="Disponible")
    catalog = models.CharField(
        max_length=12, choices=CATALOG_CHOICES, default=CATALOG_REGULAR, verbose_name="Catálogo"
    )
    photo_url = models.URLField(blank=True, verbose_name="Foto")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    class Meta:
        verbose_name = "Vehículo"
        verbose_name_plural = "Vehículos"
        ordering = ["make", "model"]

    def __str__(self) -> str:
        return f"{self.make} {self.model} {self.year}"


class Customer(models.Model):
    """Customer profile attached to an account."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="customer",
        verbose_name="Usuario",
    )
    full_name = models.CharField(max_length=120, blank=True, verbose_name="Nombre completo")
    phone = models.CharField(max_length=20, blank=True, verbose_name="Teléfono")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    class Meta:
        verbose_name = "Cliente"
        verbose_name_plural = "Clientes"
        ordering = ["full_name"]

    def __str__(self) -> str:
        return self.full_name or self.user.get_username()


class ReservationQuerySet(models.QuerySet):
    def for_car(self, car_id: int) -> "ReservationQuerySet":
        return self.filter(car_id=car_id)

    def holding(self) -> "ReservationQuerySet":
        """Reservations that keep their car unavailable."""
        return self.filter(status__in=Reservation.HOLDING_STATUSES)

    def blocking_dates(self) -> "ReservationQuerySet":
        """Reservations whose dates cannot be booked again."""
        return self.exclude(status__in=Reservation.DATE_RELEASING_STATUSES)

    def overlapping(self, start_date: date, end_date: date) -> "ReservationQuerySet":
        """Inclusive overlap: existing.start <= end and existing.end >= start."""
        return self.filter(start_date__lte=end_date, end_date__gte=start_date)

    def newest_first(self) -> "ReservationQuerySet":
        return self.order_by("-created_at", "-pk")


class Reservation(models.Model):
    """Represents a booking of a car by a customer."""

    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    STATUS_CHOICES = [
        (PENDING, "Pendiente"),
        (ACTIVE, "Activa"),
        (REJECTED, "Rechazada"),
        (CANCELLED, "Cancelada"),
        (COMPLETED, "Completada"),
    ]

    HOLDING_STATUSES = (PENDING, ACTIVE)
    TERMINAL_STATUSES = (REJECTED, CANCELLED, COMPLETED)
    # A rejected request keeps its dates blocked; only these free them.
    DATE_RELEASING_STATUSES = (CANCELLED, COMPLETED)

    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="reservations", verbose_name="Cliente"
    )
    car = models.ForeignKey(
        Car, on_delete=models.PROTECT, related_name="reservations", verbose_name="Vehículo"
    )
    start_date = models.DateField(verbose_name="Fecha de inicio")
    end_date = models.DateField(verbose_name="Fecha de fin")
    status = models.CharField(
        max_length=12, choices=STATUS_CHOICES, default=PENDING, verbose_name="Estado"
    )
    price_per_day = models.DecimalField(
        max_digits=10, decimal_places=2, blank=True, editable=False, verbose_name="Precio por día"
    )
    day_count = models.PositiveIntegerField(blank=True, editable=False, verbose_name="Días")
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, blank=True, editable=False, verbose_name="Importe total"
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = "Reserva"
        verbose_name_plural = "Reservas"
        ordering = ["-created_at", "-pk"]
        indexes = [
            models.Index(fields=["car", "status"], name="rentals_res_car_status_idx"),
            models.Index(fields=["customer", "-created_at"], name="rentals_res_customer_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gt=F("start_date")),
                name="rentals_reservation_end_after_start",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.customer} - {self.car} ({self.start_date} - {self.end_date})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def is_owned_by(self, user) -> bool:
        return user is not None and self.customer.user_id == user.pk

    @staticmethod
    def validate_dates(start_date: date, end_date: date, *, allow_past: bool = False) -> None:
        if end_date <= start_date:
            raise ValidationError("La fecha de fin debe ser posterior a la de inicio.")
        if not allow_past and start_date < timezone.localdate():
            raise ValidationError("La fecha de inicio no puede estar en el pasado.")

    @classmethod
    def conflicting_car_ids(cls, start_date: date, end_date: date) -> list[int]:
        """IDs of cars with a date-blocking reservation crossing the range."""
        return list(
            cls.objects.overlapping(start_date, end_date)
            .blocking_dates()
            .values_list("car_id", flat=True)
            .distinct()
        )

    def clean(self) -> None:
        """Validation used by model forms; the booking engine does its own checks."""
        if self.start_date is None or self.end_date is None:
            return
        Reservation.validate_dates(self.start_date, self.end_date, allow_past=self.pk is not None)
        if self.car_id is None or self.status in self.DATE_RELEASING_STATUSES:
            return
        conflict = (
            Reservation.objects.for_car(self.car_id)
            .overlapping(self.start_date, self.end_date)
            .blocking_dates()
            .exclude(pk=self.pk)
            .exists()
        )
        if conflict:
            raise ValidationError("El vehículo ya tiene una reserva en el rango seleccionado.")

    def save(self, *args, **kwargs) -> None:
        """Snapshot the rate on creation and keep day count and total in sync."""
        if self.price_per_day is None:
            self.price_per_day = self.car.daily_rate
        self.price_per_day = pricing.to_money(self.price_per_day)
        self.day_count = pricing.rental_days(self.start_date, self.end_date)
        self.total_amount = pricing.total_amount(self.price_per_day, self.day_count)
        super().save(*args, **kwargs)
