"""
Forms for the rentals application.

The booking form only narrows the list of cars offered; the booking
engine re-checks dates and availability when the reservation is created.
"""

from __future__ import annotations

from datetime import date

from django import forms

from .models import Car, Reservation
from .roles import visible_catalogs


def _parse_iso_date(value) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


class BookingForm(forms.Form):
    """Form used by customers to request a booking."""

    car = forms.ModelChoiceField(
        queryset=Car.objects.none(),
        label="Vehículo",
        help_text="Seleccione el vehículo que desea reservar",
    )
    start_date = forms.DateField(
        label="Fecha de inicio",
        widget=forms.DateInput(attrs={"type": "date"}),
    )
    end_date = forms.DateField(
        label="Fecha de fin",
        widget=forms.DateInput(attrs={"type": "date"}),
    )

    def __init__(self, *args, user=None, **kwargs) -> None:
        super().__init__(*args, **kwargs)

        start_date = _parse_iso_date(self.data.get("start_date") or self.initial.get("start_date"))
        end_date = _parse_iso_date(self.data.get("end_date") or self.initial.get("end_date"))

        queryset = Car.objects.filter(catalog__in=visible_catalogs(user))
        if start_date and end_date and end_date >= start_date:
            queryset = queryset.exclude(id__in=Reservation.conflicting_car_ids(start_date, end_date))

        self.fields["car"].queryset = queryset
        for field in self.fields.values():
            if isinstance(field.widget, forms.Select):
                field.widget.attrs.setdefault("class", "form-select")
            else:
                field.widget.attrs.setdefault("class", "form-control")


class ReservationFilterForm(forms.Form):
    """Status filter and free-text search of the manager list."""

    STATUS_ALL = "ALL"

    status = forms.ChoiceField(
        required=False,
        choices=[(STATUS_ALL, "Todas")] + Reservation.STATUS_CHOICES,
        label="Estado",
    )
    q = forms.CharField(required=False, label="Buscar")

    def clean_status(self) -> str:
        return self.cleaned_data.get("status") or self.STATUS_ALL

    def clean_q(self) -> str:
        return (self.cleaned_data.get("q") or "").strip().lower()
