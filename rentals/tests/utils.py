from datetime import date
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from rentals.models import Car, Reservation


def make_car(**overrides) -> Car:
    values = {
        "make": "Toyota",
        "model": "Yaris",
        "vehicle_class": "Compacto",
        "transmission": "AT",
        "year": 2022,
        "daily_rate": Decimal("100.00"),
        "catalog": Car.CATALOG_REGULAR,
    }
    values.update(overrides)
    return Car.objects.create(**values)


def make_user(username: str, role: str | None = None, **extra):
    user = get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
        **extra,
    )
    if role:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
    return user


class FrozenTodayMixin:
    """Pin ``timezone.localdate()`` so fixed calendar dates stay in the future."""

    today = date(2025, 5, 1)

    def setUp(self):
        super().setUp()
        patcher = mock.patch("django.utils.timezone.localdate", return_value=self.today)
        patcher.start()
        self.addCleanup(patcher.stop)


class AvailabilityAssertions:
    def assertAvailabilityConsistent(self, car: Car) -> None:
        car.refresh_from_db()
        holds = Reservation.objects.filter(car=car, status__in=Reservation.HOLDING_STATUSES).exists()
        self.assertEqual(car.available, not holds)
