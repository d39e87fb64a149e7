"""Create demo accounts for every role and a small demo fleet."""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from rentals.models import Car
from rentals.roles import ROLE_ADMIN, ROLE_CLIENT, ROLE_EMPLOYEE, ROLE_MANAGER, ROLES

DEMO_USERS = (
    ("admin", ROLE_ADMIN),
    ("manager", ROLE_MANAGER),
    ("employee", ROLE_EMPLOYEE),
    ("client", ROLE_CLIENT),
)

DEMO_CARS = (
    ("Toyota", "Corolla", "Sedán", "AT", 2022, Decimal("45.00"), Car.CATALOG_REGULAR),
    ("Kia", "Sonet", "SUV", "AT", 2023, Decimal("55.00"), Car.CATALOG_REGULAR),
    ("Hyundai", "Accent", "Sedán", "MT", 2021, Decimal("38.50"), Car.CATALOG_REGULAR),
    ("Skoda", "Octavia", "Sedán", "AT", 2022, Decimal("50.00"), Car.CATALOG_TAXI),
    ("Ford", "Transit", "Furgoneta", "MT", 2020, Decimal("70.00"), Car.CATALOG_DELIVERY),
)


class Command(BaseCommand):
    help = "Crea usuarios de demostración (contraseña = usuario) y una flota de ejemplo."

    def handle(self, *args, **options) -> None:
        user_model = get_user_model()
        groups = {name: Group.objects.get_or_create(name=name)[0] for name in ROLES}

        for username, role in DEMO_USERS:
            user, created = user_model.objects.get_or_create(
                username=username,
                defaults={"is_staff": role in (ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE)},
            )
            if created:
                user.set_password(username)
                user.is_superuser = role == ROLE_ADMIN
                user.save()
                self.stdout.write(f"Usuario creado: {username} ({role})")
            user.groups.add(groups[role])

        for make, model, vehicle_class, transmission, year, rate, catalog in DEMO_CARS:
            _, created = Car.objects.get_or_create(
                make=make,
                model=model,
                year=year,
                defaults={
                    "vehicle_class": vehicle_class,
                    "transmission": transmission,
                    "daily_rate": rate,
                    "catalog": catalog,
                },
            )
            if created:
                self.stdout.write(f"Vehículo creado: {make} {model} {year}")

        self.stdout.write(self.style.SUCCESS("Datos de demostración listos."))
