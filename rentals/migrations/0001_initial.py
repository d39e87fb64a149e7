import django.core.validators
import django.db.models.deletion
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Car",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("make", models.CharField(max_length=64, verbose_name="Marca")),
                ("model", models.CharField(max_length=64, verbose_name="Modelo")),
                ("vehicle_class", models.CharField(max_length=32, verbose_name="Clase")),
                (
                    "transmission",
                    models.CharField(
                        choices=[("AT", "Automática"), ("MT", "Manual")],
                        default="AT",
                        max_length=8,
                        verbose_name="Transmisión",
                    ),
                ),
                (
                    "year",
                    models.PositiveIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1980),
                            django.core.validators.MaxValueValidator(2100),
                        ],
                        verbose_name="Año",
                    ),
                ),
                (
                    "daily_rate",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Precio por día",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("1.00"))],
                        verbose_name="Tarifa diaria",
                    ),
                ),
                ("available", models.BooleanField(default=True, verbose_name="Disponible")),
                (
                    "catalog",
                    models.CharField(
                        choices=[("regular", "General"), ("taxi", "Taxi"), ("delivery", "Reparto")],
                        default="regular",
                        max_length=12,
                        verbose_name="Catálogo",
                    ),
                ),
                ("photo_url", models.URLField(blank=True, verbose_name="Foto")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
            ],
            options={
                "verbose_name": "Vehículo",
                "verbose_name_plural": "Vehículos",
                "ordering": ["make", "model"],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(blank=True, max_length=120, verbose_name="Nombre completo")),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="Teléfono")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customer",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Usuario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Cliente",
                "verbose_name_plural": "Clientes",
                "ordering": ["full_name"],
            },
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField(verbose_name="Fecha de inicio")),
                ("end_date", models.DateField(verbose_name="Fecha de fin")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendiente"),
                            ("active", "Activa"),
                            ("rejected", "Rechazada"),
                            ("cancelled", "Cancelada"),
                            ("completed", "Completada"),
                        ],
                        default="pending",
                        max_length=12,
                        verbose_name="Estado",
                    ),
                ),
                (
                    "price_per_day",
                    models.DecimalField(blank=True, decimal_places=2, editable=False, max_digits=10, verbose_name="Precio por día"),
                ),
                ("day_count", models.PositiveIntegerField(blank=True, editable=False, verbose_name="Días")),
                (
                    "total_amount",
                    models.DecimalField(blank=True, decimal_places=2, editable=False, max_digits=12, verbose_name="Importe total"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
                (
                    "car",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="rentals.car",
                        verbose_name="Vehículo",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations",
                        to="rentals.customer",
                        verbose_name="Cliente",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reserva",
                "verbose_name_plural": "Reservas",
                "ordering": ["-created_at", "-pk"],
                "indexes": [
                    models.Index(fields=["car", "status"], name="rentals_res_car_status_idx"),
                    models.Index(fields=["customer", "-created_at"], name="rentals_res_customer_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="rentals_reservation_end_after_start",
                    ),
                ],
            },
        ),
    ]
