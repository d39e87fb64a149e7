from django.apps import AppConfig


class RentalsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "rentals"
    verbose_name = "Alquiler de vehículos"

    def ready(self) -> None:
        from . import signals  # noqa: F401
