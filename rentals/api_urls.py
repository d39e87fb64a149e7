from __future__ import annotations

from django.urls import path

from . import api

app_name = "api"

urlpatterns = [
    path("cars/", api.cars_api, name="cars"),
    path("cars/available/", api.available_cars_api, name="available_cars"),
    path("cars/<int:pk>/", api.car_detail_api, name="car_detail"),

    path("reservations/", api.reservations_api, name="reservations"),
    path("reservations/<int:pk>/", api.reservation_detail_api, name="reservation_detail"),
]

for action in ("cancel", "approve", "reject", "complete"):
    urlpatterns.append(
        path(
            f"reservations/<int:pk>/{action}/",
            api.reservation_action_api,
            {"action": action},
            name=f"reservation_{action}",
        )
    )
