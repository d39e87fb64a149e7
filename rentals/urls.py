from __future__ import annotations

from django.urls import path

from . import views

app_name = "rentals"

urlpatterns = [
    path("", views.rentals_root, name="root"),
    path("book/", views.BookingView.as_view(), name="book"),

    path("account/", views.AccountView.as_view(), name="account"),
    path("account/<int:pk>/cancel/", views.cancel_reservation_view, name="cancel"),
    path("account/<int:pk>/complete/", views.complete_own_reservation_view, name="complete"),

    path("manager/", views.ManagerReservationListView.as_view(), name="manager_reservations"),
    path(
        "manager/<int:pk>/approve/",
        views.manager_reservation_action_view,
        {"action": "approve"},
        name="manager_approve",
    ),
    path(
        "manager/<int:pk>/reject/",
        views.manager_reservation_action_view,
        {"action": "reject"},
        name="manager_reject",
    ),
    path(
        "manager/<int:pk>/complete/",
        views.manager_reservation_action_view,
        {"action": "complete"},
        name="manager_complete",
    ),
]
