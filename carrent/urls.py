from __future__ import annotations

from django.contrib import admin
from django.urls import include, path

from rentals.views import RegisterView, home_view

urlpatterns = [
    path("", home_view, name="home"),
    path("accounts/register/", RegisterView.as_view(), name="register"),
    path("accounts/", include("django.contrib.auth.urls")),
    path("rentals/", include("rentals.urls")),
    path("api/", include("rentals.api_urls")),
    path("admin/", admin.site.urls),
]
