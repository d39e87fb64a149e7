"""Role helpers built on Django auth groups."""

from __future__ import annotations

from .models import Car

ROLE_CLIENT = "client"
ROLE_EMPLOYEE = "employee"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"

ROLES = (ROLE_CLIENT, ROLE_EMPLOYEE, ROLE_MANAGER, ROLE_ADMIN)
STAFF_ROLES = (ROLE_EMPLOYEE, ROLE_MANAGER, ROLE_ADMIN)
MANAGER_ROLES = (ROLE_MANAGER, ROLE_ADMIN)

# Model permission actions granted to each group.
ROLE_ACTIONS = {
    ROLE_CLIENT: ("view",),
    ROLE_EMPLOYEE: ("view", "add", "change"),
    ROLE_MANAGER: ("view", "add", "change", "delete"),
    ROLE_ADMIN: ("view", "add", "change", "delete"),
}


def _in_groups(user, names) -> bool:
    if not user or not user.is_authenticated:
        return False
    return user.groups.filter(name__in=names).exists()


def is_manager(user) -> bool:
    if user and user.is_authenticated and user.is_superuser:
        return True
    return _in_groups(user, MANAGER_ROLES)


def is_staff_member(user) -> bool:
    if user and user.is_authenticated and (user.is_superuser or user.is_staff):
        return True
    return _in_groups(user, STAFF_ROLES)


def permission_codenames(role: str, models) -> set[str]:
    return {f"{action}_{model._meta.model_name}" for model in models for action in ROLE_ACTIONS[role]}


def visible_catalogs(user) -> list[str]:
    """Clients and visitors only see the general catalog."""
    if is_staff_member(user):
        return [value for value, _ in Car.CATALOG_CHOICES]
    return [Car.CATALOG_REGULAR]
