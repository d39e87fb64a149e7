from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import Group, Permission
from django.contrib.contenttypes.models import ContentType
from django.db.models.signals import post_migrate, post_save
from django.dispatch import receiver

from .models import Car, Customer, Reservation
from .roles import ROLES, permission_codenames

RENTAL_MODELS = (Car, Customer, Reservation)


@receiver(post_migrate)
def create_rental_role_groups(sender, **kwargs) -> None:
    if sender.name != "rentals":
        return

    content_types = list(ContentType.objects.get_for_models(*RENTAL_MODELS).values())
    for role in ROLES:
        group, _ = Group.objects.get_or_create(name=role)
        group.permissions.set(
            Permission.objects.filter(
                content_type__in=content_types,
                codename__in=permission_codenames(role, RENTAL_MODELS),
            )
        )


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def ensure_customer_profile(sender, instance, created, raw=False, **kwargs) -> None:
    """Every account gets a customer profile so it can book."""
    if raw:
        return
    Customer.objects.get_or_create(
        user=instance,
        defaults={"full_name": instance.get_full_name() or instance.get_username()},
    )
