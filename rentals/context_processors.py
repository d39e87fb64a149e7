from .roles import is_manager, is_staff_member


def rental_roles(request):
    user = getattr(request, "user", None)
    return {
        "is_manager": is_manager(user),
        "is_staff_member": is_staff_member(user),
    }
