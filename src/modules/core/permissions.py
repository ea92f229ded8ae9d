"""DRF permission classes shared by the storefront modules."""

from rest_framework.permissions import BasePermission


class IsAdmin(BasePermission):
    """Admin panel access: staff accounts or identity tokens with ``admin``."""

    message = "Admin access required."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(getattr(user, "is_admin", False) or getattr(user, "is_staff", False))
