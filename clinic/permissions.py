"""
Custom permission classes for role based access control.
"""
import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin", "superadmin"}

CRON_SECRET_HEADER = "HTTP_X_CRON_SECRET"


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with an administrative role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "patient"


class IsAdminOrCronSecret(BasePermission):
    """Admin users, or a scheduler presenting ``X-Cron-Secret``.

    The secret is compared in constant time; an empty ``CRON_SECRET``
    disables the header path entirely.
    """
    def has_permission(self, request, view) -> bool:
        if _role(request) in ADMIN_ROLES:
            return True
        expected = getattr(settings, "CRON_SECRET", "")
        supplied = request.META.get(CRON_SECRET_HEADER, "")
        return bool(expected and supplied and hmac.compare_digest(expected, supplied))
