from rest_framework import permissions

from accounts.permissions import IsAdmin
from .authentication import CronTrigger


class IsAdminOrCronTrigger(permissions.BasePermission):
    message = 'Unauthorized'

    def has_permission(self, request, view):
        if isinstance(request.auth, CronTrigger):
            return True
        return IsAdmin().has_permission(request, view)
