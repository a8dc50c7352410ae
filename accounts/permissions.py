from rest_framework import permissions


class IsAdmin(permissions.BasePermission):
    message = 'Unauthorized'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            getattr(request.user, 'role', None) == 'ADMIN'
        )
