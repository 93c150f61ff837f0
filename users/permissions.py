from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    Allows access to conference admins.
    Strictly blocks school accounts.
    """
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return (
            request.user.is_superuser or
            getattr(request.user, 'role', '') == 'admin'
        )


class IsSchoolRole(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request.user, 'role', '') == 'school'
