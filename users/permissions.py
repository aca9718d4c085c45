from rest_framework import permissions


class IsShopAdmin(permissions.BasePermission):
    """Allow only users with the admin role (or Django staff) into the back-office."""

    message = "Access denied. Admin role required."

    def has_permission(self, request, view):
        u = request.user
        return bool(u and u.is_authenticated and getattr(u, "is_admin", False))
