from rest_framework import permissions


class IsOrderAdmin(permissions.BasePermission):
    """
    Staff users or users carrying the admin role.
    Usage:
        permission_classes = [IsAuthenticated, IsOrderAdmin]
    """
    message = "Admin privileges required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_order_admin", False))
