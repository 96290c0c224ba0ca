from rest_framework import permissions


class IsOwnerOrStaff(permissions.BasePermission):
    """
    Permission to only allow the borrower of a reservation or staff to see/cancel it.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return obj.borrower_id == request.user.id or request.user.is_staff
