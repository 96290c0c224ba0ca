from rest_framework import permissions


class IsOwnerOrStaff(permissions.BasePermission):
    """
    Permission to only allow the borrower of a loan or staff to view/return it.
    """

    def has_permission(self, request, view):
        # Authenticated users can borrow and list their own loans
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return obj.borrower_id == request.user.id or request.user.is_staff
