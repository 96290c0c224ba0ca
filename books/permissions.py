from rest_framework import permissions


class IsLibrarianOrReadOnly(permissions.BasePermission):
    """
    The catalog is public to browse. Adding, editing and archiving books
    is reserved to librarians (staff accounts).
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)
