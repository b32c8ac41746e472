from rest_framework import permissions


class IsStaffOrReadOnly(permissions.BasePermission):
    """
    Only staff (librarians) can change stock.
    Any authenticated member can read it.
    """

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:  # GET, HEAD, OPTIONS
            return True
        return request.user.is_staff
