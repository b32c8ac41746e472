from rest_framework import permissions


class IsOwnerOrStaff(permissions.BasePermission):
    """
    Members see and return their own loans; staff can act on any loan.
    """

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated

    def has_object_permission(self, request, view, obj):
        return obj.member_id == request.user.id or request.user.is_staff
