from rest_framework import permissions


class IsOwnerOrStaff(permissions.BasePermission):
    """
    Members manage their own reservations; staff can see and correct any.
    """

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated

    def has_object_permission(self, request, view, obj):
        return obj.member_id == request.user.id or request.user.is_staff
