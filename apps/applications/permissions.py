from rest_framework import permissions


class IsStaffRole(permissions.BasePermission):
    """
    Permission: User must be an admin or a property manager.
    """

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff_role)


class IsApplicationMemberOrStaff(permissions.BasePermission):
    """
    Permission: User must be a household member of the application, or staff.
    """

    def has_object_permission(self, request, view, obj):
        # obj is an Application instance
        return request.user.is_staff_role or obj.has_member(request.user)
