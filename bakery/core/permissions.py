from rest_framework.permissions import BasePermission

from .access import current_user_capabilities


class IsApprovedUser(BasePermission):
    """Allow only accounts an admin has approved"""
    message = 'Your account has not been approved by an administrator yet.'

    def has_permission(self, request, view):
        return current_user_capabilities(request.user).is_approved


class IsAdminRole(BasePermission):
    """Allow only approved users holding the admin role"""
    message = 'Administrator role required.'

    def has_permission(self, request, view):
        capabilities = current_user_capabilities(request.user)
        return capabilities.is_approved and capabilities.role == 'admin'
