from rest_framework.permissions import BasePermission


class APIKeyPermission(BasePermission):
    """
    Custom permission class for API key authentication
    """

    def has_permission(self, request, view):
        # APIKeyAuthentication returns (actor, api_key) on success
        return getattr(request, 'auth', None) is not None


class IsAdminActor(APIKeyPermission):
    message = 'Only administrators may perform this action'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return getattr(request.user, 'is_admin', False)


class IsManagerOrAdmin(APIKeyPermission):
    message = 'Only managers or administrators may perform this action'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        user = request.user
        return getattr(user, 'is_admin', False) or getattr(user, 'is_manager', False)
