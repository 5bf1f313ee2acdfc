import uuid

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from django.conf import settings


ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_WAITER = 'waiter'
ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_WAITER)


class Actor:
    """
    The person operating the terminal for the current request.

    restaurant_id scopes every query; it is None for single-restaurant
    installations.
    """

    is_authenticated = True
    is_anonymous = False

    def __init__(self, id=None, name='', role=ROLE_WAITER, restaurant_id=None):
        self.id = id
        self.name = name
        self.role = role
        self.restaurant_id = restaurant_id

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def is_manager(self):
        return self.role == ROLE_MANAGER

    def __str__(self):
        return f"{self.name or 'anonymous'} ({self.role})"


class APIKeyAuthentication(BaseAuthentication):
    """
    API key authentication using the X-API-Key header.

    The actor is described by X-Actor-Id, X-Actor-Name, X-Actor-Role and
    X-Restaurant-Id.
    """

    def authenticate(self, request):
        api_key = request.META.get('HTTP_X_API_KEY')

        if not api_key:
            return None

        expected_api_key = getattr(settings, 'API_KEY', 'demo')

        if api_key != expected_api_key:
            raise AuthenticationFailed('Invalid API key')

        return (self.resolve_actor(request), api_key)

    def resolve_actor(self, request):
        role = request.META.get('HTTP_X_ACTOR_ROLE', ROLE_WAITER).strip().lower()
        if role not in ROLES:
            raise AuthenticationFailed(f"Unknown role '{role}'")

        restaurant_id = request.META.get('HTTP_X_RESTAURANT_ID') or None
        if restaurant_id is not None:
            try:
                restaurant_id = uuid.UUID(restaurant_id)
            except ValueError:
                raise AuthenticationFailed('X-Restaurant-Id must be a UUID')

        return Actor(
            id=request.META.get('HTTP_X_ACTOR_ID') or None,
            name=request.META.get('HTTP_X_ACTOR_NAME', ''),
            role=role,
            restaurant_id=restaurant_id,
        )

    def authenticate_header(self, request):
        return 'X-API-Key'
