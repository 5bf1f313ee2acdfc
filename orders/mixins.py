import logging

import redis
from rest_framework import status
from rest_framework.permissions import SAFE_METHODS
from rest_framework.response import Response

from cafepos.permissions import APIKeyPermission
from cafepos.scoping import restaurant_scope, scoped
from .exceptions import STORE_UNAVAILABLE_ERRORS
from .mirror import LocalMirror


logger = logging.getLogger(__name__)


class ScopedQuerysetMixin:
    """Restrict the view's queryset to the actor's restaurant."""

    def get_queryset(self):
        return scoped(super().get_queryset(), self.request.user)

    def perform_create(self, serializer):
        serializer.save(restaurant_id=restaurant_scope(self.request.user))


class WritePermissionMixin:
    """Reads need the API key; writes need write_permission_classes."""

    write_permission_classes = [APIKeyPermission]

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [APIKeyPermission()]
        return [permission() for permission in self.write_permission_classes]


class MirroredListMixin:
    """
    List from the database and shadow the result to the local mirror; serve
    the last shadow copy when the database cannot be reached.
    """

    mirror_collection = None

    def list_from_database(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        return self.get_serializer(queryset, many=True).data

    def present(self, rows):
        return rows

    def shadow(self, mirror, rows):
        mirror.shadow(self.mirror_collection, list(rows))

    def list(self, request, *args, **kwargs):
        mirror = LocalMirror(restaurant_scope(request.user))
        try:
            rows = self.list_from_database(request)
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.warning("Database unavailable listing %s, using local mirror: %s", self.mirror_collection, exc)
            try:
                rows = mirror.read(self.mirror_collection)
            except redis.RedisError as mirror_exc:
                logger.error("Local mirror unavailable listing %s: %s", self.mirror_collection, mirror_exc)
                return Response({
                    'error': 'Data is temporarily unavailable'
                }, status=status.HTTP_503_SERVICE_UNAVAILABLE)
            return Response(self.present(rows), headers={'X-Data-Source': 'local-mirror'})

        self.shadow(mirror, rows)
        return Response(self.present(rows))
