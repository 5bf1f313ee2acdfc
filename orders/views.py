import logging

import redis
from django.db import transaction
from django.db.models import ProtectedError
from rest_framework import generics, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from cafepos.permissions import IsAdminActor, IsManagerOrAdmin
from .exceptions import OrderError
from .mixins import MirroredListMixin, ScopedQuerysetMixin, WritePermissionMixin
from .models import MenuItem, Order, Table
from .projection import TableStateProjector, display_status, pinned_table_numbers
from .repositories import MirrorOrderRepository
from .serializers import (
    MenuItemSerializer, TableSerializer, OrderSerializer, CreateOrderSerializer,
    AddLineItemsSerializer,
)
from .services import OrderLifecycle


logger = logging.getLogger(__name__)


ORDER_ID_PARAMETER = OpenApiParameter(
    name='order_id',
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.PATH,
    description='Order ID'
)


def error_response(exc):
    return Response({'error': exc.message}, status=exc.status_code)


class MenuListView(WritePermissionMixin, ScopedQuerysetMixin, MirroredListMixin, generics.ListCreateAPIView):
    queryset = MenuItem.objects.all()
    serializer_class = MenuItemSerializer
    write_permission_classes = [IsManagerOrAdmin]
    mirror_collection = 'menu_items'

    @extend_schema(summary="List menu items", description="List the menu; served from the local mirror when offline")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(summary="Create a menu item", description="Managers and administrators only")
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class MenuItemDetailView(WritePermissionMixin, ScopedQuerysetMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = MenuItem.objects.all()
    serializer_class = MenuItemSerializer
    write_permission_classes = [IsManagerOrAdmin]
    lookup_url_kwarg = 'menu_item_id'


class TableListView(WritePermissionMixin, ScopedQuerysetMixin, MirroredListMixin, generics.ListCreateAPIView):
    queryset = Table.objects.all()
    serializer_class = TableSerializer
    write_permission_classes = [IsAdminActor]
    mirror_collection = 'tables'

    def perform_create(self, serializer):
        number = serializer.validated_data['number']
        if self.get_queryset().filter(number=number).exists():
            raise serializers.ValidationError({'number': [f"Table {number} already exists"]})
        super().perform_create(serializer)

    def list_from_database(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        with transaction.atomic():
            TableStateProjector().refresh(queryset.values_list('id', flat=True))
        open_orders = (
            Order.objects.select_related('table').prefetch_related('items')
            .filter(table__in=queryset, status=Order.STATUS_OPEN)
        )
        self.open_orders = OrderSerializer(open_orders, many=True).data
        return self.get_serializer(queryset, many=True).data

    def shadow(self, mirror, rows):
        super().shadow(mirror, rows)
        # Keep the mirror's orders in step so offline projection sees them
        try:
            MirrorOrderRepository(self.request.user, mirror=mirror).store_orders(
                self.open_orders, table_ids=[row['id'] for row in rows]
            )
        except redis.RedisError as exc:
            logger.warning("Could not shadow open orders to the local mirror: %s", exc)

    def present(self, rows):
        pinned = pinned_table_numbers()
        return [
            dict(row, status=display_status(row['number'], row['status'], row['current_order'], pinned))
            for row in rows
        ]

    @extend_schema(
        summary="List tables",
        description="List tables with occupancy projected from open orders"
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        summary="Create a table",
        description="Administrators only",
        examples=[
            OpenApiExample(
                'Create Table Example',
                summary='Create table 5',
                value={'number': 5, 'seats': 4}
            )
        ]
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class TableDetailView(WritePermissionMixin, ScopedQuerysetMixin, generics.RetrieveDestroyAPIView):
    queryset = Table.objects.all()
    serializer_class = TableSerializer
    write_permission_classes = [IsAdminActor]
    lookup_url_kwarg = 'table_id'

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response({
                'error': 'Cannot delete a table that has orders'
            }, status=status.HTTP_409_CONFLICT)


class TableOrdersView(APIView):
    @extend_schema(
        summary="Open orders of a table",
        parameters=[
            OpenApiParameter(
                name='table_id',
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.PATH,
                description='Table ID'
            )
        ],
        responses={200: OrderSerializer(many=True)}
    )
    def get(self, request, table_id):
        try:
            orders = OrderLifecycle(request.user).open_orders_for_table(table_id)
        except OrderError as exc:
            return error_response(exc)
        return Response(orders)


class CreateOrderView(APIView):
    @extend_schema(
        summary="Create an order",
        description="Open an order on a table; prices are captured from the menu at this moment",
        request=CreateOrderSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                'Create Order Example',
                summary='Two pizzas on a table',
                value={
                    'table_id': '7f6c2a8e-1c1d-4a8e-9a53-1d4f0f3d2b10',
                    'items': [{'menu_item_id': '0b9c1f3e-5a9e-4f61-a9d3-6a1c2b1f7e20', 'quantity': 2}],
                    'special_instructions': 'No onions'
                }
            )
        ]
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            order = OrderLifecycle(request.user).create_order(
                data['table_id'], data['items'], data['special_instructions']
            )
        except OrderError as exc:
            return error_response(exc)
        return Response(order, status=status.HTTP_201_CREATED)


class GetOrderView(APIView):
    @extend_schema(
        summary="Get order details",
        description="Retrieve an order including its items and totals",
        parameters=[ORDER_ID_PARAMETER],
        responses={200: OrderSerializer}
    )
    def get(self, request, order_id):
        try:
            order = OrderLifecycle(request.user).get_order(order_id)
        except OrderError as exc:
            return error_response(exc)
        return Response(order)


class AddLineItemsView(APIView):
    @extend_schema(
        summary="Add items to an order",
        description="Add menu items to an open order",
        request=AddLineItemsSerializer,
        parameters=[ORDER_ID_PARAMETER],
        responses={201: OrderSerializer}
    )
    def post(self, request, order_id):
        serializer = AddLineItemsSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            order = OrderLifecycle(request.user).add_line_items(order_id, serializer.validated_data['items'])
        except OrderError as exc:
            return error_response(exc)
        return Response(order, status=status.HTTP_201_CREATED)


class RemoveLineItemView(APIView):
    @extend_schema(
        summary="Remove an item from an order",
        description="Removing the last item deletes the order and frees the table",
        parameters=[
            ORDER_ID_PARAMETER,
            OpenApiParameter(
                name='item_id',
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.PATH,
                description='Order item ID'
            )
        ],
        responses={200: OrderSerializer, 204: None}
    )
    def delete(self, request, order_id, item_id):
        try:
            order = OrderLifecycle(request.user).remove_line_item(order_id, item_id)
        except OrderError as exc:
            return error_response(exc)

        if order is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(order)
