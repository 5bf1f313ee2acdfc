from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from cafepos.permissions import IsAdminActor, IsManagerOrAdmin
from orders.exceptions import OrderError
from orders.mixins import ScopedQuerysetMixin
from orders.serializers import OrderSerializer
from orders.services import OrderLifecycle
from orders.views import ORDER_ID_PARAMETER, error_response
from .models import AdminNotification, OrderDeletion, Receipt
from .serializers import (
    AdminNotificationSerializer, CheckoutSerializer, OrderDeletionSerializer, ReceiptSerializer,
)


class CheckoutView(APIView):
    """Record payment and close an order"""

    @extend_schema(
        summary="Checkout an order",
        description="Close an open order with one or more payment legs. "
                    "A second checkout of the same order is rejected.",
        request=CheckoutSerializer,
        parameters=[ORDER_ID_PARAMETER],
        responses={
            200: OrderSerializer,
            400: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            503: OpenApiTypes.OBJECT
        },
        examples=[
            OpenApiExample(
                'Checkout Request',
                summary='Cash payment',
                description='Pay the whole order in cash',
                value={'payments': [{'method': 'cash', 'amount': '49.98'}]}
            ),
            OpenApiExample(
                'Already Closed',
                summary='Second checkout',
                description='Response when the order was already closed',
                value={'error': 'Order 7f6c2a8e-1c1d-4a8e-9a53-1d4f0f3d2b10 is already closed'},
                response_only=True,
                status_codes=['409']
            )
        ]
    )
    def post(self, request, order_id):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        payments = serializer.validated_data['payments']
        for leg in payments:
            # Default external reference is the order itself
            leg['ext_ref'] = leg.get('ext_ref') or str(order_id)

        try:
            order = OrderLifecycle(request.user).checkout(order_id, payments)
        except OrderError as exc:
            return error_response(exc)

        return Response(order, status=status.HTTP_200_OK)


class DeleteOrderWithAuditView(APIView):
    """Delete an order, keeping an audit record"""

    permission_classes = [IsAdminActor]

    @extend_schema(
        summary="Delete an order with audit",
        description="Administrators only. Writes an audit record and a management "
                    "notification, then deletes the order and its items.",
        request=None,
        parameters=[ORDER_ID_PARAMETER],
        responses={
            200: OrderDeletionSerializer,
            403: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            503: OpenApiTypes.OBJECT
        }
    )
    def post(self, request, order_id):
        try:
            deletion = OrderLifecycle(request.user).delete_with_audit(order_id)
        except OrderError as exc:
            return error_response(exc)

        return Response(OrderDeletionSerializer(deletion).data, status=status.HTTP_200_OK)


class ReceiptListView(ScopedQuerysetMixin, generics.ListAPIView):
    queryset = Receipt.objects.all()
    serializer_class = ReceiptSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        order_id = self.request.query_params.get('order_id')
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        return queryset

    @extend_schema(
        summary="List receipts",
        parameters=[
            OpenApiParameter(
                name='order_id',
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=False,
                description='Only the receipt of this order'
            )
        ]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDeletionListView(ScopedQuerysetMixin, generics.ListAPIView):
    queryset = OrderDeletion.objects.all()
    serializer_class = OrderDeletionSerializer
    permission_classes = [IsManagerOrAdmin]


class AdminNotificationListView(ScopedQuerysetMixin, generics.ListAPIView):
    queryset = AdminNotification.objects.all()
    serializer_class = AdminNotificationSerializer
    permission_classes = [IsManagerOrAdmin]


class AdminNotificationDetailView(ScopedQuerysetMixin, generics.RetrieveUpdateAPIView):
    """Mark a notification as read"""
    queryset = AdminNotification.objects.all()
    serializer_class = AdminNotificationSerializer
    permission_classes = [IsManagerOrAdmin]
