from decimal import Decimal

from rest_framework import serializers
from .models import AdminNotification, OrderDeletion, Payment, Receipt


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'order', 'method', 'amount', 'ext_ref', 'created_at']
        read_only_fields = fields


class PaymentLegSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    ext_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class CheckoutSerializer(serializers.Serializer):
    """Serializer for closing an order"""
    payments = PaymentLegSerializer(
        many=True,
        help_text="Payment legs; their amounts must cover the order total"
    )

    def validate_payments(self, value):
        if not value:
            raise serializers.ValidationError("At least one payment is required")
        return value


class ReceiptSerializer(serializers.ModelSerializer):
    class Meta:
        model = Receipt
        fields = ['id', 'order_id', 'items', 'total_amount', 'payment_method',
                  'completed_at', 'created_at']
        read_only_fields = fields


class OrderDeletionSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderDeletion
        fields = ['id', 'order_id', 'table_id', 'deleted_by_id', 'deleted_by_name', 'status',
                  'total_amount', 'payment_method', 'created_at', 'completed_at',
                  'items', 'payments', 'reason', 'deleted_at']
        read_only_fields = fields


class AdminNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminNotification
        fields = ['id', 'type', 'title', 'message', 'payload', 'is_read', 'created_at']
        read_only_fields = ['id', 'type', 'title', 'message', 'payload', 'created_at']
