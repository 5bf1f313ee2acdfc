from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers
from .models import Debtor, Expense, Staff, WagePayment


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ['id', 'name', 'login', 'role', 'daily_wage', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_daily_wage(self, value):
        if value < 0:
            raise serializers.ValidationError("daily_wage must not be negative")
        return value


class WagePaymentSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.name', read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    paid_date = serializers.DateField(required=False)

    class Meta:
        model = WagePayment
        fields = ['id', 'staff', 'staff_name', 'amount', 'paid_date', 'note', 'paid_by']
        read_only_fields = ['id', 'staff', 'paid_by']

    def validate(self, attrs):
        attrs.setdefault('paid_date', timezone.localdate())
        return attrs


class ExpenseSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))

    class Meta:
        model = Expense
        fields = ['id', 'name', 'amount', 'expense_date', 'created_by']
        read_only_fields = ['id', 'created_by']


class DebtorSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))

    class Meta:
        model = Debtor
        fields = ['id', 'name', 'phone', 'amount', 'due_date', 'paid', 'paid_at', 'created_at']
        read_only_fields = ['id', 'paid', 'paid_at', 'created_at']
