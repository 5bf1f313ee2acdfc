from rest_framework import serializers
from .models import MenuItem, Table, Order, OrderItem


class MenuItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuItem
        fields = ['id', 'name', 'description', 'price', 'category',
                  'is_available', 'preparation_time']
        extra_kwargs = {
            'price': {'help_text': 'Unit price (e.g., 24.99)'},
            'preparation_time': {'help_text': 'Preparation time in minutes'}
        }

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("price must not be negative")
        return value


class TableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Table
        fields = ['id', 'number', 'seats', 'status', 'current_order']
        # status and current_order are projected from open orders
        read_only_fields = ['id', 'status', 'current_order']

    def validate_number(self, value):
        if value <= 0:
            raise serializers.ValidationError("number must be a positive integer")
        return value

    def validate_seats(self, value):
        if value <= 0:
            raise serializers.ValidationError("seats must be a positive integer")
        return value


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'order', 'menu_item', 'menu_item_name', 'unit_price',
                  'quantity', 'subtotal', 'special_requests', 'created_at']
        extra_kwargs = {
            'unit_price': {'help_text': 'Price captured when the item was added'},
            'subtotal': {'help_text': 'unit_price x quantity'}
        }


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    table_number = serializers.IntegerField(source='table.number', read_only=True)
    # Orders read from the database are never offline copies
    offline = serializers.BooleanField(default=False, read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'table', 'table_number', 'waiter_id', 'waiter_name', 'status',
                  'total_amount', 'amount_paid', 'payment_status', 'payment_method',
                  'special_instructions', 'created_at', 'updated_at', 'completed_at',
                  'offline', 'items']
        read_only_fields = fields
        extra_kwargs = {
            'total_amount': {'help_text': 'Sum of item subtotals'},
            'amount_paid': {'help_text': 'Sum of payment legs recorded at checkout'}
        }


class LineItemSerializer(serializers.Serializer):
    menu_item_id = serializers.UUIDField(help_text="ID of the menu item to add")
    quantity = serializers.IntegerField(min_value=1, help_text="Quantity to add (minimum 1)")
    special_requests = serializers.CharField(required=False, allow_blank=True, default='')


class CreateOrderSerializer(serializers.Serializer):
    table_id = serializers.UUIDField(help_text="Table the order is opened against")
    items = LineItemSerializer(many=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Order items cannot be empty")
        return value


class AddLineItemsSerializer(serializers.Serializer):
    items = LineItemSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("items cannot be empty")
        return value
