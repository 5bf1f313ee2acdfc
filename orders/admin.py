from django.contrib import admin
from .models import MenuItem, Table, Order, OrderItem

# Register your models here.
@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'is_available']
    search_fields = ['name']
    list_filter = ['category', 'is_available']

@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['number', 'seats', 'status', 'current_order']
    list_filter = ['status']
    # occupancy is projected from open orders
    readonly_fields = ['status', 'current_order']

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['menu_item', 'menu_item_name', 'unit_price', 'quantity', 'subtotal', 'special_requests']
    can_delete = False

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'table', 'waiter_name', 'status', 'payment_status', 'total_amount', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['table__number', 'waiter_name']
    readonly_fields = ['table', 'status', 'total_amount', 'amount_paid', 'payment_status',
                       'payment_method', 'created_at', 'completed_at']
    inlines = [OrderItemInline]

    def has_delete_permission(self, request, obj=None):
        # orders are only removed through the audited delete procedure
        return False
