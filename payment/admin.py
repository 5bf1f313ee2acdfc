from django.contrib import admin
from .models import AdminNotification, OrderDeletion, Payment, Receipt

# Register your models here.
@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'method', 'amount', 'created_at']
    list_filter = ['method', 'created_at']
    search_fields = ['ext_ref', 'order__table__number']
    readonly_fields = ['created_at']

@admin.register(Receipt)
class ReceiptAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'total_amount', 'payment_method', 'completed_at']
    list_filter = ['payment_method', 'completed_at']
    search_fields = ['order_id']

@admin.register(OrderDeletion)
class OrderDeletionAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'deleted_by_name', 'total_amount', 'payment_method', 'deleted_at']
    list_filter = ['deleted_at']
    search_fields = ['order_id', 'deleted_by_name']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

@admin.register(AdminNotification)
class AdminNotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'is_read', 'created_at']
    list_filter = ['type', 'is_read']
