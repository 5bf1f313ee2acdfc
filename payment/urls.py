from django.urls import path
from . import views

urlpatterns = [
    path('orders/<uuid:order_id>/checkout/', views.CheckoutView.as_view(), name='checkout_order'),
    path('orders/<uuid:order_id>/delete_with_audit/', views.DeleteOrderWithAuditView.as_view(), name='delete_order_with_audit'),
    path('receipts/', views.ReceiptListView.as_view(), name='receipt_list'),
    path('order-deletions/', views.OrderDeletionListView.as_view(), name='order_deletion_list'),
    path('notifications/', views.AdminNotificationListView.as_view(), name='notification_list'),
    path('notifications/<int:pk>/', views.AdminNotificationDetailView.as_view(), name='notification_detail'),
]
