from django.urls import path
from . import views

urlpatterns = [
    path('menu/', views.MenuListView.as_view(), name='menu_list'),
    path('menu/<uuid:menu_item_id>/', views.MenuItemDetailView.as_view(), name='menu_item_detail'),
    path('tables/', views.TableListView.as_view(), name='table_list'),
    path('tables/<uuid:table_id>/', views.TableDetailView.as_view(), name='table_detail'),
    path('tables/<uuid:table_id>/orders/', views.TableOrdersView.as_view(), name='table_orders'),
    path('orders/', views.CreateOrderView.as_view(), name='create_order'),
    path('orders/<uuid:order_id>/', views.GetOrderView.as_view(), name='get_order'),
    path('orders/<uuid:order_id>/items/', views.AddLineItemsView.as_view(), name='add_line_items'),
    path('orders/<uuid:order_id>/items/<uuid:item_id>/', views.RemoveLineItemView.as_view(), name='remove_line_item'),
]
