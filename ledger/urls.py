from django.urls import path
from . import views

urlpatterns = [
    path('staff/', views.StaffListView.as_view(), name='staff_list'),
    path('staff/<int:staff_id>/', views.StaffDetailView.as_view(), name='staff_detail'),
    path('staff/<int:staff_id>/wages/', views.StaffWagesView.as_view(), name='staff_wages'),
    path('expenses/', views.ExpenseListView.as_view(), name='expense_list'),
    path('expenses/<int:expense_id>/', views.ExpenseDetailView.as_view(), name='expense_detail'),
    path('debtors/', views.DebtorListView.as_view(), name='debtor_list'),
    path('debtors/<int:debtor_id>/', views.DebtorDetailView.as_view(), name='debtor_detail'),
    path('debtors/<int:debtor_id>/mark_paid/', views.DebtorMarkPaidView.as_view(), name='debtor_mark_paid'),
]
