from django.contrib import admin
from .models import Debtor, Expense, Staff, WagePayment

# Register your models here.
@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ['name', 'login', 'role', 'daily_wage', 'is_active']
    list_filter = ['role', 'is_active']
    search_fields = ['name', 'login']

@admin.register(WagePayment)
class WagePaymentAdmin(admin.ModelAdmin):
    list_display = ['staff', 'amount', 'paid_date', 'paid_by']
    list_filter = ['paid_date']
    search_fields = ['staff__name']

@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['name', 'amount', 'expense_date', 'created_by']
    list_filter = ['expense_date']
    search_fields = ['name']

@admin.register(Debtor)
class DebtorAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'amount', 'due_date', 'paid']
    list_filter = ['paid', 'due_date']
    search_fields = ['name', 'phone']
