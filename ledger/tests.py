from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from orders.tests import MirrorTestMixin
from .models import Debtor, Expense, Staff, WagePayment


class LedgerAPITestCase(MirrorTestMixin, APITestCase):
    def setUp(self):
        super().setUp()
        # Add API key to all requests
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_ACTOR_ID'] = 'm-1'
        self.client.defaults['HTTP_X_ACTOR_NAME'] = 'Dilnoza'
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'manager'


class StaffAPITests(LedgerAPITestCase):
    """Test staff and wage endpoints"""

    def setUp(self):
        super().setUp()
        self.staff = Staff.objects.create(name='Aziz', login='aziz', daily_wage=Decimal('150000.00'))

    def test_create_staff(self):
        url = reverse('staff_list')
        data = {'name': 'Kamola', 'login': 'kamola', 'role': 'waiter', 'daily_wage': '120000.00'}

        response = self.client.post(url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Staff.objects.count(), 2)

    def test_duplicate_login(self):
        response = self.client.post(reverse('staff_list'), {'name': 'Aziz B', 'login': 'aziz'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_staff(self):
        url = reverse('staff_detail', kwargs={'staff_id': self.staff.id})

        response = self.client.patch(url, {'is_active': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.staff.refresh_from_db()
        self.assertFalse(self.staff.is_active)

    def test_pay_wage(self):
        url = reverse('staff_wages', kwargs={'staff_id': self.staff.id})

        response = self.client.post(url, {'amount': '150000.00', 'note': 'Monday'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['paid_by'], 'Dilnoza')
        self.assertEqual(response.data['staff_name'], 'Aziz')
        payment = WagePayment.objects.get()
        self.assertEqual(payment.paid_date, timezone.localdate())

        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)

    def test_wages_of_missing_staff(self):
        url = reverse('staff_wages', kwargs={'staff_id': 999})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_list_served_from_mirror(self):
        self.client.get(reverse('staff_list'))

        with mock.patch('ledger.views.StaffListView.list_from_database',
                        side_effect=OperationalError('could not connect to server')):
            response = self.client.get(reverse('staff_list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Data-Source'], 'local-mirror')
        self.assertEqual(response.data[0]['login'], 'aziz')

    def test_waiter_forbidden(self):
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'waiter'

        response = self.client.get(reverse('staff_list'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ExpenseAPITests(LedgerAPITestCase):
    def test_create_expense(self):
        url = reverse('expense_list')
        data = {'name': 'Flour', 'amount': '85000.00', 'expense_date': '2026-10-19'}

        response = self.client.post(url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        expense = Expense.objects.get()
        self.assertEqual(expense.created_by, 'Dilnoza')
        self.assertEqual(expense.expense_date, date(2026, 10, 19))

    def test_negative_amount(self):
        url = reverse('expense_list')

        response = self.client.post(url, {'name': 'Gas', 'amount': '-5', 'expense_date': '2026-10-19'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_expense(self):
        expense = Expense.objects.create(name='Gas', amount=Decimal('40000.00'), expense_date=date(2026, 10, 1))

        response = self.client.delete(reverse('expense_detail', kwargs={'expense_id': expense.id}))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Expense.objects.exists())


class DebtorAPITests(LedgerAPITestCase):
    """Test debtor endpoints"""

    def setUp(self):
        super().setUp()
        self.debtor = Debtor.objects.create(name='Bobur', phone='+998901234567', amount=Decimal('60000.00'))

    def test_mark_paid(self):
        url = reverse('debtor_mark_paid', kwargs={'debtor_id': self.debtor.id})

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['paid'])
        self.debtor.refresh_from_db()
        self.assertIsNotNone(self.debtor.paid_at)

    def test_mark_paid_twice(self):
        url = reverse('debtor_mark_paid', kwargs={'debtor_id': self.debtor.id})
        self.client.post(url)

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_filter_unpaid(self):
        Debtor.objects.create(name='Sardor', amount=Decimal('10000.00'), paid=True, paid_at=timezone.now())

        response = self.client.get(reverse('debtor_list'), {'paid': 'false'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Bobur')

    def test_paid_is_read_only(self):
        url = reverse('debtor_detail', kwargs={'debtor_id': self.debtor.id})

        self.client.patch(url, {'paid': True}, format='json')

        self.debtor.refresh_from_db()
        self.assertFalse(self.debtor.paid)
