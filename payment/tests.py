import uuid
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, OperationalError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.exceptions import OrderNotClosed, OrderNotFound, OrderNotOpen, ValidationFailure
from orders.mirror import LocalMirror
from orders.models import MenuItem, Order, OrderItem, Table
from orders.repositories import DatabaseOrderRepository
from orders.tests import MirrorTestMixin
from .models import AdminNotification, OrderDeletion, Payment, Receipt
from .procedures import checkout_order, delete_order_with_audit
from .receipts import ReceiptLog


def make_order(table, total=Decimal('49.98'), status=Order.STATUS_OPEN):
    order = Order.objects.create(table=table, status=status, total_amount=total, waiter_name='Aziz')
    OrderItem.objects.create(
        order=order, menu_item_name='Margarita Pitsa',
        unit_price=Decimal('24.99'), quantity=2, subtotal=Decimal('49.98')
    )
    return order


class CheckoutProcedureTests(TestCase):
    """Test closing orders with payment legs"""

    def setUp(self):
        self.table = Table.objects.create(number=5, seats=4)
        self.order = make_order(self.table)

    def test_checkout_closes_order(self):
        order = checkout_order(self.order.id, [{'method': 'cash', 'amount': '49.98'}])

        self.assertEqual(order.status, Order.STATUS_CLOSED)
        self.assertEqual(order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(order.payment_method, 'cash')
        self.assertEqual(order.amount_paid, Decimal('49.98'))
        self.assertIsNotNone(order.completed_at)
        self.assertEqual(Payment.objects.filter(order=self.order).count(), 1)

    def test_split_payment_is_mixed(self):
        order = checkout_order(self.order.id, [
            {'method': 'cash', 'amount': '20.00'},
            {'method': 'card', 'amount': '29.98', 'ext_ref': 'TXN-1'},
        ])

        self.assertEqual(order.payment_method, Order.METHOD_MIXED)
        self.assertEqual(Payment.objects.filter(order=self.order).count(), 2)

    def test_second_checkout_rejected(self):
        """A closed order is never paid twice"""
        checkout_order(self.order.id, [{'method': 'cash', 'amount': '49.98'}])

        with self.assertRaises(OrderNotOpen):
            checkout_order(self.order.id, [{'method': 'card', 'amount': '49.98'}])

        self.order.refresh_from_db()
        self.assertEqual(Payment.objects.filter(order=self.order).count(), 1)
        self.assertEqual(self.order.payment_method, 'cash')
        self.assertEqual(self.order.total_amount, Decimal('49.98'))

    def test_underpayment_rejected(self):
        with self.assertRaises(ValidationFailure):
            checkout_order(self.order.id, [{'method': 'cash', 'amount': '10.00'}])

        self.order.refresh_from_db()
        self.assertTrue(self.order.is_open)
        self.assertEqual(Payment.objects.count(), 0)

    def test_unknown_method_rejected(self):
        with self.assertRaises(ValidationFailure):
            checkout_order(self.order.id, [{'method': 'cheque', 'amount': '49.98'}])

    def test_no_payments_rejected(self):
        with self.assertRaises(ValidationFailure):
            checkout_order(self.order.id, [])

    def test_missing_order(self):
        with self.assertRaises(OrderNotFound):
            checkout_order(uuid.uuid4(), [{'method': 'cash', 'amount': '1.00'}])


class DeleteWithAuditTests(TestCase):
    """Test audited order deletion"""

    def setUp(self):
        self.table = Table.objects.create(number=5, seats=4)
        self.order = make_order(self.table)
        checkout_order(self.order.id, [{'method': 'card', 'amount': '49.98'}])

    def test_audit_record_written_before_delete(self):
        deletion = delete_order_with_audit(self.order.id, deleted_by_id='a-1', deleted_by_name='Dilnoza')

        self.assertFalse(Order.objects.filter(id=self.order.id).exists())
        self.assertFalse(OrderItem.objects.filter(order_id=self.order.id).exists())
        self.assertEqual(deletion.order_id, self.order.id)
        self.assertEqual(deletion.total_amount, Decimal('49.98'))
        self.assertEqual(deletion.payment_method, 'card')
        self.assertEqual(deletion.status, Order.STATUS_CLOSED)
        self.assertEqual(deletion.deleted_by_name, 'Dilnoza')
        self.assertEqual(deletion.reason, OrderDeletion.REASON)
        self.assertEqual(len(deletion.items), 1)
        self.assertEqual(deletion.items[0]['menu_item_name'], 'Margarita Pitsa')
        self.assertEqual(len(deletion.payments), 1)

        notification = AdminNotification.objects.get()
        self.assertEqual(notification.type, AdminNotification.TYPE_ORDER_DELETED)
        self.assertFalse(notification.is_read)
        self.assertIn('Dilnoza', notification.message)

    def test_deleted_by_defaults_to_admin(self):
        deletion = delete_order_with_audit(self.order.id, deleted_by_name='')

        self.assertEqual(deletion.deleted_by_name, 'Admin')

    def test_failed_notification_keeps_order(self):
        """Nothing is deleted when the audit trail cannot be written"""
        with mock.patch.object(AdminNotification.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertRaises(DatabaseError):
                delete_order_with_audit(self.order.id)

        self.assertTrue(Order.objects.filter(id=self.order.id).exists())
        self.assertEqual(OrderItem.objects.filter(order_id=self.order.id).count(), 1)
        self.assertEqual(OrderDeletion.objects.count(), 0)

    def test_open_order_refused(self):
        open_order = make_order(self.table)

        with self.assertRaises(OrderNotClosed):
            delete_order_with_audit(open_order.id)

        self.assertTrue(Order.objects.filter(id=open_order.id).exists())
        self.assertEqual(OrderDeletion.objects.count(), 0)

    @override_settings(CAFEPOS_AUDIT_DELETE_OPEN_ORDERS=True)
    def test_open_order_allowed_by_setting(self):
        open_order = make_order(self.table)

        deletion = delete_order_with_audit(open_order.id)

        self.assertEqual(deletion.status, Order.STATUS_OPEN)
        self.assertFalse(Order.objects.filter(id=open_order.id).exists())


class CheckoutAPITests(MirrorTestMixin, APITestCase):
    """Test checkout and audit API endpoints"""

    def setUp(self):
        super().setUp()
        self.pizza = MenuItem.objects.create(name='Margarita Pitsa', price=Decimal('24.99'))
        self.table = Table.objects.create(number=5, seats=4)
        # Add API key to all requests
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_ACTOR_ID'] = 'w-1'
        self.client.defaults['HTTP_X_ACTOR_NAME'] = 'Aziz'
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'waiter'

        response = self.client.post(reverse('create_order'), {
            'table_id': str(self.table.id),
            'items': [{'menu_item_id': str(self.pizza.id), 'quantity': 2}],
        }, format='json')
        self.order_id = response.data['id']

    def checkout(self, amount='49.98', method='cash'):
        url = reverse('checkout_order', kwargs={'order_id': self.order_id})
        return self.client.post(url, {'payments': [{'method': method, 'amount': amount}]}, format='json')

    def test_checkout_frees_table(self):
        response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'closed')
        self.assertEqual(response.data['payment_status'], 'paid')
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(self.table.current_order_id)

        payment = Payment.objects.get()
        self.assertEqual(payment.ext_ref, self.order_id)

    def test_checkout_writes_receipt(self):
        self.checkout()

        receipt = Receipt.objects.get()
        self.assertEqual(str(receipt.order_id), self.order_id)
        self.assertEqual(receipt.total_amount, Decimal('49.98'))
        self.assertEqual(receipt.items[0]['quantity'], 2)

        response = self.client.get(reverse('receipt_list'), {'order_id': self.order_id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_second_checkout_conflict(self):
        self.checkout()

        response = self.checkout(method='card')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('already closed', response.data['error'])
        self.assertEqual(Payment.objects.count(), 1)

    def test_underpayment(self):
        response = self.checkout(amount='10.00')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.get(id=self.order_id).status, Order.STATUS_OPEN)

    def test_zero_amount_rejected_by_serializer(self):
        response = self.checkout(amount='0')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receipt_failure_does_not_fail_checkout(self):
        """The receipt goes to the local mirror when it cannot be stored"""
        with mock.patch.object(Receipt.objects, 'create', side_effect=DatabaseError('no such table')):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Receipt.objects.count(), 0)
        receipts = LocalMirror().read('closed_receipts')
        self.assertEqual(len(receipts), 1)
        self.assertEqual(receipts[0]['order_id'], self.order_id)

    def test_checkout_needs_database(self):
        with mock.patch('orders.services.checkout_order', side_effect=OperationalError('server closed the connection')):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(Order.objects.get(id=self.order_id).status, Order.STATUS_OPEN)
        self.assertEqual([o['status'] for o in LocalMirror().read('orders')], ['open'])

    def test_unreadable_receipt_items_do_not_fail_checkout(self):
        """The order is already closed when the receipt snapshot fails"""
        with mock.patch.object(ReceiptLog, 'snapshot', side_effect=OperationalError('server closed the connection')):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'closed')
        self.assertEqual(Receipt.objects.count(), 0)
        self.assertEqual(LocalMirror().read('closed_receipts'), [])

    def test_reread_failure_after_close(self):
        """A closed order is reported from the committed row"""
        with mock.patch.object(DatabaseOrderRepository, 'get_order',
                               side_effect=OperationalError('server closed the connection')):
            response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'closed')
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(response.data['total_amount'], '49.98')
        self.assertEqual(LocalMirror().find('orders', self.order_id)['status'], 'closed')

    def test_table_row_locked_for_refresh(self):
        with mock.patch.object(Table.objects, 'select_for_update', wraps=Table.objects.select_for_update) as lock:
            self.checkout()

        lock.assert_called_once_with()
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)

    def test_delete_with_audit(self):
        self.checkout()
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'admin'
        self.client.defaults['HTTP_X_ACTOR_NAME'] = 'Dilnoza'

        url = reverse('delete_order_with_audit', kwargs={'order_id': self.order_id})
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '49.98')
        self.assertEqual(response.data['deleted_by_name'], 'Dilnoza')

        response = self.client.get(reverse('get_order', kwargs={'order_id': self.order_id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get(reverse('order_deletion_list'))
        self.assertEqual(len(response.data), 1)
        response = self.client.get(reverse('notification_list'))
        self.assertEqual(len(response.data), 1)

    def test_delete_with_audit_requires_admin(self):
        self.checkout()
        url = reverse('delete_order_with_audit', kwargs={'order_id': self.order_id})

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Order.objects.filter(id=self.order_id).exists())

    def test_delete_open_order_conflict(self):
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'admin'
        url = reverse('delete_order_with_audit', kwargs={'order_id': self.order_id})

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_mark_notification_read(self):
        self.checkout()
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'admin'
        self.client.post(reverse('delete_order_with_audit', kwargs={'order_id': self.order_id}))
        notification = AdminNotification.objects.get()

        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'manager'
        url = reverse('notification_detail', kwargs={'pk': notification.pk})
        response = self.client.patch(url, {'is_read': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_waiter_cannot_read_deletions(self):
        response = self.client.get(reverse('order_deletion_list'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
