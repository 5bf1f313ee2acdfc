import uuid
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import redis
from django.db import OperationalError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from cafepos.authentication import Actor
from .exceptions import (
    OrderItemNotFound, OrderNotOpen, StoreUnavailable, TableNotFound, ValidationFailure,
)
from .mirror import LocalMirror
from .models import MenuItem, Order, OrderItem, Table
from .projection import TableStateProjector, display_status, project_statuses
from .repositories import DatabaseOrderRepository, calculate_total, line_subtotal, update_order_total
from .services import OrderLifecycle


class FakeRedis:
    """In-memory stand-in for redis.Redis shared by every instance"""

    store = {}

    def __init__(self, *args, **kwargs):
        pass

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value
        return True


class DownRedis(FakeRedis):
    def get(self, key):
        raise redis.ConnectionError('Connection refused')

    def set(self, key, value):
        raise redis.ConnectionError('Connection refused')


class MirrorTestMixin:
    """Replace the redis client used by the local mirror"""

    redis_class = FakeRedis

    def setUp(self):
        super().setUp()
        FakeRedis.store = {}
        patcher = mock.patch('orders.mirror.redis.Redis', self.redis_class)
        patcher.start()
        self.addCleanup(patcher.stop)


def waiter():
    return Actor(id='w-1', name='Aziz', role='waiter')


def store_down(*args, **kwargs):
    raise OperationalError('could not connect to server')


class OrderTotalsTests(TestCase):
    """Test subtotal and total calculations"""

    def setUp(self):
        self.table = Table.objects.create(number=1, seats=2)
        self.order = Order.objects.create(table=self.table)

    def test_line_subtotal(self):
        """Subtotal is unit price times quantity"""
        self.assertEqual(line_subtotal(Decimal('24.99'), 2), Decimal('49.98'))
        self.assertEqual(line_subtotal('8.99', 3), Decimal('26.97'))

    def test_calculate_total_of_nothing(self):
        self.assertEqual(calculate_total([]), Decimal('0.00'))

    def test_update_order_total(self):
        """Total is recomputed from the current items"""
        OrderItem.objects.create(
            order=self.order, menu_item_name='Tiramisu',
            unit_price=Decimal('8.99'), quantity=2, subtotal=Decimal('17.98')
        )
        OrderItem.objects.create(
            order=self.order, menu_item_name='Greek Salad',
            unit_price=Decimal('16.99'), quantity=1, subtotal=Decimal('16.99')
        )

        update_order_total(self.order)
        self.order.refresh_from_db()

        self.assertEqual(self.order.total_amount, Decimal('34.97'))


class TableProjectionTests(TestCase):
    """Test table occupancy projection"""

    def test_open_order_occupies_table(self):
        now = timezone.now()
        projections = project_statuses(['t1', 't2'], [('o1', 't1', now)])

        self.assertEqual(projections['t1'].status, Table.STATUS_OCCUPIED)
        self.assertEqual(projections['t1'].current_order_id, 'o1')
        self.assertEqual(projections['t2'].status, Table.STATUS_AVAILABLE)
        self.assertIsNone(projections['t2'].current_order_id)

    def test_most_recent_open_order_is_current(self):
        now = timezone.now()
        projections = project_statuses(
            ['t1'], [('old', 't1', now - timedelta(minutes=5)), ('new', 't1', now)]
        )

        self.assertEqual(projections['t1'].current_order_id, 'new')

    def test_pin_never_hides_an_order(self):
        pinned = frozenset([1])

        self.assertEqual(display_status(1, Table.STATUS_OCCUPIED, None, pinned), Table.STATUS_AVAILABLE)
        self.assertEqual(display_status(1, Table.STATUS_OCCUPIED, 'o1', pinned), Table.STATUS_OCCUPIED)
        self.assertEqual(display_status(2, Table.STATUS_OCCUPIED, None, pinned), Table.STATUS_OCCUPIED)

    def test_refresh_overrides_stale_stored_status(self):
        """A stored status that disagrees with orders is corrected"""
        table = Table.objects.create(number=7, seats=4, status=Table.STATUS_OCCUPIED)

        TableStateProjector().refresh([table.id])
        table.refresh_from_db()

        self.assertEqual(table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(table.current_order_id)


class OrderLifecycleTests(MirrorTestMixin, TestCase):
    """Test order creation, item changes and table state"""

    def setUp(self):
        super().setUp()
        self.pizza = MenuItem.objects.create(name='Margarita Pitsa', price=Decimal('24.99'), category='Pizza')
        self.dessert = MenuItem.objects.create(name='Tiramisu', price=Decimal('8.99'), category='Desserts')
        self.table = Table.objects.create(number=5, seats=4)
        self.lifecycle = OrderLifecycle(waiter())

    def assert_total_matches_items(self, order_id):
        order = Order.objects.get(id=order_id)
        expected = sum((item.subtotal for item in order.items.all()), Decimal('0.00'))
        self.assertEqual(order.total_amount, expected)

    def test_create_order_scenario(self):
        """Two Margarita Pitsa at 24.99 total 49.98 and occupy table 5"""
        order = self.lifecycle.create_order(
            self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 2}]
        )

        self.assertEqual(order['total_amount'], '49.98')
        self.assertEqual(order['status'], Order.STATUS_OPEN)
        self.assertEqual(order['payment_status'], Order.PAYMENT_UNPAID)
        self.assertEqual(len(order['items']), 1)
        self.assertEqual(order['items'][0]['menu_item_name'], 'Margarita Pitsa')
        self.assertEqual(order['items'][0]['subtotal'], '49.98')
        self.assertEqual(order['waiter_name'], 'Aziz')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)
        self.assertEqual(str(self.table.current_order_id), order['id'])

    def test_prices_are_snapshotted(self):
        """Changing the menu later does not change the order"""
        order = self.lifecycle.create_order(
            self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}]
        )
        self.pizza.price = Decimal('30.00')
        self.pizza.name = 'Margarita Pizza'
        self.pizza.save()

        item = OrderItem.objects.get(order_id=order['id'])
        self.assertEqual(item.unit_price, Decimal('24.99'))
        self.assertEqual(item.menu_item_name, 'Margarita Pitsa')

    def test_empty_order_rejected(self):
        with self.assertRaises(ValidationFailure):
            self.lifecycle.create_order(self.table.id, [])

        self.assertEqual(Order.objects.count(), 0)

    def test_unavailable_menu_item_rejected(self):
        self.dessert.is_available = False
        self.dessert.save()

        with self.assertRaises(ValidationFailure):
            self.lifecycle.create_order(self.table.id, [
                {'menu_item_id': self.pizza.id, 'quantity': 1},
                {'menu_item_id': self.dessert.id, 'quantity': 1},
            ])

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    def test_unknown_table_rejected(self):
        with self.assertRaises(TableNotFound):
            self.lifecycle.create_order(uuid.uuid4(), [{'menu_item_id': self.pizza.id, 'quantity': 1}])

        self.assertEqual(Order.objects.count(), 0)

    def test_failed_table_update_leaves_no_order(self):
        """Order, items and table update commit together or not at all"""
        projector = mock.Mock()
        projector.refresh.side_effect = RuntimeError('table update failed')
        lifecycle = OrderLifecycle(waiter(), projector=projector)

        with self.assertRaises(RuntimeError):
            lifecycle.create_order(self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}])

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    def test_add_line_items_recomputes_total(self):
        order = self.lifecycle.create_order(
            self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}]
        )

        order = self.lifecycle.add_line_items(order['id'], [{'menu_item_id': self.dessert.id, 'quantity': 2}])

        self.assertEqual(order['total_amount'], '42.97')
        self.assertEqual(len(order['items']), 2)
        self.assert_total_matches_items(order['id'])

    def test_remove_line_item_recomputes_total(self):
        order = self.lifecycle.create_order(self.table.id, [
            {'menu_item_id': self.pizza.id, 'quantity': 2},
            {'menu_item_id': self.dessert.id, 'quantity': 1},
        ])
        dessert_item = next(i for i in order['items'] if i['menu_item_name'] == 'Tiramisu')

        order = self.lifecycle.remove_line_item(order['id'], dessert_item['id'])

        self.assertEqual(order['total_amount'], '49.98')
        self.assert_total_matches_items(order['id'])
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)

    def test_removing_last_item_deletes_order(self):
        """The order disappears and the table becomes available"""
        order = self.lifecycle.create_order(
            self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}]
        )

        result = self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        self.assertIsNone(result)
        self.assertFalse(Order.objects.filter(id=order['id']).exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(self.table.current_order_id)

    def test_table_stays_occupied_by_other_open_order(self):
        first = self.lifecycle.create_order(self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}])
        second = self.lifecycle.create_order(self.table.id, [{'menu_item_id': self.dessert.id, 'quantity': 1}])

        self.lifecycle.remove_line_item(second['id'], second['items'][0]['id'])

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)
        self.assertEqual(str(self.table.current_order_id), first['id'])

    def test_remove_from_closed_order_rejected(self):
        order = self.lifecycle.create_order(self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}])
        Order.objects.filter(id=order['id']).update(status=Order.STATUS_CLOSED)

        with self.assertRaises(OrderNotOpen):
            self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        self.assertEqual(OrderItem.objects.filter(order_id=order['id']).count(), 1)

    def test_remove_unknown_item_rejected(self):
        order = self.lifecycle.create_order(self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}])

        with self.assertRaises(OrderItemNotFound):
            self.lifecycle.remove_line_item(order['id'], uuid.uuid4())

    def test_database_orders_are_copied_to_mirror(self):
        """Every database success leaves a copy of the order in the mirror"""
        order = self.lifecycle.create_order(
            self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 2}]
        )
        mirror = LocalMirror()

        copy = mirror.find('orders', order['id'])
        self.assertEqual(copy['status'], Order.STATUS_OPEN)
        self.assertFalse(copy['offline'])
        self.assertEqual(copy['total_amount'], '49.98')
        self.assertEqual(len(mirror.read('order_items')), 1)

        self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        self.assertEqual(mirror.read('orders'), [])
        self.assertEqual(mirror.read('order_items'), [])

    def test_every_open_order_occupies_its_table(self):
        other = Table.objects.create(number=6, seats=2)
        self.lifecycle.create_order(self.table.id, [{'menu_item_id': self.pizza.id, 'quantity': 1}])
        order = self.lifecycle.create_order(other.id, [{'menu_item_id': self.dessert.id, 'quantity': 1}])
        self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        for order in Order.objects.filter(status=Order.STATUS_OPEN):
            self.assertEqual(order.table.status, Table.STATUS_OCCUPIED)
        other.refresh_from_db()
        self.assertEqual(other.status, Table.STATUS_AVAILABLE)


class OfflineFallbackTests(MirrorTestMixin, TestCase):
    """Test degraded operation on the local mirror"""

    def setUp(self):
        super().setUp()
        self.actor = waiter()
        self.mirror = LocalMirror()
        self.pizza_id = str(uuid.uuid4())
        self.table_id = str(uuid.uuid4())
        self.mirror.write('menu_items', [
            {'id': self.pizza_id, 'name': 'Margarita Pitsa', 'price': '24.99', 'is_available': True},
        ])
        self.mirror.write('tables', [
            {'id': self.table_id, 'number': 5, 'seats': 4, 'status': 'available', 'current_order': None},
        ])
        self.database = mock.Mock(spec=DatabaseOrderRepository)
        for operation in ('menu_snapshot', 'create_order', 'add_line_items',
                          'remove_line_item', 'get_order', 'open_orders_for_table'):
            getattr(self.database, operation).side_effect = store_down
        self.lifecycle = OrderLifecycle(self.actor, database=self.database)

    def mirrored_table(self):
        return self.mirror.find('tables', self.table_id)

    def test_create_order_offline(self):
        order = self.lifecycle.create_order(self.table_id, [{'menu_item_id': self.pizza_id, 'quantity': 2}])

        self.assertTrue(order['offline'])
        self.assertEqual(order['total_amount'], '49.98')
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(len(self.mirror.read('orders')), 1)
        self.assertEqual(self.mirrored_table()['status'], 'occupied')
        self.assertEqual(self.mirrored_table()['current_order'], order['id'])

    def test_remove_last_item_offline(self):
        order = self.lifecycle.create_order(self.table_id, [{'menu_item_id': self.pizza_id, 'quantity': 1}])

        result = self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        self.assertIsNone(result)
        self.assertEqual(self.mirror.read('orders'), [])
        self.assertEqual(self.mirror.read('order_items'), [])
        self.assertEqual(self.mirrored_table()['status'], 'available')

    def test_add_and_remove_offline_keep_total(self):
        order = self.lifecycle.create_order(self.table_id, [{'menu_item_id': self.pizza_id, 'quantity': 1}])
        order = self.lifecycle.add_line_items(order['id'], [{'menu_item_id': self.pizza_id, 'quantity': 1}])
        self.assertEqual(order['total_amount'], '49.98')

        order = self.lifecycle.remove_line_item(order['id'], order['items'][0]['id'])

        self.assertEqual(order['total_amount'], '24.99')
        self.assertEqual(len(order['items']), 1)

    def test_unknown_menu_item_offline(self):
        with self.assertRaises(ValidationFailure):
            self.lifecycle.create_order(self.table_id, [{'menu_item_id': uuid.uuid4(), 'quantity': 1}])

        self.assertEqual(self.mirror.read('orders'), [])

    def test_checkout_is_never_offline(self):
        with mock.patch('orders.services.checkout_order', side_effect=store_down):
            with self.assertRaises(StoreUnavailable):
                self.lifecycle.checkout(uuid.uuid4(), [{'method': 'cash', 'amount': Decimal('10.00')}])

    def test_audited_delete_is_never_offline(self):
        with mock.patch('orders.services.delete_order_with_audit', side_effect=store_down):
            with self.assertRaises(StoreUnavailable):
                self.lifecycle.delete_with_audit(uuid.uuid4())


class MirrorDownTests(MirrorTestMixin, TestCase):
    redis_class = DownRedis

    def test_database_and_mirror_down(self):
        database = mock.Mock(spec=DatabaseOrderRepository)
        database.menu_snapshot.side_effect = store_down
        lifecycle = OrderLifecycle(waiter(), database=database)

        with self.assertRaises(StoreUnavailable):
            lifecycle.create_order(uuid.uuid4(), [{'menu_item_id': uuid.uuid4(), 'quantity': 1}])

    def test_shadow_failure_is_quiet(self):
        self.assertFalse(LocalMirror().shadow('tables', []))


class OrderAPITests(MirrorTestMixin, APITestCase):
    """Test order API endpoints"""

    def setUp(self):
        super().setUp()
        self.pizza = MenuItem.objects.create(name='Margarita Pitsa', price=Decimal('24.99'))
        self.table = Table.objects.create(number=5, seats=4)
        # Add API key to all requests
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_ACTOR_ID'] = 'w-1'
        self.client.defaults['HTTP_X_ACTOR_NAME'] = 'Aziz'
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'waiter'

    def create_order(self, quantity=2):
        url = reverse('create_order')
        data = {
            'table_id': str(self.table.id),
            'items': [{'menu_item_id': str(self.pizza.id), 'quantity': quantity}],
            'special_instructions': 'No basil'
        }
        return self.client.post(url, data, format='json')

    def test_create_order(self):
        response = self.create_order()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '49.98')
        self.assertEqual(response.data['table_number'], 5)
        self.assertFalse(response.data['offline'])

        url = reverse('table_list')
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['status'], 'occupied')

    def test_create_order_without_items(self):
        url = reverse('create_order')
        response = self.client.post(url, {'table_id': str(self.table.id), 'items': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_get_order(self):
        order_id = self.create_order().data['id']

        response = self.client.get(reverse('get_order', kwargs={'order_id': order_id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)

    def test_get_missing_order(self):
        response = self.client.get(reverse('get_order', kwargs={'order_id': uuid.uuid4()}))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_add_items(self):
        order_id = self.create_order(quantity=1).data['id']
        url = reverse('add_line_items', kwargs={'order_id': order_id})

        response = self.client.post(url, {'items': [{'menu_item_id': str(self.pizza.id), 'quantity': 1}]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '49.98')

    def test_remove_only_item(self):
        """Removing the only item deletes the order and frees the table"""
        order = self.create_order().data
        url = reverse('remove_line_item', kwargs={'order_id': order['id'], 'item_id': order['items'][0]['id']})

        response = self.client.delete(url)

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.get(reverse('get_order', kwargs={'order_id': order['id']}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)

    def test_table_orders(self):
        self.create_order()

        response = self.client.get(reverse('table_orders', kwargs={'table_id': self.table.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_table_status_is_read_only(self):
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'admin'
        url = reverse('table_list')

        response = self.client.post(url, {'number': 9, 'seats': 2, 'status': 'occupied'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'available')

    def test_duplicate_table_number(self):
        self.client.defaults['HTTP_X_ACTOR_ROLE'] = 'admin'

        response = self.client.post(reverse('table_list'), {'number': 5, 'seats': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_waiter_cannot_create_table(self):
        response = self.client.post(reverse('table_list'), {'number': 9, 'seats': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_api_key(self):
        del self.client.defaults['HTTP_X_API_KEY']

        response = self.client.get(reverse('table_list'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_api_key(self):
        self.client.defaults['HTTP_X_API_KEY'] = 'wrong'

        response = self.client.get(reverse('table_list'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(CAFEPOS_PINNED_AVAILABLE_TABLES=(5,))
    def test_pinned_table_still_shows_order(self):
        self.create_order()

        response = self.client.get(reverse('table_list'))

        self.assertEqual(response.data[0]['status'], 'occupied')

    def test_table_list_served_from_mirror(self):
        """The last listing is served when the database is unreachable"""
        self.client.get(reverse('table_list'))

        with mock.patch('orders.views.TableListView.list_from_database', side_effect=store_down):
            response = self.client.get(reverse('table_list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Data-Source'], 'local-mirror')
        self.assertEqual(response.data[0]['number'], 5)

    def test_offline_removal_keeps_database_order_on_table(self):
        """An open database order still occupies its table while offline"""
        online = self.create_order().data
        self.client.get(reverse('menu_list'))
        self.client.get(reverse('table_list'))

        with mock.patch.object(DatabaseOrderRepository, 'menu_snapshot', side_effect=store_down), \
                mock.patch.object(DatabaseOrderRepository, 'remove_line_item', side_effect=store_down), \
                mock.patch('orders.views.TableListView.list_from_database', side_effect=store_down):
            offline = self.create_order(quantity=1).data
            url = reverse('remove_line_item', kwargs={
                'order_id': offline['id'], 'item_id': offline['items'][0]['id']
            })
            response = self.client.delete(url)
            self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

            response = self.client.get(reverse('table_list'))

        self.assertEqual(response['X-Data-Source'], 'local-mirror')
        self.assertEqual(response.data[0]['status'], 'occupied')
        self.assertEqual(response.data[0]['current_order'], online['id'])

    def test_database_order_readable_offline(self):
        online = self.create_order().data

        with mock.patch.object(DatabaseOrderRepository, 'get_order', side_effect=store_down):
            response = self.client.get(reverse('get_order', kwargs={'order_id': online['id']}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '49.98')
        self.assertEqual(len(response.data['items']), 1)
        self.assertFalse(response.data['offline'])

    def test_table_list_drops_orders_closed_elsewhere(self):
        online = self.create_order().data
        Order.objects.filter(id=online['id']).update(status=Order.STATUS_CLOSED)

        self.client.get(reverse('table_list'))

        mirror = LocalMirror()
        self.assertEqual(mirror.read('orders'), [])
        self.assertEqual(mirror.find('tables', self.table.id)['status'], 'available')

    def test_create_order_offline_via_api(self):
        self.client.get(reverse('menu_list'))
        self.client.get(reverse('table_list'))

        with mock.patch.object(DatabaseOrderRepository, 'menu_snapshot', side_effect=store_down):
            response = self.create_order()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['offline'])
        self.assertEqual(Order.objects.count(), 0)
