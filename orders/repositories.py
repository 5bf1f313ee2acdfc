"""
Storage strategies behind the order lifecycle.

DatabaseOrderRepository is transactional and is the source of truth.
MirrorOrderRepository applies the same operations to the terminal's local
mirror when the database cannot be reached. It offers no atomicity and no
audit; OrderLifecycle never routes financial operations to it.
"""
import uuid
from collections import namedtuple
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from cafepos.scoping import restaurant_scope, scoped
from .exceptions import OrderItemNotFound, OrderNotFound, OrderNotOpen, TableNotFound
from .mirror import LocalMirror
from .models import MenuItem, Order, OrderItem, Table
from .projection import TableStateProjector, project_statuses
from .serializers import OrderSerializer


TWO_PLACES = Decimal('0.01')

MenuSnapshot = namedtuple('MenuSnapshot', ['id', 'name', 'price', 'is_available'])


def line_subtotal(unit_price, quantity):
    return (Decimal(unit_price) * quantity).quantize(TWO_PLACES)


def calculate_total(subtotals):
    return sum((Decimal(s) for s in subtotals), Decimal('0.00')).quantize(TWO_PLACES)


def update_order_total(order):
    """Update the cached order total from its current items"""
    order.total_amount = calculate_total(order.items.values_list('subtotal', flat=True))
    order.save(update_fields=['total_amount', 'updated_at'])
    return order.total_amount


class OrderRepository:
    """Operations every storage strategy provides to OrderLifecycle."""

    name = 'abstract'

    def __init__(self, actor):
        self.actor = actor

    def menu_snapshot(self, menu_item_ids):
        raise NotImplementedError

    def create_order(self, table_id, lines, special_instructions):
        raise NotImplementedError

    def add_line_items(self, order_id, lines):
        raise NotImplementedError

    def remove_line_item(self, order_id, item_id):
        raise NotImplementedError

    def get_order(self, order_id):
        raise NotImplementedError

    def open_orders_for_table(self, table_id):
        raise NotImplementedError


class DatabaseOrderRepository(OrderRepository):
    name = 'database'

    def __init__(self, actor, projector=None):
        super().__init__(actor)
        self.projector = projector or TableStateProjector()

    def menu_snapshot(self, menu_item_ids):
        items = scoped(MenuItem.objects.filter(id__in=menu_item_ids), self.actor)
        return {
            str(item.id): MenuSnapshot(str(item.id), item.name, item.price, item.is_available)
            for item in items
        }

    def _get_table(self, table_id):
        try:
            return scoped(Table.objects.select_for_update(), self.actor).get(id=table_id)
        except Table.DoesNotExist:
            raise TableNotFound()

    def _lock_order(self, order_id):
        try:
            return scoped(Order.objects.select_for_update(), self.actor).get(id=order_id)
        except Order.DoesNotExist:
            raise OrderNotFound()

    def _lock_open_order(self, order_id):
        order = self._lock_order(order_id)
        if not order.is_open:
            raise OrderNotOpen('Cannot change items of a closed order')
        return order

    def _build_items(self, order, lines):
        return [
            OrderItem(
                order=order,
                menu_item_id=line['menu_item_id'],
                menu_item_name=line['menu_item_name'],
                unit_price=line['unit_price'],
                quantity=line['quantity'],
                subtotal=line['subtotal'],
                special_requests=line.get('special_requests') or '',
            )
            for line in lines
        ]

    def create_order(self, table_id, lines, special_instructions):
        with transaction.atomic():
            table = self._get_table(table_id)
            order = Order.objects.create(
                restaurant_id=table.restaurant_id or restaurant_scope(self.actor),
                table=table,
                waiter_id=self.actor.id,
                waiter_name=self.actor.name,
                status=Order.STATUS_OPEN,
                payment_status=Order.PAYMENT_UNPAID,
                total_amount=calculate_total(line['subtotal'] for line in lines),
                special_instructions=special_instructions or '',
            )
            OrderItem.objects.bulk_create(self._build_items(order, lines))
            self.projector.refresh([table.id])
        return self.get_order(order.id)

    def add_line_items(self, order_id, lines):
        with transaction.atomic():
            order = self._lock_open_order(order_id)
            OrderItem.objects.bulk_create(self._build_items(order, lines))
            update_order_total(order)
        return self.get_order(order.id)

    def remove_line_item(self, order_id, item_id):
        with transaction.atomic():
            order = self._lock_open_order(order_id)
            deleted, _ = order.items.filter(id=item_id).delete()
            if not deleted:
                raise OrderItemNotFound()

            if order.items.exists():
                update_order_total(order)
                return self.get_order(order.id)

            table_id = order.table_id
            order.delete()
            self.projector.refresh([table_id])
        return None

    def get_order(self, order_id):
        try:
            order = scoped(Order.objects.select_related('table'), self.actor).prefetch_related('items').get(id=order_id)
        except Order.DoesNotExist:
            raise OrderNotFound()
        return OrderSerializer(order).data

    def open_orders_for_table(self, table_id):
        orders = (
            scoped(Order.objects.select_related('table'), self.actor)
            .prefetch_related('items')
            .filter(table_id=table_id, status=Order.STATUS_OPEN)
        )
        return OrderSerializer(orders, many=True).data


class MirrorOrderRepository(OrderRepository):
    """
    Best-effort order storage in the local mirror.

    Writes to the three collections (orders, order_items, tables) are
    independent; a crash between them can leave them inconsistent.
    """

    name = 'mirror'

    def __init__(self, actor, mirror=None):
        super().__init__(actor)
        self.mirror = mirror or LocalMirror(restaurant_scope(actor))

    def menu_snapshot(self, menu_item_ids):
        wanted = {str(i) for i in menu_item_ids}
        return {
            str(item['id']): MenuSnapshot(
                str(item['id']), item['name'], Decimal(str(item['price'])), item.get('is_available', True)
            )
            for item in self.mirror.read('menu_items')
            if str(item['id']) in wanted
        }

    def _order_with_items(self, order, items=None):
        if items is None:
            items = self.mirror.read('order_items')
        result = dict(order)
        result['items'] = [item for item in items if item['order'] == order['id']]
        return result

    def _find_open_order(self, orders, order_id):
        order_id = str(order_id)
        for order in orders:
            if order['id'] == order_id:
                if order['status'] != Order.STATUS_OPEN:
                    raise OrderNotOpen('Cannot change items of a closed order')
                return order
        raise OrderNotFound()

    def _build_items(self, order_id, lines):
        now = timezone.now().isoformat()
        return [
            {
                'id': str(uuid.uuid4()),
                'order': order_id,
                'menu_item': str(line['menu_item_id']),
                'menu_item_name': line['menu_item_name'],
                'unit_price': str(line['unit_price']),
                'quantity': line['quantity'],
                'subtotal': str(line['subtotal']),
                'special_requests': line.get('special_requests') or '',
                'created_at': now,
            }
            for line in lines
        ]

    def _reproject(self, table_ids):
        orders = self.mirror.read('orders')
        open_orders = [
            (o['id'], o['table'], parse_datetime(o['created_at']))
            for o in orders if o['status'] == Order.STATUS_OPEN
        ]
        table_ids = [str(t) for t in table_ids]
        projections = project_statuses(table_ids, open_orders)
        tables = self.mirror.read('tables')
        for table in tables:
            projection = projections.get(str(table['id']))
            if projection is not None:
                table['status'] = projection.status
                table['current_order'] = projection.current_order_id
        self.mirror.write('tables', tables)
        return projections

    def create_order(self, table_id, lines, special_instructions):
        table = self.mirror.find('tables', table_id)
        if table is None:
            raise TableNotFound()

        now = timezone.now().isoformat()
        order = {
            'id': str(uuid.uuid4()),
            'table': str(table['id']),
            'table_number': table.get('number'),
            'waiter_id': self.actor.id,
            'waiter_name': self.actor.name,
            'status': Order.STATUS_OPEN,
            'total_amount': str(calculate_total(line['subtotal'] for line in lines)),
            'amount_paid': '0.00',
            'payment_status': Order.PAYMENT_UNPAID,
            'payment_method': None,
            'special_instructions': special_instructions or '',
            'created_at': now,
            'updated_at': now,
            'completed_at': None,
            'offline': True,
        }
        items = self._build_items(order['id'], lines)

        self.mirror.prepend('orders', order)
        self.mirror.write('order_items', items + self.mirror.read('order_items'))
        self._reproject([order['table']])
        return self._order_with_items(order, items)

    def add_line_items(self, order_id, lines):
        orders = self.mirror.read('orders')
        order = self._find_open_order(orders, order_id)
        items = self._build_items(order['id'], lines) + self.mirror.read('order_items')
        order['total_amount'] = str(calculate_total(
            item['subtotal'] for item in items if item['order'] == order['id']
        ))
        order['updated_at'] = timezone.now().isoformat()
        self.mirror.write('order_items', items)
        self.mirror.write('orders', orders)
        return self._order_with_items(order, items)

    def remove_line_item(self, order_id, item_id):
        orders = self.mirror.read('orders')
        order = self._find_open_order(orders, order_id)
        items = self.mirror.read('order_items')
        remaining = [
            item for item in items
            if not (item['order'] == order['id'] and item['id'] == str(item_id))
        ]
        if len(remaining) == len(items):
            raise OrderItemNotFound()
        self.mirror.write('order_items', remaining)

        order_items = [item for item in remaining if item['order'] == order['id']]
        if order_items:
            order['total_amount'] = str(calculate_total(item['subtotal'] for item in order_items))
            order['updated_at'] = timezone.now().isoformat()
            self.mirror.write('orders', orders)
            return self._order_with_items(order, remaining)

        self.mirror.write('orders', [o for o in orders if o['id'] != order['id']])
        self._reproject([order['table']])
        return None

    def get_order(self, order_id):
        order = self.mirror.find('orders', order_id)
        if order is None:
            raise OrderNotFound()
        return self._order_with_items(order)

    def open_orders_for_table(self, table_id):
        items = self.mirror.read('order_items')
        return [
            self._order_with_items(order, items)
            for order in self.mirror.read('orders')
            if order['table'] == str(table_id) and order['status'] == Order.STATUS_OPEN
        ]

    def _as_records(self, order):
        """Split a serialized database order into mirror order and item records."""
        record = dict(order)
        items = record.pop('items', None) or []
        record['id'] = str(record['id'])
        record['table'] = str(record['table'])
        record['offline'] = False
        return record, [dict(item, order=record['id']) for item in items]

    def store_orders(self, orders, table_ids=()):
        """
        Copy orders read from the database into the mirror.

        Args:
            orders: serialized orders, each with its items
            table_ids: tables whose database orders are all in orders; any
                other database copy on them is stale and dropped. Orders
                created offline are always kept.
        """
        incoming = [self._as_records(order) for order in orders]
        incoming_ids = {record['id'] for record, _ in incoming}
        tables = {str(t) for t in table_ids}

        existing = self.mirror.read('orders')
        dropped = {
            o['id'] for o in existing
            if o['id'] in incoming_ids or (not o.get('offline') and o['table'] in tables)
        }
        affected = tables | {o['table'] for o in existing if o['id'] in dropped}
        affected |= {record['table'] for record, _ in incoming}

        self.mirror.write('orders', [record for record, _ in incoming] + [
            o for o in existing if o['id'] not in dropped
        ])
        self.mirror.write('order_items', [item for _, items in incoming for item in items] + [
            item for item in self.mirror.read('order_items') if item['order'] not in dropped
        ])
        self._reproject(affected)

    def discard_order(self, order_id):
        order_id = str(order_id)
        orders = self.mirror.read('orders')
        gone = [o for o in orders if o['id'] == order_id]
        if not gone:
            return
        self.mirror.write('orders', [o for o in orders if o['id'] != order_id])
        self.mirror.write('order_items', [
            item for item in self.mirror.read('order_items') if item['order'] != order_id
        ])
        self._reproject([gone[0]['table']])
