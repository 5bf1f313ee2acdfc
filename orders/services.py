import logging

import redis
from django.db import transaction

from payment.procedures import checkout_order, delete_order_with_audit
from payment.receipts import ReceiptLog
from .exceptions import STORE_UNAVAILABLE_ERRORS, StoreUnavailable, ValidationFailure
from .projection import TableStateProjector
from .repositories import DatabaseOrderRepository, MirrorOrderRepository, line_subtotal


logger = logging.getLogger(__name__)


def store_order(mirror, order):
    mirror.store_orders([order])


def closed_order_summary(order):
    """Response for a closed order built without touching the database."""
    return {
        'id': str(order.id),
        'table': str(order.table_id),
        'status': order.status,
        'total_amount': str(order.total_amount),
        'amount_paid': str(order.amount_paid),
        'payment_status': order.payment_status,
        'payment_method': order.payment_method,
        'completed_at': order.completed_at,
        'offline': False,
    }


class OrderLifecycle:
    """
    Owns every mutation of an order while it is open and its transition to
    closed.

    Non-financial operations fall back to the local mirror when the
    database is unreachable. Checkout and the audited delete never do.
    """

    def __init__(self, actor, database=None, mirror=None, projector=None):
        self.actor = actor
        self.projector = projector or TableStateProjector()
        self.database = database or DatabaseOrderRepository(actor, projector=self.projector)
        self._mirror = mirror

    @property
    def mirror(self):
        if self._mirror is None:
            self._mirror = MirrorOrderRepository(self.actor)
        return self._mirror

    def _shadow(self, apply):
        """Best-effort update of the local mirror after a database success."""
        try:
            apply(self.mirror)
        except redis.RedisError as exc:
            logger.warning("Could not shadow orders to the local mirror: %s", exc)

    def _run(self, operation, call, shadow=None):
        """
        Run call(repository) on the database, degrading to the mirror.

        shadow(mirror, result) copies a database result into the mirror so
        the mirror sees every open order when it has to take over.
        """
        try:
            result = call(self.database)
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.warning("Database unavailable during %s, using local mirror: %s", operation, exc)
        else:
            if shadow is not None:
                self._shadow(lambda mirror: shadow(mirror, result))
            return result

        try:
            return call(self.mirror)
        except redis.RedisError as exc:
            logger.error("Local mirror unavailable during %s: %s", operation, exc)
            raise StoreUnavailable()

    def _price_lines(self, repository, line_items):
        """Snapshot name and unit price of every requested menu item."""
        snapshot = repository.menu_snapshot([line['menu_item_id'] for line in line_items])
        lines = []
        for line in line_items:
            quantity = int(line['quantity'])
            if quantity < 1:
                raise ValidationFailure('quantity must be at least 1')
            menu_item = snapshot.get(str(line['menu_item_id']))
            if menu_item is None:
                raise ValidationFailure(f"Menu item {line['menu_item_id']} not found")
            if not menu_item.is_available:
                raise ValidationFailure(f"{menu_item.name} is not available")
            lines.append({
                'menu_item_id': menu_item.id,
                'menu_item_name': menu_item.name,
                'unit_price': menu_item.price,
                'quantity': quantity,
                'subtotal': line_subtotal(menu_item.price, quantity),
                'special_requests': line.get('special_requests') or '',
            })
        return lines

    def create_order(self, table_id, line_items, special_instructions=''):
        """
        Open an order on a table with at least one line item.

        Returns:
            The created order with its items
        """
        if not line_items:
            raise ValidationFailure('Order items cannot be empty')

        def create(repository):
            lines = self._price_lines(repository, line_items)
            return repository.create_order(table_id, lines, special_instructions)

        order = self._run('create_order', create, shadow=store_order)
        logger.info("Order %s opened on table %s by %s", order['id'], table_id, self.actor)
        return order

    def add_line_items(self, order_id, line_items):
        if not line_items:
            raise ValidationFailure('items cannot be empty')

        def add(repository):
            lines = self._price_lines(repository, line_items)
            return repository.add_line_items(order_id, lines)

        return self._run('add_line_items', add, shadow=store_order)

    def remove_line_item(self, order_id, item_id):
        """
        Remove one item from an open order.

        Returns:
            The updated order, or None when the last item was removed and the
            order deleted
        """
        def shadow(mirror, order):
            if order is None:
                mirror.discard_order(order_id)
            else:
                mirror.store_orders([order])

        order = self._run('remove_line_item', lambda repo: repo.remove_line_item(order_id, item_id), shadow)
        if order is None:
            logger.info("Order %s deleted after its last item was removed", order_id)
        return order

    def get_order(self, order_id):
        return self._run('get_order', lambda repo: repo.get_order(order_id), shadow=store_order)

    def open_orders_for_table(self, table_id):
        return self._run(
            'open_orders_for_table',
            lambda repo: repo.open_orders_for_table(table_id),
            shadow=lambda mirror, orders: mirror.store_orders(orders, table_ids=[table_id]),
        )

    def checkout(self, order_id, payment_legs):
        """
        Close an order with its payment legs.

        The financial close is atomic in the database; the receipt snapshot
        and the table re-projection follow it and may lag.
        """
        try:
            order = checkout_order(order_id, payment_legs, restaurant_id=self.actor.restaurant_id)
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.error("Checkout of order %s failed, database unavailable: %s", order_id, exc)
            raise StoreUnavailable('Checkout requires the database, please retry')

        ReceiptLog(self.actor).record(order)
        self._refresh_table(order.table_id)

        try:
            closed = self.database.get_order(order.id)
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.warning("Order %s closed but could not be re-read: %s", order.id, exc)
            closed = closed_order_summary(order)
        self._shadow(lambda mirror: mirror.store_orders([closed]))
        return closed

    def delete_with_audit(self, order_id):
        """Delete an order after writing its audit record and notification."""
        try:
            deletion = delete_order_with_audit(
                order_id,
                deleted_by_id=self.actor.id,
                deleted_by_name=self.actor.name or 'Admin',
                restaurant_id=self.actor.restaurant_id,
            )
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.error("Audited delete of order %s failed, database unavailable: %s", order_id, exc)
            raise StoreUnavailable('Deleting an order requires the database, please retry')

        if deletion.table_id is not None:
            self._refresh_table(deletion.table_id)
        self._shadow(lambda mirror: mirror.discard_order(deletion.order_id))
        return deletion

    def _refresh_table(self, table_id):
        try:
            with transaction.atomic():
                # Ordered against create_order, which locks the same row
                self.projector.refresh([table_id], lock=True)
        except STORE_UNAVAILABLE_ERRORS as exc:
            # The close already committed; the table catches up on the next read
            logger.warning("Could not refresh table %s after close: %s", table_id, exc)
