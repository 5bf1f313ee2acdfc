"""
Table occupancy is never trusted as stored truth. A table is occupied
exactly when an open order references it; the status and current_order
fields on Table are a cache of that answer, refreshed after every event
that can change it.
"""
import logging
from collections import namedtuple

from django.conf import settings

from .models import Order, Table


logger = logging.getLogger(__name__)


TableProjection = namedtuple('TableProjection', ['status', 'current_order_id'])


def pinned_table_numbers():
    return frozenset(getattr(settings, 'CAFEPOS_PINNED_AVAILABLE_TABLES', ()))


def project_statuses(table_ids, open_orders):
    """
    Compute the projected status of each table.

    Args:
        table_ids: iterable of table ids to project
        open_orders: iterable of (order_id, table_id, created_at) tuples for
            orders whose status is open

    Returns:
        Dict mapping table_id to TableProjection; the most recent open order
        becomes the table's current order
    """
    latest = {}
    for order_id, table_id, created_at in open_orders:
        if table_id is None:
            continue
        current = latest.get(table_id)
        if current is None or created_at > current[1]:
            latest[table_id] = (order_id, created_at)

    projections = {}
    for table_id in table_ids:
        if table_id in latest:
            projections[table_id] = TableProjection(Table.STATUS_OCCUPIED, latest[table_id][0])
        else:
            projections[table_id] = TableProjection(Table.STATUS_AVAILABLE, None)
    return projections


def display_status(number, status, current_order_id, pinned_numbers):
    """Pinned tables show as available unless an order references them."""
    if number in pinned_numbers and current_order_id is None:
        return Table.STATUS_AVAILABLE
    return status


class TableStateProjector:
    """Recomputes table occupancy from the orders in the database."""

    def statuses(self, table_ids):
        table_ids = list(table_ids)
        open_orders = (
            Order.objects
            .filter(table_id__in=table_ids, status=Order.STATUS_OPEN)
            .values_list('id', 'table_id', 'created_at')
        )
        return project_statuses(table_ids, open_orders)

    def refresh(self, table_ids, lock=False):
        """
        Persist the projection for the given tables and return it.

        With lock=True the table rows are locked before the open orders are
        read, so a concurrent create_order on the same table cannot slip in
        between the read and the update. Must run inside a transaction.
        """
        table_ids = list(table_ids)
        if lock:
            list(Table.objects.select_for_update().filter(id__in=table_ids).values_list('id', flat=True))
        projections = self.statuses(table_ids)
        for table_id, projection in projections.items():
            updated = (
                Table.objects
                .filter(id=table_id)
                .exclude(status=projection.status, current_order_id=projection.current_order_id)
                .update(status=projection.status, current_order_id=projection.current_order_id)
            )
            if updated:
                logger.info("Table %s is now %s", table_id, projection.status)
        return projections
