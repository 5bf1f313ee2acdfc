import logging
from typing import Dict

import redis
from django.db import DatabaseError, transaction
from django.utils import timezone

from orders.mirror import LocalMirror
from orders.serializers import OrderItemSerializer
from .models import Receipt


logger = logging.getLogger(__name__)


class ReceiptLog:
    """Append-only log of closed orders, written after checkout"""

    MIRROR_COLLECTION = 'closed_receipts'

    def __init__(self, actor):
        self.actor = actor

    def snapshot(self, order) -> Dict:
        """
        Build the receipt snapshot of a closed order

        Args:
            order: Closed Order instance

        Returns:
            Dict with order_id, restaurant_id, items, total_amount,
            payment_method and completed_at
        """
        items = OrderItemSerializer(order.items.all(), many=True).data
        return {
            'order_id': order.id,
            'restaurant_id': order.restaurant_id or self.actor.restaurant_id,
            'items': [
                {
                    'id': item['id'],
                    'menu_item_name': item['menu_item_name'],
                    'quantity': item['quantity'],
                    'unit_price': item['unit_price'],
                    'subtotal': item['subtotal'],
                    'special_requests': item['special_requests'] or None,
                }
                for item in items
            ],
            'total_amount': order.total_amount,
            'payment_method': order.payment_method,
            'completed_at': order.completed_at,
        }

    def record(self, order) -> bool:
        """
        Persist the receipt snapshot, falling back to the local mirror

        Returns:
            True if the snapshot was stored somewhere, False if it was lost
        """
        try:
            payload = self.snapshot(order)
        except DatabaseError as exc:
            # Items can't be read back, so there is nothing to fall back with
            logger.error("Receipt for order %s was not recorded, items unreadable: %s", order.id, exc)
            return False

        try:
            with transaction.atomic():
                Receipt.objects.create(**payload)
            return True
        except DatabaseError as exc:
            logger.warning("Could not store receipt for order %s, using local mirror: %s", order.id, exc)

        try:
            mirror = LocalMirror(self.actor.restaurant_id)
            return mirror.prepend(self.MIRROR_COLLECTION, dict(payload, created_at=timezone.now()))
        except redis.RedisError as exc:
            logger.error("Receipt for order %s was not recorded: %s", order.id, exc)
            return False
