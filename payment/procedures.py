"""
The two operations that need true atomicity. Each runs in one database
transaction with the order row locked, so concurrent callers are serialised
by the database rather than by the client.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from orders.exceptions import OrderNotClosed, OrderNotFound, OrderNotOpen, ValidationFailure
from orders.models import Order
from orders.serializers import OrderItemSerializer
from .models import AdminNotification, OrderDeletion, Payment


logger = logging.getLogger(__name__)

PAYMENT_METHODS = {choice for choice, _ in Payment.METHOD_CHOICES}


def _lock_order(order_id, restaurant_id=None):
    orders = Order.objects.select_for_update()
    if restaurant_id is not None:
        orders = orders.filter(restaurant_id=restaurant_id)
    try:
        return orders.get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound()


def _clean_payments(payments):
    if not payments:
        raise ValidationFailure('At least one payment is required')

    cleaned = []
    for leg in payments:
        method = leg.get('method')
        if method not in PAYMENT_METHODS:
            raise ValidationFailure(f"Unsupported payment method '{method}'")
        try:
            amount = Decimal(str(leg.get('amount'))).quantize(Decimal('0.01'))
        except (InvalidOperation, TypeError):
            raise ValidationFailure('Payment amount must be a number')
        if amount <= 0:
            raise ValidationFailure('Payment amount must be positive')
        cleaned.append({'method': method, 'amount': amount, 'ext_ref': str(leg.get('ext_ref') or '')})
    return cleaned


def checkout_order(order_id, payments, restaurant_id=None):
    """
    Record payment legs against an open order and close it.

    Args:
        order_id: Order to close
        payments: List of {"method", "amount", "ext_ref"} legs
        restaurant_id: Restaurant scope of the caller, if any

    Returns:
        The closed Order

    Raises:
        OrderNotFound, OrderNotOpen, ValidationFailure
    """
    legs = _clean_payments(payments)

    with transaction.atomic():
        order = _lock_order(order_id, restaurant_id)
        if not order.is_open:
            raise OrderNotOpen(f"Order {order.id} is already {order.status}")

        paid = sum((leg['amount'] for leg in legs), Decimal('0.00'))
        if paid < order.total_amount:
            raise ValidationFailure(f"Payments total {paid} is less than the order total {order.total_amount}")

        Payment.objects.bulk_create([
            Payment(order=order, method=leg['method'], amount=leg['amount'], ext_ref=leg['ext_ref'])
            for leg in legs
        ])

        methods = {leg['method'] for leg in legs}
        order.payment_method = methods.pop() if len(methods) == 1 else Order.METHOD_MIXED
        order.amount_paid = paid
        order.payment_status = Order.PAYMENT_PAID
        order.status = Order.STATUS_CLOSED
        order.completed_at = timezone.now()
        order.save(update_fields=[
            'payment_method', 'amount_paid', 'payment_status', 'status', 'completed_at', 'updated_at',
        ])

    logger.info("Order %s closed: %s paid by %s", order.id, paid, order.payment_method)
    return order


def delete_order_with_audit(order_id, deleted_by_id=None, deleted_by_name='Admin', restaurant_id=None):
    """
    Delete an order, leaving an audit record and a management notification.

    The audit and notification rows are written before the items and the
    order are deleted, inside the same transaction; if either write fails
    nothing is deleted.

    Returns:
        The OrderDeletion audit record
    """
    with transaction.atomic():
        order = _lock_order(order_id, restaurant_id)
        if order.is_open and not getattr(settings, 'CAFEPOS_AUDIT_DELETE_OPEN_ORDERS', False):
            raise OrderNotClosed()

        items = OrderItemSerializer(order.items.all(), many=True).data
        payments = list(order.payments.values('method', 'amount', 'ext_ref', 'created_at'))

        deletion = OrderDeletion.objects.create(
            order_id=order.id,
            restaurant_id=restaurant_id or order.restaurant_id,
            table_id=order.table_id,
            deleted_by_id=deleted_by_id,
            deleted_by_name=deleted_by_name or 'Admin',
            status=order.status,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            created_at=order.created_at,
            completed_at=order.completed_at,
            items=items,
            payments=payments,
        )

        AdminNotification.objects.create(
            restaurant_id=deletion.restaurant_id,
            type=AdminNotification.TYPE_ORDER_DELETED,
            title='Order receipt deleted',
            message=f"{deletion.deleted_by_name} deleted order receipt {order.id}",
            payload={
                'order_id': order.id,
                'total_amount': order.total_amount,
                'payment_method': order.payment_method,
                'deleted_by': deletion.deleted_by_name,
            },
        )

        order.items.all().delete()
        order.delete()

    logger.info("Order %s deleted with audit by %s", order_id, deletion.deleted_by_name)
    return deletion
