from django.db import OperationalError, ProgrammingError
from rest_framework import status


# Errors meaning the persistent store cannot be reached or lacks a relation
STORE_UNAVAILABLE_ERRORS = (OperationalError, ProgrammingError)


class OrderError(Exception):
    """Base class for order lifecycle failures reported to the caller."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Order operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(OrderError):
    default_message = 'Invalid request'


class OrderNotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Order not found'


class OrderItemNotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Order item not found'


class TableNotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Table not found'


class OrderNotOpen(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Order is already closed'


class OrderNotClosed(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Only closed orders can be deleted'


class StoreUnavailable(OrderError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'The order store is unavailable, please retry'
