"""
Domain errors for the order/sale pipeline and the DRF handler that turns
them into JSON responses.

Every error is scoped to the single request that raised it.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BakeryError(Exception):
    """Base class for errors surfaced to the user-facing action"""
    error = 'Request failed'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        payload = {'error': self.error, 'message': self.message}
        payload.update(self.details)
        return payload


class ValidationError(BakeryError):
    """A precondition failed before any write; nothing was persisted"""
    error = 'Validation failed'


class StockExceededError(BakeryError):
    """Adding to the cart would exceed the product's stock snapshot"""
    error = 'Insufficient stock'

    def __init__(self, product_name, requested, available):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f'Not enough stock for {product_name}: requested {requested}, '
            f'available {available} (short by {self.shortfall})',
            product=product_name,
            requested=requested,
            available=available,
            shortfall=self.shortfall,
        )


class DuplicateSelectionError(BakeryError):
    """A quote option was selected twice in the same category"""
    error = 'Duplicate selection'


class OrderCreationError(BakeryError):
    """The order row was never created (or was removed again)"""
    error = 'Order could not be created'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class OrderUpdateError(BakeryError):
    """An edit could not be applied; the order keeps its previous items and total"""
    error = 'Order could not be updated'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class RecordStoreError(BakeryError):
    """A single-record read/write against the store failed"""
    error = 'Record store operation failed'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def api_exception_handler(exc, context):
    """Map domain errors to responses; defer everything else to DRF"""
    if isinstance(exc, BakeryError):
        request = context.get('request')
        logger.info(
            "%s on %s: %s",
            type(exc).__name__,
            request.path if request is not None else '-',
            exc.message,
        )
        return Response(exc.as_dict(), status=exc.status_code)
    return exception_handler(exc, context)
