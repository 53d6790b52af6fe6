"""
Single-record reads and writes used by the order writer.

Each call is its own unit of work (a savepoint inside any surrounding
request transaction), so a failing write leaves earlier writes in place.
Database errors surface as RecordStoreError.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import F

from bakery.core.exceptions import RecordStoreError

logger = logging.getLogger(__name__)


class RecordStore:

    def _fail(self, operation, model, exc):
        logger.error("%s on %s failed: %s", operation, model.__name__, exc)
        return RecordStoreError(
            f'Could not {operation} {model._meta.verbose_name}: {exc}',
            model=model.__name__,
        )

    def insert(self, model, **values):
        try:
            with transaction.atomic():
                return model.objects.create(**values)
        except DatabaseError as e:
            raise self._fail('insert', model, e)

    def update(self, model, pk, **values):
        """Update one row by primary key; returns True when a row matched"""
        try:
            with transaction.atomic():
                return model.objects.filter(pk=pk).update(**values) == 1
        except DatabaseError as e:
            raise self._fail('update', model, e)

    def delete(self, model, **filters):
        """Delete every row matching ``filters``; returns the number of rows removed"""
        try:
            with transaction.atomic():
                deleted, _ = model.objects.filter(**filters).delete()
                return deleted
        except DatabaseError as e:
            raise self._fail('delete', model, e)

    def query(self, model, **filters):
        try:
            return list(model.objects.filter(**filters))
        except DatabaseError as e:
            raise self._fail('query', model, e)

    def decrement(self, model, pk, field, amount, **filters):
        """
        Atomically subtract ``amount`` from ``field`` only if the current
        value is at least ``amount``. Returns False when the row is missing
        or the value would go negative.
        """
        try:
            with transaction.atomic():
                updated = model.objects.filter(
                    pk=pk, **{f'{field}__gte': amount}, **filters
                ).update(**{field: F(field) - amount})
                return updated == 1
        except DatabaseError as e:
            raise self._fail('decrement', model, e)
