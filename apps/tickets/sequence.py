"""
Atomic named counters backed by the SequenceCounter table.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import F

from .exceptions import DependencyUnavailableError
from .models import SequenceCounter

logger = logging.getLogger(__name__)


class DatabaseSequenceCounter:
    """
    Issues strictly increasing integers per counter name.

    The increment is a single ``UPDATE ... SET current_value = current_value + 1``
    issued before the value is read back in the same transaction, so the row
    write lock serialises concurrent callers on every backend.
    """

    def __init__(self, using='default'):
        self.using = using

    def next_value(self, name):
        try:
            SequenceCounter.objects.using(self.using).get_or_create(name=name)

            with transaction.atomic(using=self.using):
                SequenceCounter.objects.using(self.using).filter(name=name).update(
                    current_value=F('current_value') + 1
                )
                return SequenceCounter.objects.using(self.using).values_list(
                    'current_value', flat=True
                ).get(name=name)
        except DatabaseError as e:
            logger.error(f"Sequence counter '{name}' unavailable: {e}")
            raise DependencyUnavailableError(f"Sequence counter '{name}' is unavailable") from e

    def current_value(self, name):
        return SequenceCounter.objects.using(self.using).filter(
            name=name
        ).values_list('current_value', flat=True).first() or 0
