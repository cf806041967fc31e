"""Exclusive per-customer lock for read-modify-write operations.

Row lock via select_for_update(nowait=True) where the backend supports it,
plus an optimistic check on Customer.version when writing. Either kind of
contention raises ConcurrencyConflict, which callers may retry.
"""
import logging
from contextlib import contextmanager

from django.db import OperationalError, connection, transaction
from django.utils import timezone

from bizops.exceptions import ConcurrencyConflict

from .models import Customer

logger = logging.getLogger(__name__)


@contextmanager
def locked_customer(customer_id):
    """Open a transaction holding the customer row and yield the Customer.

    Raises Customer.DoesNotExist or ConcurrencyConflict.
    """
    with transaction.atomic():
        queryset = Customer.objects.all()
        if connection.features.has_select_for_update_nowait:
            queryset = queryset.select_for_update(nowait=True)
        try:
            customer = queryset.get(pk=customer_id)
        except OperationalError as exc:
            logger.info("Customer %s is locked by another request", customer_id)
            raise ConcurrencyConflict(
                "This customer is being changed by someone else. Try again.",
                customer_id=customer_id,
            ) from exc
        yield customer


def save_versioned(customer, fields):
    """Write ``fields`` only if nobody bumped the version since we read it.

    On success the in-memory instance carries the new version.
    """
    values = {name: getattr(customer, name) for name in fields}
    values["updated_at"] = timezone.now()
    updated = (
        Customer.objects
        .filter(pk=customer.pk, version=customer.version)
        .update(version=customer.version + 1, **values)
    )
    if updated != 1:
        logger.warning("Stale version %s writing customer %s", customer.version, customer.pk)
        raise ConcurrencyConflict(
            "This customer was changed by someone else. Reload and try again.",
            customer_id=customer.pk,
        )
    customer.version += 1
    customer.updated_at = values["updated_at"]
    return customer
