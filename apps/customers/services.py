"""Ordinary customer edits: creation, custom field values, activity stamps."""
import logging

from django.utils import timezone

from apps.audit.recorder import record_event
from apps.fields.models import EntityType
from apps.fields.registry import validate_values
from bizops.exceptions import InvalidTransition

from .locking import locked_customer, save_versioned
from .models import Customer, LifecycleStatus, PortalContact

logger = logging.getLogger(__name__)


def create_customer(org_id, name, *, email="", phone="", id_number="", custom_fields=None, actor=None):
    """Create a PROSPECT customer. Custom field values are validated against the registry."""
    values = validate_values(org_id, EntityType.CUSTOMER, custom_fields or {})
    customer = Customer(org_id=org_id, lifecycle_status=LifecycleStatus.PROSPECT, custom_fields=values)
    customer.name = name
    customer.email = email
    customer.phone = phone
    customer.id_number = id_number
    customer.save()
    logger.info("Created customer %s in org %s", customer.pk, org_id)
    if actor is not None:
        record_event(actor, "create", "customer", customer.pk, org_id=org_id)
    return customer


def _refuse_if_erased(customer):
    if customer.is_anonymised:
        logger.warning("Refused edit of erased customer %s", customer.pk)
        raise InvalidTransition(
            "This customer's data has been erased and can no longer be edited.",
            customer_id=customer.pk,
        )


def update_custom_fields(customer_id, values, actor):
    """Merge validated values into the customer's custom fields under the customer lock.

    A value of None clears the slug. Raises ValidationError for bad values,
    InvalidTransition if the customer has been erased, and
    ConcurrencyConflict if the customer changed underneath us.
    """
    with locked_customer(customer_id) as customer:
        _refuse_if_erased(customer)
        cleaned = validate_values(customer.org_id, EntityType.CUSTOMER, values)
        merged = dict(customer.custom_fields or {})
        old_values = {slug: merged.get(slug) for slug in cleaned}
        for slug, value in cleaned.items():
            if value is None:
                merged.pop(slug, None)
            else:
                merged[slug] = value
        customer.custom_fields = merged
        customer.last_activity_at = timezone.now()
        save_versioned(customer, ["custom_fields", "last_activity_at"])
        record_event(
            actor, "update", "customer", customer.pk, org_id=customer.org_id,
            metadata={"custom_fields": sorted(cleaned)},
            old_values={"filled": sorted(s for s, v in old_values.items() if v is not None)},
        )
    return customer


def record_activity(customer, when=None):
    """Stamp the customer's last activity (used by the dormancy scan)."""
    when = when or timezone.now()
    Customer.objects.filter(pk=customer.pk).update(last_activity_at=when)
    customer.last_activity_at = when
    return customer


def add_portal_contact(customer, display_name, email="", role="general"):
    _refuse_if_erased(customer)
    contact = PortalContact(customer=customer, org_id=customer.org_id, display_name=display_name, role=role)
    contact.email = email
    contact.save()
    return contact
