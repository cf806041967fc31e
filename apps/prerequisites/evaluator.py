"""Prerequisite Evaluator.

Given a business context and an entity, works out which custom fields and
checklist items are currently required and reports every unmet one as a
structured violation the UI can turn into a remediation flow.

Evaluation is read-only. A failed check is a normal result, not an error.
"""
import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction
from django.utils.translation import gettext as _

from apps.checklists.models import ChecklistInstance, ChecklistItem
from apps.customers.models import Customer
from apps.fields.models import EntityType
from apps.fields.registry import active_definitions, resolve_applicable
from apps.fields.visibility import is_value_filled, is_visible
from bizops.exceptions import StorageUnavailable

from .contexts import CHECKLIST_CONTEXTS, PrerequisiteContext

logger = logging.getLogger(__name__)

MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
CHECKLIST_INCOMPLETE = "CHECKLIST_INCOMPLETE"
STRUCTURAL = "STRUCTURAL"
STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


@dataclass(frozen=True)
class PrerequisiteViolation:
    code: str
    message: str
    entity_type: str
    entity_id: int
    field_slug: str | None = None
    group_name: str | None = None
    resolution: str = ""

    def as_dict(self):
        return {
            "code": self.code,
            "message": self.message,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "fieldSlug": self.field_slug,
            "groupName": self.group_name,
            "resolution": self.resolution,
        }


@dataclass(frozen=True)
class PrerequisiteCheck:
    """Outcome of one evaluation. ``degraded`` means storage failed and a fail-open policy let it pass."""

    passed: bool
    context: str
    violations: list = field(default_factory=list)
    degraded: bool = False

    def as_dict(self):
        payload = {
            "passed": self.passed,
            "context": str(self.context),
            "violations": [v.as_dict() for v in self.violations],
        }
        if self.degraded:
            payload["degraded"] = True
        return payload


def _customer_has_email(customer):
    return bool(customer._email_encrypted) and bool(customer.email.strip())


def _has_contact_with_email(customer):
    return any(contact.has_email for contact in customer.portal_contacts.filter(is_active=True))


def _field_violations(customer, context):
    values = customer.custom_fields or {}
    active_slugs = set(active_definitions(customer.org_id, EntityType.CUSTOMER))
    violations = []
    for applicable in resolve_applicable(customer.org_id, EntityType.CUSTOMER, context):
        definition = applicable.definition
        if not is_visible(definition, values, active_slugs):
            continue
        if is_value_filled(definition, values.get(definition.slug)):
            continue
        violations.append(PrerequisiteViolation(
            code=MISSING_REQUIRED_FIELD,
            message=_("%(field)s is required for %(context)s.") % {
                "field": definition.name, "context": context.label,
            },
            entity_type=EntityType.CUSTOMER.value,
            entity_id=customer.pk,
            field_slug=definition.slug,
            group_name=applicable.group_name,
            resolution=_("Fill the %(field)s field on the customer profile.") % {"field": definition.name},
        ))
    return violations


def _checklist_violations(customer):
    violations = []
    instances = (
        ChecklistInstance.objects
        .filter(customer=customer)
        .exclude(status=ChecklistInstance.CANCELLED)
        .order_by("created_at", "id")
    )
    for instance in instances:
        open_items = (
            instance.items
            .filter(required=True)
            .exclude(status__in=ChecklistItem.RESOLVED_STATUSES)
            .order_by("sort_order", "id")
        )
        for item in open_items:
            violations.append(PrerequisiteViolation(
                code=CHECKLIST_INCOMPLETE,
                message=_("Checklist item '%(item)s' is not complete.") % {"item": item.name},
                entity_type=EntityType.CUSTOMER.value,
                entity_id=customer.pk,
                group_name=instance.name,
                resolution=_("Complete '%(item)s' on the %(checklist)s checklist.") % {
                    "item": item.name, "checklist": instance.name,
                },
            ))
    return violations


def _structural_violations(customer, context):
    if context == PrerequisiteContext.INVOICE_GENERATION:
        if _customer_has_email(customer) or _has_contact_with_email(customer):
            return []
        return [PrerequisiteViolation(
            code=STRUCTURAL,
            message=_("Invoices need a billing email address."),
            entity_type=EntityType.CUSTOMER.value,
            entity_id=customer.pk,
            resolution=_("Add an email address to the customer or to an active portal contact."),
        )]
    if context == PrerequisiteContext.PROPOSAL_SEND:
        if _has_contact_with_email(customer):
            return []
        return [PrerequisiteViolation(
            code=STRUCTURAL,
            message=_("Proposals are sent to a portal contact, and none has an email address."),
            entity_type=EntityType.CUSTOMER.value,
            entity_id=customer.pk,
            resolution=_("Add an active portal contact with an email address."),
        )]
    return []


def check_prerequisites(context, entity_type, entity_id):
    """Evaluate every prerequisite for ``context`` against one entity.

    Returns a PrerequisiteCheck; ``passed`` is True only when there are no
    violations. Violations are ordered: missing fields (group then field
    order), then open checklist items, then structural problems.

    Raises:
        ValueError: unknown context, or an entity type other than CUSTOMER.
        Customer.DoesNotExist: no such customer.
        StorageUnavailable: definitions or values could not be loaded.
    """
    context = PrerequisiteContext(context)
    entity_type = EntityType(entity_type)
    if entity_type != EntityType.CUSTOMER:
        raise ValueError(f"Prerequisite checks for {entity_type} entities are not supported yet.")

    try:
        with transaction.atomic():
            customer = Customer.objects.get(pk=entity_id)
            violations = _field_violations(customer, context)
            if context in CHECKLIST_CONTEXTS:
                violations.extend(_checklist_violations(customer))
            violations.extend(_structural_violations(customer, context))
    except DatabaseError as exc:
        logger.error("Prerequisite check %s for customer %s could not load data: %s", context, entity_id, exc)
        raise StorageUnavailable(
            _("Prerequisite data is temporarily unavailable."), context=context.value,
        ) from exc

    if violations:
        logger.info(
            "Prerequisite check %s for customer %s failed with %d violation(s)",
            context, entity_id, len(violations),
        )
    return PrerequisiteCheck(passed=not violations, context=context.value, violations=violations)


def storage_failure_violation(context, entity_type, entity_id):
    return PrerequisiteViolation(
        code=STORAGE_UNAVAILABLE,
        message=_("Prerequisites could not be checked right now."),
        entity_type=str(entity_type),
        entity_id=entity_id,
        resolution=_("Try again in a few minutes."),
    )
