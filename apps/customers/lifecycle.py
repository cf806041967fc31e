"""Customer Lifecycle State Machine.

Legal status changes are listed in ALLOWED_TRANSITIONS. Moving a customer
to ACTIVE first has to pass the LIFECYCLE_ACTIVATION prerequisite gate.
Every change appends a LifecycleTransition row and an audit entry.
Transitions have no side effects on other records.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.utils import timezone

from apps.audit.recorder import record_event
from apps.fields.models import EntityType
from apps.prerequisites.contexts import PrerequisiteContext
from apps.prerequisites.policy import gate
from bizops.exceptions import InvalidTransition, PermissionDenied

from .locking import locked_customer, save_versioned
from .models import LifecycleStatus, LifecycleTransition

logger = logging.getLogger(__name__)

S = LifecycleStatus

ALLOWED_TRANSITIONS = frozenset({
    (S.PROSPECT, S.ONBOARDING),
    (S.ONBOARDING, S.ACTIVE),
    (S.ACTIVE, S.DORMANT),
    (S.DORMANT, S.ACTIVE),
    (S.DORMANT, S.OFFBOARDING),
    (S.OFFBOARDING, S.ACTIVE),
    (S.OFFBOARDING, S.OFFBOARDED),
})

# Destinations that require a passing LIFECYCLE_ACTIVATION check
ACTIVATION_TARGETS = frozenset({S.ACTIVE})


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    customer: object
    from_status: str
    to_status: str
    check: object = None
    transition: object = None

    @property
    def violations(self):
        return list(self.check.violations) if self.check is not None else []

    def as_dict(self):
        payload = {
            "success": self.success,
            "customerId": self.customer.pk,
            "fromStatus": str(self.from_status),
            "toStatus": str(self.to_status),
            "status": self.customer.lifecycle_status,
        }
        if not self.success:
            payload["violations"] = [v.as_dict() for v in self.violations]
        return payload


def allowed_targets(status):
    """Statuses a customer in ``status`` may move to, in lifecycle order."""
    status = LifecycleStatus(status)
    order = list(LifecycleStatus)
    return sorted((to for frm, to in ALLOWED_TRANSITIONS if frm == status), key=order.index)


def is_allowed(from_status, to_status):
    return (from_status, to_status) in ALLOWED_TRANSITIONS


def require_lifecycle_role(actor, action, resource_type, resource_id, org_id=""):
    """Raise PermissionDenied (and audit the attempt) unless the actor is an org admin/owner."""
    if actor.role in settings.LIFECYCLE_ADMIN_ROLES:
        return
    logger.warning("Denied %s on %s %s for role %r", action, resource_type, resource_id, actor.role)
    record_event(
        actor, "access_denied", resource_type, resource_id, org_id=org_id,
        metadata={"attempted": action, "role": actor.role},
    )
    raise PermissionDenied(
        "Only an org admin or owner can do this.", action=action, role=actor.role,
    )


def _parse_status(value):
    try:
        return LifecycleStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown lifecycle status '{value}'.", status=str(value))


def transition_lifecycle(customer_id, target_status, actor, notes=""):
    """Move a customer to ``target_status``.

    Returns a TransitionResult. ``success`` is False only when prerequisites
    for activation are unmet, in which case nothing is changed and the
    result carries the violations.

    Raises:
        PermissionDenied: the actor's role may not change lifecycle status.
        InvalidTransition: unknown status, or the edge is not allowed.
        ConcurrencyConflict: the customer is locked or changed concurrently.
        Customer.DoesNotExist: no such customer.
    """
    require_lifecycle_role(actor, "lifecycle_transition", "customer", customer_id)
    target = _parse_status(target_status)

    with locked_customer(customer_id) as customer:
        current = LifecycleStatus(customer.lifecycle_status)
        if not is_allowed(current, target):
            raise InvalidTransition(
                f"Cannot move a customer from {current} to {target}.",
                from_status=current.value,
                to_status=target.value,
                allowed=[s.value for s in allowed_targets(current)],
            )

        if target in ACTIVATION_TARGETS:
            check = gate(PrerequisiteContext.LIFECYCLE_ACTIVATION, EntityType.CUSTOMER, customer.pk)
            if not check.passed:
                logger.info(
                    "Activation of customer %s blocked by %d prerequisite violation(s)",
                    customer.pk, len(check.violations),
                )
                return TransitionResult(False, customer, current, target, check=check)
        else:
            check = None

        now = timezone.now()
        customer.lifecycle_status = target
        customer.lifecycle_status_changed_at = now
        customer.lifecycle_status_changed_by = actor.id
        fields = ["lifecycle_status", "lifecycle_status_changed_at", "lifecycle_status_changed_by"]
        if target == LifecycleStatus.OFFBOARDED:
            customer.offboarded_at = now
            fields.append("offboarded_at")
        save_versioned(customer, fields)

        history = LifecycleTransition.objects.create(
            customer=customer,
            org_id=customer.org_id,
            from_status=current,
            to_status=target,
            changed_by=actor.id,
            changed_by_display=actor.label,
            changed_at=now,
            notes=notes or "",
        )
        record_event(
            actor, "transition", "customer", customer.pk, org_id=customer.org_id,
            old_values={"lifecycle_status": current.value},
            new_values={"lifecycle_status": target.value},
            metadata={"history_id": history.pk},
        )

    logger.info("Customer %s moved %s → %s by %s", customer.pk, current, target, actor.label)
    return TransitionResult(True, customer, current, target, check=check, transition=history)


def get_lifecycle_history(customer):
    """Return the customer's status changes, oldest first."""
    return list(LifecycleTransition.objects.filter(customer=customer).order_by("changed_at", "id"))
