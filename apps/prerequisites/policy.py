"""What a gated action does when prerequisites cannot be evaluated.

Activation blocks (fail closed). The remaining contexts gate actions that a
user can retry or that are reviewed before they reach the customer, so a
storage outage lets them through flagged as degraded (fail open). Contexts
with no entry fail closed.
"""
import logging

from django.conf import settings

from bizops.exceptions import StorageUnavailable

from .contexts import PrerequisiteContext
from .evaluator import PrerequisiteCheck, check_prerequisites, storage_failure_violation

logger = logging.getLogger(__name__)

FAIL_CLOSED = "fail_closed"
FAIL_OPEN = "fail_open"
POLICIES = (FAIL_CLOSED, FAIL_OPEN)

FAILURE_POLICY = {
    PrerequisiteContext.LIFECYCLE_ACTIVATION: FAIL_CLOSED,
    PrerequisiteContext.INVOICE_GENERATION: FAIL_OPEN,
    PrerequisiteContext.PROPOSAL_SEND: FAIL_OPEN,
    PrerequisiteContext.DOCUMENT_GENERATION: FAIL_OPEN,
    PrerequisiteContext.PROJECT_CREATION: FAIL_OPEN,
}


def effective_policy_table():
    """The default table with the PREREQUISITE_FAILURE_POLICY setting applied."""
    table = {ctx.value: policy for ctx, policy in FAILURE_POLICY.items()}
    for ctx, policy in getattr(settings, "PREREQUISITE_FAILURE_POLICY", {}).items():
        table[str(ctx)] = policy
    return table


def get_failure_policy(context):
    policy = effective_policy_table().get(str(context))
    if policy not in POLICIES:
        return FAIL_CLOSED
    return policy


def gate(context, entity_type, entity_id):
    """Run the evaluator and apply the failure policy if storage is down.

    Always returns a PrerequisiteCheck. On a storage failure the check is
    blocked with a STORAGE_UNAVAILABLE violation for fail-closed contexts,
    and passed with ``degraded=True`` for fail-open ones.
    """
    try:
        return check_prerequisites(context, entity_type, entity_id)
    except StorageUnavailable:
        policy = get_failure_policy(context)
        if policy == FAIL_OPEN:
            logger.warning(
                "Prerequisites for %s on %s %s unavailable; allowing (fail open)",
                context, entity_type, entity_id,
            )
            return PrerequisiteCheck(passed=True, context=str(context), degraded=True)
        logger.warning(
            "Prerequisites for %s on %s %s unavailable; blocking (fail closed)",
            context, entity_type, entity_id,
        )
        return PrerequisiteCheck(
            passed=False,
            context=str(context),
            violations=[storage_failure_violation(context, entity_type, entity_id)],
            degraded=True,
        )
