"""Django system checks for the prerequisite failure policy.

Check IDs:
    bizops.W001 — A prerequisite context has no explicit failure policy (it will fail closed)
    bizops.E002 — PREREQUISITE_FAILURE_POLICY names an unknown context or policy

Run checks manually:
    python manage.py check
"""
from django.conf import settings
from django.core.checks import Error, Warning, register

from .contexts import PrerequisiteContext
from .policy import FAILURE_POLICY, POLICIES


@register()
def check_failure_policy_coverage(app_configs, **kwargs):
    """W001: every context should have a deliberate fail-open/fail-closed entry."""
    overrides = getattr(settings, "PREREQUISITE_FAILURE_POLICY", {})
    covered = {ctx.value for ctx in FAILURE_POLICY} | {str(ctx) for ctx in overrides}
    warnings = []
    for context in PrerequisiteContext:
        if context.value not in covered:
            warnings.append(
                Warning(
                    f"Prerequisite context {context.value} has no failure policy.",
                    hint="It will fail closed when storage is unavailable. Add it to FAILURE_POLICY.",
                    id="bizops.W001",
                )
            )
    return warnings


@register()
def check_failure_policy_overrides(app_configs, **kwargs):
    """E002: overrides must use known contexts and policies."""
    overrides = getattr(settings, "PREREQUISITE_FAILURE_POLICY", {})
    known = set(PrerequisiteContext.values)
    errors = []
    for context, policy in overrides.items():
        if str(context) not in known:
            errors.append(
                Error(
                    f"PREREQUISITE_FAILURE_POLICY has unknown context '{context}'.",
                    hint="Valid contexts: " + ", ".join(sorted(known)),
                    id="bizops.E002",
                )
            )
        elif policy not in POLICIES:
            errors.append(
                Error(
                    f"PREREQUISITE_FAILURE_POLICY['{context}'] is '{policy}'.",
                    hint="Use 'fail_closed' or 'fail_open'.",
                    id="bizops.E002",
                )
            )
    return errors
