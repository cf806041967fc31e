"""Write audit events on behalf of the compliance services."""
import logging

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_event(actor, action, resource_type, resource_id, *, org_id="",
                 old_values=None, new_values=None, metadata=None):
    """Append one row to the audit database.

    ``actor`` is a bizops.middleware.actor.Actor. Never pass PII in
    ``metadata`` — counts and status names only.
    """
    entry = AuditLog.objects.using("audit").create(
        event_timestamp=timezone.now(),
        org_id=org_id,
        user_id=actor.id,
        user_display=actor.label,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
        metadata=metadata,
    )
    logger.debug("Audit %s %s #%s by %s", action, resource_type, resource_id, actor.label)
    return entry
