"""Immutable audit log — stored in separate database."""
from django.db import models
from django.utils.translation import gettext_lazy as _


class ImmutableAuditQuerySet(models.QuerySet):
    """QuerySet that prevents any mutation of audit log rows."""

    def update(self, **kwargs):
        raise PermissionError(
            "Audit logs are immutable and cannot be updated. "
            "Direct ORM update() on AuditLog is not permitted."
        )

    def delete(self):
        raise PermissionError(
            "Audit logs are immutable and cannot be deleted. "
            "Direct ORM delete() on AuditLog is not permitted."
        )


class ImmutableAuditManager(models.Manager):
    """Manager that returns an immutable queryset and blocks bulk mutation."""

    def get_queryset(self):
        return ImmutableAuditQuerySet(self.model, using=self._db)

    def update(self, **kwargs):
        raise PermissionError(
            "Audit logs are immutable and cannot be updated. "
            "Direct ORM update() on AuditLog is not permitted."
        )

    def delete(self):
        raise PermissionError(
            "Audit logs are immutable and cannot be deleted. "
            "Direct ORM delete() on AuditLog is not permitted."
        )


class AuditLog(models.Model):
    """
    Append-only audit trail. The database user for this table
    should have INSERT-only permission (no UPDATE/DELETE).
    """

    ACTION_CHOICES = [
        ("create", _("Created")),
        ("update", _("Updated")),
        ("deactivate", _("Deactivated")),
        ("transition", _("Lifecycle transition")),
        ("deletion_requested", _("Deletion requested")),
        ("deletion_executed", _("Deletion executed")),
        ("access_denied", _("Access denied")),
    ]

    RESOURCE_TYPE_LABELS = {
        "field_definition": _("Field definition"),
        "field_group": _("Field group"),
        "customer": _("Customer"),
        "deletion_request": _("Deletion request"),
    }

    event_timestamp = models.DateTimeField()
    org_id = models.CharField(max_length=64, default="", blank=True, db_index=True)
    user_id = models.IntegerField(null=True, blank=True)
    user_display = models.CharField(max_length=255, default="")
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    resource_type = models.CharField(max_length=100)
    resource_id = models.BigIntegerField(null=True, blank=True)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(null=True, blank=True)

    # .create() and .bulk_create() are intentionally NOT overridden — appending
    # new rows is the only permitted mutation.
    objects = ImmutableAuditManager()

    class Meta:
        app_label = "audit"
        db_table = "audit_log"
        ordering = ["-event_timestamp"]

    def __str__(self):
        return f"{self.event_timestamp} | {self.user_display} | {self.action} {self.resource_type}"

    @property
    def resource_type_display(self):
        return self.RESOURCE_TYPE_LABELS.get(
            self.resource_type, self.resource_type.replace("_", " ").title()
        )
