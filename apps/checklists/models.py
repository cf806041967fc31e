"""Onboarding/compliance checklists attached to a customer."""
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ChecklistInstance(models.Model):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    STATUS_CHOICES = [
        (IN_PROGRESS, _("In progress")),
        (COMPLETED, _("Completed")),
        (CANCELLED, _("Cancelled")),
    ]

    org_id = models.CharField(max_length=64, db_index=True)
    customer = models.ForeignKey(
        "customers.Customer", on_delete=models.CASCADE, related_name="checklists",
    )
    name = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=IN_PROGRESS)
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "checklists"
        db_table = "checklist_instances"
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.name

    def refresh_status(self):
        """Mark the instance COMPLETED once every required item is resolved."""
        if self.status == self.CANCELLED:
            return self.status
        open_required = self.items.filter(required=True).exclude(
            status__in=ChecklistItem.RESOLVED_STATUSES,
        )
        if not open_required.exists():
            self.status = self.COMPLETED
            self.completed_at = timezone.now()
        else:
            self.status = self.IN_PROGRESS
            self.completed_at = None
        self.save(update_fields=["status", "completed_at"])
        return self.status


class ChecklistItem(models.Model):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"
    STATUS_CHOICES = [
        (PENDING, _("Pending")),
        (IN_PROGRESS, _("In progress")),
        (COMPLETED, _("Completed")),
        (SKIPPED, _("Skipped")),
    ]
    RESOLVED_STATUSES = (COMPLETED, SKIPPED)

    instance = models.ForeignKey(ChecklistInstance, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=255)
    required = models.BooleanField(default=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    sort_order = models.IntegerField(default=0)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by_display = models.CharField(max_length=255, default="", blank=True)

    class Meta:
        app_label = "checklists"
        db_table = "checklist_items"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return self.name

    @property
    def is_resolved(self):
        return self.status in self.RESOLVED_STATUSES

    def complete(self, actor_display=""):
        self.status = self.COMPLETED
        self.completed_at = timezone.now()
        self.completed_by_display = actor_display
        self.save(update_fields=["status", "completed_at", "completed_by_display"])
        self.instance.refresh_status()

    def skip(self):
        if self.required:
            raise ValidationError(_("Required checklist items cannot be skipped."))
        self.status = self.SKIPPED
        self.save(update_fields=["status"])
        self.instance.refresh_status()
