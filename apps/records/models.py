"""Documents, comments and invoices attached to a customer.

These are owned by other parts of the platform (document generation,
billing); only the fields the deletion workflow and the structural
prerequisite checks read are modelled here.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _


class Document(models.Model):
    customer = models.ForeignKey(
        "customers.Customer", on_delete=models.CASCADE, related_name="documents",
    )
    org_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255)
    file_name = models.CharField(max_length=255, default="", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "records"
        db_table = "documents"
        ordering = ["-created_at"]

    def __str__(self):
        return self.title


class Comment(models.Model):
    """A threaded comment on a customer or one of its documents.

    SHARED comments are visible to the customer's portal contacts; INTERNAL
    ones are staff-only. The deletion workflow redacts SHARED bodies in place
    so replies keep their parent.
    """

    INTERNAL = "INTERNAL"
    SHARED = "SHARED"
    VISIBILITY_CHOICES = [
        (INTERNAL, _("Internal")),
        (SHARED, _("Shared with customer")),
    ]
    REDACTED_BODY = "[Removed]"

    org_id = models.CharField(max_length=64, db_index=True)
    customer = models.ForeignKey(
        "customers.Customer", on_delete=models.CASCADE,
        null=True, blank=True, related_name="comments",
    )
    document = models.ForeignKey(
        Document, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="comments",
    )
    parent = models.ForeignKey(
        "self", on_delete=models.CASCADE,
        null=True, blank=True, related_name="replies",
    )
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default=INTERNAL)
    author_display = models.CharField(max_length=255, default="")
    body = models.TextField()
    is_redacted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "records"
        db_table = "comments"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Comment #{self.pk} ({self.visibility})"


class Invoice(models.Model):
    """Billing record. Retained for tax law, so a customer with invoices can never be hard-deleted."""

    org_id = models.CharField(max_length=64, db_index=True)
    customer = models.ForeignKey(
        "customers.Customer", on_delete=models.PROTECT, related_name="invoices",
    )
    number = models.CharField(max_length=50)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="ZAR")
    issued_at = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "records"
        db_table = "invoices"
        ordering = ["-created_at"]

    def __str__(self):
        return self.number
