"""Customer records, lifecycle history, portal contacts and deletion requests."""
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from bizops.encryption import DecryptionError, decrypt_field, encrypt_field


class LifecycleStatus(models.TextChoices):
    PROSPECT = "PROSPECT", _("Prospect")
    ONBOARDING = "ONBOARDING", _("Onboarding")
    ACTIVE = "ACTIVE", _("Active")
    DORMANT = "DORMANT", _("Dormant")
    OFFBOARDING = "OFFBOARDING", _("Offboarding")
    OFFBOARDED = "OFFBOARDED", _("Offboarded")


def _decrypt_or_marker(ciphertext):
    try:
        return decrypt_field(ciphertext)
    except DecryptionError:
        return "[DECRYPTION ERROR]"


class Customer(models.Model):
    """A customer of an org, with encrypted PII and free-form custom field values.

    ``lifecycle_status`` is changed only through apps.customers.lifecycle, and
    writes that depend on a prior read go through apps.customers.locking so
    ``version`` catches lost updates.
    """

    org_id = models.CharField(max_length=64, db_index=True)

    # Encrypted PII
    _name_encrypted = models.BinaryField(default=b"")
    _email_encrypted = models.BinaryField(default=b"", blank=True)
    _phone_encrypted = models.BinaryField(default=b"", blank=True)
    _id_number_encrypted = models.BinaryField(default=b"", blank=True)

    lifecycle_status = models.CharField(
        max_length=20, choices=LifecycleStatus.choices, default=LifecycleStatus.PROSPECT,
    )
    lifecycle_status_changed_at = models.DateTimeField(null=True, blank=True)
    lifecycle_status_changed_by = models.IntegerField(null=True, blank=True)
    offboarded_at = models.DateTimeField(null=True, blank=True)

    custom_fields = models.JSONField(default=dict, blank=True)
    last_activity_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=0)
    is_anonymised = models.BooleanField(
        default=False,
        help_text="True after PII has been stripped by the deletion workflow.",
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "customers"
        db_table = "customers"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["org_id", "lifecycle_status"], name="customers_org_status_idx"),
        ]

    def __str__(self):
        if self.is_anonymised:
            return f"[ANONYMISED] Customer #{self.pk}"
        return self.display_name or f"Customer #{self.pk}"

    @property
    def name(self):
        return _decrypt_or_marker(self._name_encrypted)

    @name.setter
    def name(self, value):
        self._name_encrypted = encrypt_field(value)

    @property
    def display_name(self):
        return self.name

    def confirmation_name(self):
        """The exact name users type to confirm destructive actions.

        Raises DecryptionError when the stored name cannot be read, so a
        confirmation is never compared against the error marker.
        """
        return decrypt_field(self._name_encrypted)

    @property
    def email(self):
        return _decrypt_or_marker(self._email_encrypted)

    @email.setter
    def email(self, value):
        self._email_encrypted = encrypt_field(value)

    @property
    def phone(self):
        return _decrypt_or_marker(self._phone_encrypted)

    @phone.setter
    def phone(self, value):
        self._phone_encrypted = encrypt_field(value)

    @property
    def id_number(self):
        return _decrypt_or_marker(self._id_number_encrypted)

    @id_number.setter
    def id_number(self, value):
        self._id_number_encrypted = encrypt_field(value)


class AppendOnlyQuerySet(models.QuerySet):
    """Blocks bulk update/delete of history rows."""

    def update(self, **kwargs):
        raise PermissionError("Lifecycle history is append-only and cannot be updated.")

    def delete(self):
        raise PermissionError("Lifecycle history is append-only and cannot be deleted.")


class LifecycleTransition(models.Model):
    """Append-only history of customer lifecycle status changes.

    Every successful transition appends a row here and writes an AuditLog
    entry for the separate compliance trail.
    """

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="lifecycle_transitions")
    org_id = models.CharField(max_length=64, db_index=True)
    from_status = models.CharField(max_length=20, choices=LifecycleStatus.choices)
    to_status = models.CharField(max_length=20, choices=LifecycleStatus.choices)
    changed_by = models.IntegerField(null=True, blank=True)
    changed_by_display = models.CharField(max_length=255, default="")
    changed_at = models.DateTimeField(default=timezone.now)
    notes = models.TextField(default="", blank=True)

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        app_label = "customers"
        db_table = "customer_lifecycle_transitions"
        ordering = ["changed_at", "id"]
        indexes = [
            models.Index(fields=["customer", "changed_at"], name="lifecycle_customer_at_idx"),
        ]

    def __str__(self):
        return f"Customer #{self.customer_id}: {self.from_status} → {self.to_status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise PermissionError("Lifecycle history is append-only and cannot be updated.")
        super().save(*args, **kwargs)


class PortalContact(models.Model):
    """A person at the customer who can sign in to the client portal."""

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="portal_contacts")
    org_id = models.CharField(max_length=64, db_index=True)
    display_name = models.CharField(max_length=255)
    _email_encrypted = models.BinaryField(default=b"", blank=True)
    role = models.CharField(max_length=50, default="general", blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "customers"
        db_table = "portal_contacts"
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.display_name

    @property
    def email(self):
        return _decrypt_or_marker(self._email_encrypted)

    @email.setter
    def email(self, value):
        self._email_encrypted = encrypt_field(value)

    @property
    def has_email(self):
        return bool(self._email_encrypted) and bool(self.email.strip())


class DeletionRequest(models.Model):
    """A request to erase a customer's personal data.

    Created PENDING, executed at most once. Survives after the customer is
    anonymised (customer SET_NULL on delete) and keeps only non-PII metadata
    and the counts of what was erased.
    """

    STATUS_PENDING = "PENDING"
    STATUS_EXECUTED = "EXECUTED"
    STATUS_CHOICES = [
        (STATUS_PENDING, _("Pending")),
        (STATUS_EXECUTED, _("Executed")),
    ]

    org_id = models.CharField(max_length=64, db_index=True)
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="deletion_requests",
    )
    customer_pk = models.BigIntegerField(help_text="Original Customer PK for audit cross-reference.")
    request_code = models.CharField(
        max_length=20, unique=True, blank=True, default="",
        help_text="Auto-generated reference code, e.g. DR-2026-001.",
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    reason = models.TextField(default="", blank=True, help_text="Do not include customer names.")

    requested_at = models.DateTimeField(auto_now_add=True)
    requested_by = models.IntegerField(null=True, blank=True)
    requested_by_display = models.CharField(max_length=255, default="")

    executed_at = models.DateTimeField(null=True, blank=True)
    executed_by = models.IntegerField(null=True, blank=True)
    executed_by_display = models.CharField(max_length=255, default="")

    # Counts only, never PII
    summary = models.JSONField(default=dict, blank=True)

    class Meta:
        app_label = "customers"
        db_table = "deletion_requests"
        ordering = ["-requested_at"]

    def save(self, *args, **kwargs):
        if not self.request_code:
            from django.db import IntegrityError, transaction
            year = timezone.now().year
            for attempt in range(5):
                last = DeletionRequest.objects.filter(
                    request_code__startswith=f"DR-{year}-",
                ).count()
                self.request_code = f"DR-{year}-{last + 1 + attempt:03d}"
                try:
                    with transaction.atomic():
                        super().save(*args, **kwargs)
                    return
                except IntegrityError:
                    if attempt == 4:
                        raise
                    continue
        super().save(*args, **kwargs)

    def __str__(self):
        code = self.request_code or f"#{self.pk}"
        return f"Deletion {code} — Customer #{self.customer_pk} ({self.get_status_display()})"

    @property
    def is_executed(self):
        return self.status == self.STATUS_EXECUTED
