"""Custom field definitions, groups and their per-context requirement flags."""
from django.db import models
from django.utils.translation import gettext_lazy as _


class EntityType(models.TextChoices):
    CUSTOMER = "CUSTOMER", _("Customer")
    PROJECT = "PROJECT", _("Project")
    TASK = "TASK", _("Task")
    INVOICE = "INVOICE", _("Invoice")


class FieldType(models.TextChoices):
    TEXT = "TEXT", _("Text")
    NUMBER = "NUMBER", _("Number")
    DATE = "DATE", _("Date")
    BOOLEAN = "BOOLEAN", _("Yes / No")
    DROPDOWN = "DROPDOWN", _("Dropdown")
    CURRENCY = "CURRENCY", _("Currency")
    URL = "URL", _("Web address")
    EMAIL = "EMAIL", _("Email address")
    PHONE = "PHONE", _("Phone number")


# Operators allowed in FieldDefinition.visibility_condition["operator"]
VISIBILITY_OPERATORS = ("equals", "not_equals", "in", "not_in")
LIST_OPERATORS = ("in", "not_in")


class ActiveQuerySet(models.QuerySet):

    def active(self):
        return self.filter(active=True)

    def for_entity(self, org_id, entity_type):
        return self.filter(org_id=org_id, entity_type=entity_type)


class FieldGroup(models.Model):
    """A named, ordered set of field definitions (e.g. 'Company Details', 'FICA / KYC')."""

    org_id = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=20, choices=EntityType.choices, default=EntityType.CUSTOMER)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100)
    sort_order = models.IntegerField(default=0)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        app_label = "fields"
        db_table = "field_groups"
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["org_id", "slug"], name="uniq_field_group_slug_per_org"),
        ]

    def __str__(self):
        return self.name


class FieldDefinition(models.Model):
    """A custom field an org defines for one entity type.

    ``required_for_contexts`` lists PrerequisiteContext values for which a
    value must be present before the action is allowed. ``visibility_condition``
    makes the field conditional on another field of the same entity type:

        {"dependsOnSlug": "entity_kind", "operator": "equals", "value": "company"}

    Definitions are never hard-deleted; ``deactivate`` keeps entity values.
    """

    org_id = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=20, choices=EntityType.choices, default=EntityType.CUSTOMER)
    name = models.CharField(max_length=255)
    slug = models.CharField(max_length=100)
    description = models.TextField(default="", blank=True)
    field_type = models.CharField(max_length=20, choices=FieldType.choices)
    required = models.BooleanField(default=False)
    required_for_contexts = models.JSONField(default=list, blank=True)
    options = models.JSONField(default=list, blank=True, help_text="[{value, label}] for dropdown fields.")
    validation = models.JSONField(default=dict, blank=True, help_text="min, max, minLength, maxLength, pattern.")
    visibility_condition = models.JSONField(null=True, blank=True)
    sort_order = models.IntegerField(default=0)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        app_label = "fields"
        db_table = "field_definitions"
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["org_id", "entity_type", "slug"], name="uniq_field_slug_per_org_entity",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.slug})"

    def is_required_for(self, context):
        return str(context) in (self.required_for_contexts or [])

    @property
    def depends_on_slug(self):
        condition = self.visibility_condition or {}
        return condition.get("dependsOnSlug")

    def option_values(self):
        return [opt.get("value") for opt in (self.options or []) if isinstance(opt, dict)]


class FieldGroupMember(models.Model):
    """Places a field definition at a position within a group."""

    group = models.ForeignKey(FieldGroup, on_delete=models.CASCADE, related_name="members")
    field = models.ForeignKey(FieldDefinition, on_delete=models.CASCADE, related_name="memberships")
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "fields"
        db_table = "field_group_members"
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["group", "field"], name="uniq_field_per_group"),
        ]

    def __str__(self):
        return f"{self.group} → {self.field}"
