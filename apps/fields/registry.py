"""Field Definition Registry.

Org admins register custom field definitions, mark them as required for
business contexts, arrange them in groups and make them conditional on
other fields. The Prerequisite Evaluator asks the registry which fields
apply to a context, in group/field declaration order.

Invalid definitions raise django.core.exceptions.ValidationError, keyed by
the offending attribute.
"""
import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils.text import slugify

from apps.audit.recorder import record_event
from apps.prerequisites.contexts import PrerequisiteContext

from .models import (
    LIST_OPERATORS,
    VISIBILITY_OPERATORS,
    EntityType,
    FieldDefinition,
    FieldGroup,
    FieldGroupMember,
    FieldType,
)
from .validators import validate_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplicableField:
    """A field required for a context, with the group it is reported under."""

    definition: FieldDefinition
    group_name: str | None = None

    @property
    def slug(self):
        return self.definition.slug


# ── Definition validation ───────────────────────────────────────────


def generate_slug(name):
    """Turn a display name into a field slug: 'VAT Number' → 'vat_number'."""
    slug = slugify(name).replace("-", "_")
    return slug or "field"


def _unique_slug(org_id, entity_type, base_slug):
    taken = set(
        FieldDefinition.objects.for_entity(org_id, entity_type)
        .filter(slug__startswith=base_slug)
        .values_list("slug", flat=True)
    )
    slug = base_slug
    suffix = 2
    while slug in taken:
        slug = f"{base_slug}_{suffix}"
        suffix += 1
    return slug


def _clean_contexts(contexts):
    cleaned = []
    for ctx in contexts or []:
        try:
            value = PrerequisiteContext(ctx).value
        except ValueError:
            raise ValidationError({"required_for_contexts": f"Unknown context '{ctx}'."})
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


def _clean_options(field_type, options):
    if field_type != FieldType.DROPDOWN:
        return options or []
    if not options:
        raise ValidationError({"options": "Dropdown fields need at least one option."})
    cleaned = []
    for opt in options:
        if isinstance(opt, str):
            opt = {"value": opt, "label": opt}
        if not isinstance(opt, dict) or not opt.get("value"):
            raise ValidationError({"options": "Each option needs a value."})
        cleaned.append({"value": opt["value"], "label": opt.get("label") or opt["value"]})
    return cleaned


def _dependency_graph(org_id, entity_type):
    """Map each active field slug to the set of slugs its visibility depends on."""
    graph = {}
    for fd in FieldDefinition.objects.for_entity(org_id, entity_type).active():
        graph[fd.slug] = {fd.depends_on_slug} if fd.depends_on_slug else set()
    return graph


def _creates_cycle(graph, own_slug, depends_on):
    """Depth-first search from ``depends_on``; a path back to ``own_slug`` is a cycle."""
    graph = dict(graph)
    graph[own_slug] = {depends_on}
    stack = [depends_on]
    seen = set()
    while stack:
        slug = stack.pop()
        if slug == own_slug:
            return True
        if slug in seen:
            continue
        seen.add(slug)
        stack.extend(graph.get(slug, ()))
    return False


def validate_visibility_condition(condition, org_id, entity_type, own_slug):
    """Reject malformed, self-referential, dangling or cyclic conditions."""
    if condition is None:
        return
    if not isinstance(condition, dict):
        raise ValidationError({"visibility_condition": "Must be an object."})

    depends_on = condition.get("dependsOnSlug")
    if not isinstance(depends_on, str) or not depends_on:
        raise ValidationError({"visibility_condition": "dependsOnSlug must be a non-empty string."})

    operator = condition.get("operator")
    if operator not in VISIBILITY_OPERATORS:
        raise ValidationError({
            "visibility_condition": "operator must be one of: " + ", ".join(VISIBILITY_OPERATORS),
        })

    if "value" not in condition or condition["value"] is None:
        raise ValidationError({"visibility_condition": "value must not be empty."})
    if operator in LIST_OPERATORS and not isinstance(condition["value"], list):
        raise ValidationError({
            "visibility_condition": f"value must be a list for the '{operator}' operator.",
        })

    if depends_on == own_slug:
        raise ValidationError({"visibility_condition": "A field cannot depend on itself."})

    target_exists = (
        FieldDefinition.objects.for_entity(org_id, entity_type)
        .active()
        .filter(slug=depends_on)
        .exists()
    )
    if not target_exists:
        raise ValidationError({
            "visibility_condition": (
                f"dependsOnSlug '{depends_on}' does not reference an active field "
                "of the same entity type."
            ),
        })

    if _creates_cycle(_dependency_graph(org_id, entity_type), own_slug, depends_on):
        raise ValidationError({
            "visibility_condition": f"Depending on '{depends_on}' would create a visibility cycle.",
        })


# ── Registration ────────────────────────────────────────────────────


def register_field(org_id, entity_type, name, field_type, *, slug=None, description="",
                   required=False, required_for_contexts=(), options=None, validation=None,
                   visibility_condition=None, sort_order=0, actor=None):
    """Create a field definition. Raises ValidationError if the definition is invalid."""
    try:
        entity_type = EntityType(entity_type)
    except ValueError:
        raise ValidationError({"entity_type": f"Unknown entity type '{entity_type}'."})
    try:
        field_type = FieldType(field_type)
    except ValueError:
        raise ValidationError({"field_type": f"Unknown field type '{field_type}'."})
    if not name or not name.strip():
        raise ValidationError({"name": "Name is required."})

    if slug:
        if slug != generate_slug(slug):
            raise ValidationError({
                "slug": f"Slug '{slug}' must use lowercase letters, digits and underscores only.",
            })
        if FieldDefinition.objects.for_entity(org_id, entity_type).filter(slug=slug).exists():
            raise ValidationError({"slug": f"A field with slug '{slug}' already exists."})
    else:
        slug = _unique_slug(org_id, entity_type, generate_slug(name))

    contexts = _clean_contexts(required_for_contexts)
    options = _clean_options(field_type, options)
    validate_visibility_condition(visibility_condition, org_id, entity_type, slug)

    try:
        with transaction.atomic():
            field = FieldDefinition.objects.create(
                org_id=org_id,
                entity_type=entity_type,
                name=name.strip(),
                slug=slug,
                description=description,
                field_type=field_type,
                required=required,
                required_for_contexts=contexts,
                options=options,
                validation=validation or {},
                visibility_condition=visibility_condition,
                sort_order=sort_order,
            )
    except IntegrityError:
        # Lost a race with a concurrent registration of the same slug
        raise ValidationError({"slug": f"A field with slug '{slug}' already exists."})

    logger.info(
        "Registered field definition id=%s org=%s entity=%s slug=%s",
        field.pk, org_id, entity_type, slug,
    )
    if actor is not None:
        record_event(
            actor, "create", "field_definition", field.pk, org_id=org_id,
            new_values={"slug": slug, "field_type": field_type.value, "contexts": contexts},
        )
    return field


def _entity_has_values(field):
    # Only customers carry custom field values in this service.
    if field.entity_type != EntityType.CUSTOMER:
        return False
    from apps.customers.models import Customer

    for values in Customer.objects.filter(org_id=field.org_id).values_list("custom_fields", flat=True):
        if values and values.get(field.slug) is not None:
            return True
    return False


def update_field(field, *, actor=None, **changes):
    """Update a definition's metadata. The slug and entity type never change."""
    allowed = {
        "name", "description", "field_type", "required", "required_for_contexts",
        "options", "validation", "visibility_condition", "sort_order",
    }
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError({key: "This attribute cannot be changed." for key in sorted(unknown)})

    if "field_type" in changes:
        try:
            new_type = FieldType(changes["field_type"])
        except ValueError:
            raise ValidationError({"field_type": f"Unknown field type '{changes['field_type']}'."})
        if new_type != field.field_type and _entity_has_values(field):
            raise ValidationError({
                "field_type": "Field type cannot be changed after values exist. Create a new field instead.",
            })
        changes["field_type"] = new_type
    if "required_for_contexts" in changes:
        changes["required_for_contexts"] = _clean_contexts(changes["required_for_contexts"])
    if "options" in changes or "field_type" in changes:
        changes["options"] = _clean_options(
            changes.get("field_type", field.field_type), changes.get("options", field.options),
        )
    if "visibility_condition" in changes:
        validate_visibility_condition(
            changes["visibility_condition"], field.org_id, field.entity_type, field.slug,
        )

    old_values = {key: getattr(field, key) for key in changes}
    for key, value in changes.items():
        setattr(field, key, value)
    field.save()

    logger.info("Updated field definition id=%s slug=%s", field.pk, field.slug)
    if actor is not None:
        record_event(
            actor, "update", "field_definition", field.pk, org_id=field.org_id,
            old_values={k: str(v) for k, v in old_values.items()},
            new_values={k: str(v) for k, v in changes.items()},
        )
    return field


def deactivate_field(field, *, actor=None):
    """Soft-delete a definition. Values already stored on entities are kept."""
    if not field.active:
        return field
    field.active = False
    field.save(update_fields=["active", "updated_at"])
    logger.info("Deactivated field definition id=%s slug=%s", field.pk, field.slug)
    if actor is not None:
        record_event(actor, "deactivate", "field_definition", field.pk, org_id=field.org_id)
    return field


# ── Groups ──────────────────────────────────────────────────────────


def create_group(org_id, entity_type, name, *, slug=None, sort_order=0):
    slug = slug or slugify(name)
    if FieldGroup.objects.filter(org_id=org_id, slug=slug).exists():
        raise ValidationError({"slug": f"A field group with slug '{slug}' already exists."})
    return FieldGroup.objects.create(
        org_id=org_id,
        entity_type=EntityType(entity_type),
        name=name,
        slug=slug,
        sort_order=sort_order,
    )


def add_to_group(group, field, sort_order=None):
    """Add ``field`` to ``group``; appends at the end when no position is given."""
    if group.org_id != field.org_id or group.entity_type != field.entity_type:
        raise ValidationError({"field": "Field and group must share the org and entity type."})
    if sort_order is None:
        last = group.members.order_by("-sort_order").first()
        sort_order = (last.sort_order + 1) if last else 0
    member, _created = FieldGroupMember.objects.update_or_create(
        group=group, field=field, defaults={"sort_order": sort_order},
    )
    return member


def deactivate_group(group):
    group.active = False
    group.save(update_fields=["active"])
    return group


# ── Lookup ──────────────────────────────────────────────────────────


def active_definitions(org_id, entity_type):
    """Return {slug: FieldDefinition} for every active field of an entity type."""
    return {
        fd.slug: fd
        for fd in FieldDefinition.objects.for_entity(org_id, EntityType(entity_type)).active()
    }


def resolve_applicable(org_id, entity_type, context):
    """Return active fields required for ``context``, in deterministic order.

    Grouped fields come first, in group order then member order; a field in
    several groups is reported under the first. Ungrouped fields follow in
    their own sort order.
    """
    context = PrerequisiteContext(context)
    candidates = [
        fd for fd in FieldDefinition.objects.for_entity(org_id, EntityType(entity_type)).active()
        if fd.is_required_for(context)
    ]
    by_id = {fd.pk: fd for fd in candidates}

    memberships = (
        FieldGroupMember.objects
        .filter(group__active=True, field_id__in=by_id)
        .select_related("group")
        .order_by("group__sort_order", "group__id", "sort_order", "id")
    )

    ordered = []
    placed = set()
    for member in memberships:
        if member.field_id in placed:
            continue
        placed.add(member.field_id)
        ordered.append(ApplicableField(by_id[member.field_id], member.group.name))

    for fd in candidates:
        if fd.pk not in placed:
            ordered.append(ApplicableField(fd, None))
    return ordered


def validate_values(org_id, entity_type, values):
    """Type-check a {slug: value} map against the active definitions.

    Unknown slugs are stripped. Returns the cleaned map, or raises
    ValidationError with one message per bad slug.
    """
    definitions = active_definitions(org_id, entity_type)
    cleaned = {}
    errors = {}
    for slug, value in (values or {}).items():
        definition = definitions.get(slug)
        if definition is None:
            continue
        error = validate_value(definition, value)
        if error:
            errors[slug] = error
        else:
            cleaned[slug] = value
    if errors:
        raise ValidationError(errors)
    return cleaned
