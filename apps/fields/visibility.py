"""Conditional visibility and value-completeness rules for custom fields.

A field with a visibility condition is only shown (and only required) when
the condition holds against the current value of the field it depends on.
"""
from .models import FieldType


def is_value_filled(definition, value):
    """Return True if ``value`` counts as provided for this field.

    None, blank strings, and empty lists/dicts are missing. A currency value
    needs an amount. Boolean False is a real answer, so it counts as filled.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if definition.field_type == FieldType.CURRENCY:
        return isinstance(value, dict) and value.get("amount") is not None
    if isinstance(value, (list, tuple, dict)):
        return bool(value)
    return True


def condition_holds(condition, actual):
    """Evaluate one visibility condition against the controlling field's value.

    A missing controlling value hides the dependent field for every operator.
    """
    if actual is None or (isinstance(actual, str) and not actual.strip()):
        return False

    operator = condition.get("operator")
    expected = condition.get("value")

    if operator == "equals":
        return actual == expected
    if operator == "not_equals":
        return actual != expected
    if operator == "in":
        return actual in (expected or [])
    if operator == "not_in":
        return actual not in (expected or [])
    # Registration rejects unknown operators; treat any legacy row as visible.
    return True


def is_visible(definition, values, active_slugs):
    """Return True if ``definition`` is currently shown for an entity.

    Args:
        definition: FieldDefinition being evaluated.
        values: dict of {slug: value} for the entity.
        active_slugs: set of slugs of active definitions for the entity type.
            A condition on a deactivated or unknown field is ignored.
    """
    condition = definition.visibility_condition
    if not condition:
        return True

    depends_on = condition.get("dependsOnSlug")
    if not isinstance(depends_on, str) or depends_on not in active_slugs:
        return True

    return condition_holds(condition, (values or {}).get(depends_on))
