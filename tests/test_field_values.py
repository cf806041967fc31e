"""Pure-function tests for value completeness, visibility and type validation."""
import pytest

from apps.fields.models import FieldDefinition
from apps.fields.validators import validate_value
from apps.fields.visibility import condition_holds, is_value_filled, is_visible


def make_definition(field_type="TEXT", **kwargs):
    return FieldDefinition(org_id="org", entity_type="CUSTOMER", name="F", slug="f", field_type=field_type, **kwargs)


@pytest.mark.parametrize("value", [None, "", "   ", [], {}])
def test_missing_values(value):
    assert not is_value_filled(make_definition(), value)


@pytest.mark.parametrize("value", ["x", 0, ["a"], {"k": 1}])
def test_filled_values(value):
    assert is_value_filled(make_definition(), value)


def test_boolean_false_counts_as_filled():
    assert is_value_filled(make_definition("BOOLEAN"), False)


def test_currency_needs_amount():
    definition = make_definition("CURRENCY")
    assert not is_value_filled(definition, {"currency": "ZAR"})
    assert is_value_filled(definition, {"amount": 0, "currency": "ZAR"})


@pytest.mark.parametrize("operator,expected,actual,holds", [
    ("equals", "company", "company", True),
    ("equals", "company", "trust", False),
    ("not_equals", "company", "trust", True),
    ("not_equals", "company", "company", False),
    ("in", ["company", "trust"], "trust", True),
    ("in", ["company", "trust"], "individual", False),
    ("not_in", ["company", "trust"], "individual", True),
    ("not_in", ["company", "trust"], "company", False),
])
def test_condition_operators(operator, expected, actual, holds):
    condition = {"dependsOnSlug": "kind", "operator": operator, "value": expected}
    assert condition_holds(condition, actual) is holds


@pytest.mark.parametrize("operator,expected", [
    ("equals", "company"),
    ("not_equals", "company"),
    ("in", ["company"]),
    ("not_in", ["company"]),
])
def test_missing_controlling_value_hides_for_every_operator(operator, expected):
    condition = {"dependsOnSlug": "kind", "operator": operator, "value": expected}
    assert condition_holds(condition, None) is False
    assert condition_holds(condition, "  ") is False


def test_visible_without_condition():
    assert is_visible(make_definition(), {}, {"kind"})


def test_condition_on_inactive_controller_is_ignored():
    definition = make_definition(
        visibility_condition={"dependsOnSlug": "kind", "operator": "equals", "value": "company"},
    )
    assert is_visible(definition, {}, active_slugs=set())
    assert not is_visible(definition, {}, active_slugs={"kind"})
    assert is_visible(definition, {"kind": "company"}, active_slugs={"kind"})


class TestValidateValue:

    def test_none_always_passes(self):
        assert validate_value(make_definition("NUMBER"), None) is None

    def test_text_length_and_pattern(self):
        definition = make_definition(validation={"minLength": 2, "maxLength": 4, "pattern": r"[A-Z]+"})
        assert validate_value(definition, "AB") is None
        assert validate_value(definition, "A") is not None
        assert validate_value(definition, "ABCDE") is not None
        assert validate_value(definition, "ab") is not None

    def test_number_bounds_and_bool_rejected(self):
        definition = make_definition("NUMBER", validation={"min": 1, "max": 10})
        assert validate_value(definition, 5) is None
        assert validate_value(definition, 2.5) is None
        assert validate_value(definition, 0) is not None
        assert validate_value(definition, 11) is not None
        assert validate_value(definition, True) is not None
        assert validate_value(definition, "5") is not None

    def test_date_format_and_range(self):
        definition = make_definition("DATE", validation={"min": "2020-01-01"})
        assert validate_value(definition, "2024-02-29") is None
        assert validate_value(definition, "2019-12-31") is not None
        assert validate_value(definition, "29/02/2024") is not None

    def test_dropdown_must_be_an_option(self):
        definition = make_definition("DROPDOWN", options=[{"value": "company", "label": "Company"}])
        assert validate_value(definition, "company") is None
        assert validate_value(definition, "trust") is not None

    def test_boolean(self):
        definition = make_definition("BOOLEAN")
        assert validate_value(definition, False) is None
        assert validate_value(definition, "yes") is not None

    def test_currency(self):
        definition = make_definition("CURRENCY")
        assert validate_value(definition, {"amount": 1500, "currency": "ZAR"}) is None
        assert validate_value(definition, {"amount": "1500", "currency": "ZAR"}) is not None
        assert validate_value(definition, {"amount": 1500, "currency": "RAND"}) is not None
        assert validate_value(definition, 1500) is not None

    def test_url_email_phone(self):
        assert validate_value(make_definition("URL"), "https://acme.example") is None
        assert validate_value(make_definition("URL"), "acme.example") is not None
        assert validate_value(make_definition("EMAIL"), "ops@acme.example") is None
        assert validate_value(make_definition("EMAIL"), "ops@acme") is not None
        assert validate_value(make_definition("PHONE"), "+27 21 555 0100") is None
        assert validate_value(make_definition("PHONE"), "  ") is not None
