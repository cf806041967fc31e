"""Type and rule checks for custom field values."""
import re
from datetime import date
from decimal import Decimal, InvalidOperation

from django.utils.translation import gettext as _

from .models import FieldType

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_number(value):
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _validate_text(definition, value):
    if not isinstance(value, str):
        return _("Expected a text value.")
    rules = definition.validation or {}
    min_length = rules.get("minLength")
    if min_length is not None and len(value) < int(min_length):
        return _("Text must be at least %(n)s characters.") % {"n": min_length}
    max_length = rules.get("maxLength")
    if max_length is not None and len(value) > int(max_length):
        return _("Text must be at most %(n)s characters.") % {"n": max_length}
    pattern = rules.get("pattern")
    if pattern:
        try:
            if not re.fullmatch(pattern, value):
                return _("Text does not match the required pattern.")
        except re.error:
            # Broken pattern in the definition — skip the pattern rule.
            pass
    return None


def _validate_number(definition, value):
    if not _is_number(value):
        return _("Expected a numeric value.")
    rules = definition.validation or {}
    number = Decimal(str(value))
    try:
        if rules.get("min") is not None and number < Decimal(str(rules["min"])):
            return _("Value must be at least %(n)s.") % {"n": rules["min"]}
        if rules.get("max") is not None and number > Decimal(str(rules["max"])):
            return _("Value must be at most %(n)s.") % {"n": rules["max"]}
    except InvalidOperation:
        pass
    return None


def _validate_date(definition, value):
    if not isinstance(value, str):
        return _("Expected a date in YYYY-MM-DD format.")
    try:
        date.fromisoformat(value)
    except ValueError:
        return _("Invalid date, expected YYYY-MM-DD.")
    rules = definition.validation or {}
    # ISO dates compare correctly as strings
    if rules.get("min") and value < rules["min"]:
        return _("Date must be on or after %(d)s.") % {"d": rules["min"]}
    if rules.get("max") and value > rules["max"]:
        return _("Date must be on or before %(d)s.") % {"d": rules["max"]}
    return None


def _validate_dropdown(definition, value):
    if not isinstance(value, str):
        return _("Expected one of the dropdown options.")
    options = definition.option_values()
    if options and value not in options:
        return _("'%(v)s' is not a valid option.") % {"v": value}
    return None


def _validate_boolean(definition, value):
    if not isinstance(value, bool):
        return _("Expected true or false.")
    return None


def _validate_currency(definition, value):
    if not isinstance(value, dict):
        return _("Expected an object with 'amount' and 'currency'.")
    amount = value.get("amount")
    currency = value.get("currency")
    if amount is None or currency is None:
        return _("Currency values need both 'amount' and 'currency'.")
    if not _is_number(amount):
        return _("'amount' must be a number.")
    if not isinstance(currency, str) or len(currency) != 3:
        return _("'currency' must be a 3-letter ISO code.")
    return None


def _validate_url(definition, value):
    if not isinstance(value, str) or not value.startswith(("http://", "https://")):
        return _("URL must start with http:// or https://.")
    return None


def _validate_email(definition, value):
    if not isinstance(value, str) or not EMAIL_RE.match(value):
        return _("Enter a valid email address.")
    return None


def _validate_phone(definition, value):
    if not isinstance(value, str) or not value.strip():
        return _("Phone number must not be blank.")
    return None


VALIDATORS = {
    FieldType.TEXT: _validate_text,
    FieldType.NUMBER: _validate_number,
    FieldType.DATE: _validate_date,
    FieldType.DROPDOWN: _validate_dropdown,
    FieldType.BOOLEAN: _validate_boolean,
    FieldType.CURRENCY: _validate_currency,
    FieldType.URL: _validate_url,
    FieldType.EMAIL: _validate_email,
    FieldType.PHONE: _validate_phone,
}


def validate_value(definition, value):
    """Return an error message for ``value``, or None if it is acceptable.

    None always passes here; whether a value is required is decided by the
    prerequisite rules, not by type validation.
    """
    if value is None:
        return None
    return VALIDATORS[FieldType(definition.field_type)](definition, value)
