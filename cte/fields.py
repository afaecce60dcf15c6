"""Custom field lookup and coercion.

ClickUp returns custom fields as an unordered list and the same name can show
up twice or in a different case, so lookups are a case-insensitive
find-first over the list. Each usage site coerces the typed value its own way.
"""

import math
import re
from collections.abc import Iterable

from cte.models import CustomField, NumberValue, TextValue, UsersValue

BV_PER_HOUR = "bv per hour"
STAKEHOLDER = "stakeholder"
TEAM = "team"

# Leading decimal number, so "12.5 BV" reads as 12.5 and "1_000" as 1
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def find_field(fields: Iterable[CustomField], name: str) -> CustomField | None:
    wanted = name.casefold()
    for field in fields:
        if field.name.casefold() == wanted:
            return field
    return None


def first_name(name: str | None) -> str | None:
    """First whitespace-delimited token of a display name."""
    if not name:
        return None
    parts = name.split()
    return parts[0] if parts else None


def _parse_number(text: str) -> float | None:
    try:
        number = float(text.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _leading_number(text: str) -> float | None:
    match = _LEADING_NUMBER.match(text.strip())
    return _parse_number(match.group()) if match else None


def as_score(field: CustomField | None) -> float:
    """Numeric parse for the ranking metric. Anything unusable is 0.

    Text values are read up to the first character that cannot continue a
    decimal number.
    """
    if field is None:
        return 0.0
    value = field.typed_value
    match value:
        case NumberValue():
            number = value.number if math.isfinite(value.number) else None
        case TextValue():
            number = _leading_number(value.text)
        case _:
            number = None
    if number is None or number < 0:
        return 0.0
    return number


def as_person(field: CustomField | None) -> str | None:
    """User reference (first user, first name) or a plain string as-is."""
    if field is None:
        return None
    value = field.typed_value
    match value:
        case UsersValue():
            return first_name(value.users[0].display_name) if value.users else None
        case TextValue():
            return value.text
        case _:
            return None


def as_text(field: CustomField | None) -> str | None:
    """Display text for simple fields. Whole numbers render without a decimal point."""
    if field is None:
        return None
    value = field.typed_value
    match value:
        case TextValue():
            return value.text
        case NumberValue():
            return str(int(value.number)) if value.number.is_integer() else str(value.number)
        case _:
            return None


def value_equals(field: CustomField | None, expected: str | int | float) -> bool:
    """Numeric-or-string equality: a stored ``5`` or ``"5"`` both equal ``"5"``."""
    if field is None:
        return False
    value = field.typed_value
    expected_text = str(expected).strip()
    expected_number = _parse_number(expected_text)
    match value:
        case NumberValue():
            return expected_number is not None and value.number == expected_number
        case TextValue():
            if value.text.strip() == expected_text:
                return True
            stored = _parse_number(value.text)
            return stored is not None and expected_number is not None and stored == expected_number
        case _:
            return False
