"""
Field Rule Evaluator
=====================
Decides whether a value satisfies a FieldRule.

- const     → exact equality
- primitive → runtime family check, then length / numeric / format constraints
- any-of    → first satisfied alternative wins

``None`` never satisfies a rule; presence is decided by the caller. Arrays and
objects are checked at the container level only.

Example::

    from llm_profiles.validator.rules import satisfies

    rule = profile.rule_for("author")     # anyOf [string, object]
    satisfies("Jane Doe", rule)           # True
    satisfies({"name": "Jane"}, rule)     # True
    satisfies(42, rule)                   # False
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any

from ..models.profile import (
    AnyOfRule,
    ConstRule,
    FieldRule,
    PrimitiveRule,
    PrimitiveType,
    RuleFormat,
)


# ---------------------------------------------------------------------------
# Format predicates
# ---------------------------------------------------------------------------

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(\.\d+)?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:\S+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_date(value: str) -> bool:
    m = _DATE_RE.match(value)
    if not m:
        return False
    try:
        date(*(int(g) for g in m.groups()))
    except ValueError:
        return False
    return True


def is_date_time(value: str) -> bool:
    """RFC 3339 date-time: seconds and a zone designator are mandatory."""
    m = _DATE_TIME_RE.match(value)
    if not m:
        return False
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    sign, off_h, off_m = m.group(9), m.group(10), m.group(11)
    try:
        if sign:
            offset = timedelta(hours=int(off_h), minutes=int(off_m))
            tz = timezone(offset if sign == "+" else -offset)
        else:
            tz = timezone.utc
        # Leap seconds are legal in RFC 3339.
        datetime(year, month, day, hour, minute, min(second, 59), tzinfo=tz)
    except ValueError:
        return False
    return second <= 60


def is_uri(value: str) -> bool:
    """Absolute URI: a scheme followed by a non-empty, whitespace-free remainder."""
    return bool(_SCHEME_RE.match(value))


def is_uri_reference(value: str) -> bool:
    return bool(value) and not any(ch.isspace() for ch in value)


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


FORMAT_CHECKS = {
    RuleFormat.DATE: is_date,
    RuleFormat.DATE_TIME: is_date_time,
    RuleFormat.URI: is_uri,
    RuleFormat.URI_REFERENCE: is_uri_reference,
    RuleFormat.EMAIL: is_email,
}


# ---------------------------------------------------------------------------
# Runtime type families
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def matches_type(value: Any, family: PrimitiveType) -> bool:
    """True if ``value``'s runtime shape belongs to the JSON primitive ``family``."""
    if family == PrimitiveType.STRING:
        return isinstance(value, str)
    if family == PrimitiveType.BOOLEAN:
        return isinstance(value, bool)
    if family == PrimitiveType.NUMBER:
        return _is_number(value)
    if family == PrimitiveType.INTEGER:
        return _is_number(value) and float(value).is_integer()
    if family == PrimitiveType.ARRAY:
        return isinstance(value, (list, tuple))
    if family == PrimitiveType.OBJECT:
        return isinstance(value, Mapping)
    return False


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _primitive_mismatch(value: Any, rule: PrimitiveRule) -> str | None:
    if not matches_type(value, rule.type):
        return f"expected {rule.type.value}, got {type_name(value)}"

    if isinstance(value, str):
        if rule.min_length is not None and len(value) < rule.min_length:
            return f"shorter than {rule.min_length} characters"
        if rule.max_length is not None and len(value) > rule.max_length:
            return f"longer than {rule.max_length} characters"
        if rule.format is not None and not FORMAT_CHECKS[rule.format](value):
            return f"not a valid {rule.format.value}"

    if rule.type in (PrimitiveType.NUMBER, PrimitiveType.INTEGER):
        if rule.minimum is not None and value < rule.minimum:
            return f"less than minimum {rule.minimum:g}"
        if rule.maximum is not None and value > rule.maximum:
            return f"greater than maximum {rule.maximum:g}"

    return None


def explain(value: Any, rule: FieldRule) -> str | None:
    """Return why ``value`` fails ``rule``, or None when it satisfies it."""
    if value is None:
        return "value is absent"

    if isinstance(rule, ConstRule):
        if value == rule.const and type(value) is type(rule.const):
            return None
        return f"expected constant {rule.const!r}"

    if isinstance(rule, PrimitiveRule):
        return _primitive_mismatch(value, rule)

    if isinstance(rule, AnyOfRule):
        for alternative in rule.any_of:
            if explain(value, alternative) is None:
                return None
        return f"expected {describe(rule)}, got {type_name(value)}"

    raise TypeError(f"Not a field rule: {rule!r}")


def satisfies(value: Any, rule: FieldRule) -> bool:
    """True if ``value`` is present and matches ``rule``."""
    return explain(value, rule) is None


def select_alternative(value: Any, rule: FieldRule) -> PrimitiveRule | None:
    """
    The first primitive alternative whose type family matches ``value``.

    Constraints are ignored here: the builder uses this to pick a sanitizer
    for a raw value before it has been cleaned.
    """
    if isinstance(rule, PrimitiveRule):
        return rule if matches_type(value, rule.type) else None
    if isinstance(rule, AnyOfRule):
        for alternative in rule.any_of:
            selected = select_alternative(value, alternative)
            if selected is not None:
                return selected
    return None


def describe(rule: FieldRule) -> str:
    """Short human-readable rendering, e.g. ``string(date-time)`` or ``string | object``."""
    if isinstance(rule, ConstRule):
        return repr(rule.const)
    if isinstance(rule, PrimitiveRule):
        if rule.format is not None:
            return f"{rule.type.value}({rule.format.value})"
        return rule.type.value
    parts: list[str] = []
    for alternative in rule.any_of:
        text = describe(alternative)
        if text not in parts:
            parts.append(text)
    return " | ".join(parts)


def type_name(value: Any) -> str:
    """JSON-ish name of a value's runtime type."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__
