"""
Setter tables.

Every field a profile declares gets one snake_case setter (``datePublished`` →
``date_published``). Array fields also get an ``add_*`` accumulator
(``mentions`` → ``add_mention``). Each entry records how a value should be
cleaned: its value kind and, for nested objects, the Schema.org shape.
Setters for common nested objects also accept positional shorthand
(``author("Jane Doe", "https://example.com/jane")`` builds a Person).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..models.profile import AnyOfRule, FieldRule, PrimitiveRule, PrimitiveType, ProfileDefinition
from ..sanitize.sanitizer import DATE_FIELDS, NESTED_SHAPES, URL_FIELDS


class ValueKind(str, Enum):
    AUTO = "auto"           # decided by the field rule alternative the value selects
    TEXT = "text"
    URL = "url"
    DATE = "date"
    NUMBER = "number"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class FieldSetter:
    name: str
    field: str
    kind: ValueKind = ValueKind.AUTO
    shape: str | None = None
    accumulate: bool = False
    compose: Callable[..., dict[str, Any]] | None = None


#: Accumulator names that plain de-pluralisation gets wrong.
ACCUMULATOR_NAMES: dict[str, str] = {
    "recipeInstructions": "add_instruction",
    "openingHoursSpecification": "add_opening_hours",
}

#: Setter names for fields that are not valid identifiers.
SETTER_NAMES: dict[str, str] = {
    "@id": "id",
}


# ---------------------------------------------------------------------------
# Composers: positional shorthand for common nested objects
# ---------------------------------------------------------------------------


def _node(shape: str, **values: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"@type": shape}
    node.update((k, v) for k, v in values.items() if v is not None)
    return node


def person(name: str, url: str | None = None) -> dict[str, Any]:
    return _node("Person", name=name, url=url)


def organization(
    name: str,
    url: str | None = None,
    logo_url: str | None = None,
    logo_width: int | None = None,
    logo_height: int | None = None,
) -> dict[str, Any]:
    org = _node("Organization", name=name, url=url)
    if logo_url:
        org["logo"] = _node("ImageObject", url=logo_url, width=logo_width, height=logo_height)
    return org


def image_object(
    url: str,
    width: int | None = None,
    height: int | None = None,
    caption: str | None = None,
) -> dict[str, Any]:
    return _node("ImageObject", url=url, width=width, height=height, caption=caption)


def speakable(css_selectors: Any, xpaths: Any = None) -> dict[str, Any]:
    return _node("SpeakableSpecification", cssSelector=css_selectors, xpath=xpaths)


def thing(name: str, description: str | None = None) -> dict[str, Any]:
    return _node("Thing", name=name, description=description)


def series(url: str, name: str | None = None) -> dict[str, Any]:
    return _node("CreativeWorkSeries", url=url, name=name)


def salary_range(
    min_value: float,
    max_value: float,
    unit: str = "YEAR",
    currency: str = "USD",
) -> dict[str, Any]:
    return _node(
        "MonetaryAmount",
        currency=currency,
        value=_node("QuantitativeValue", minValue=min_value, maxValue=max_value, unitText=unit),
    )


def geo_coordinates(latitude: float, longitude: float) -> dict[str, Any]:
    return _node("GeoCoordinates", latitude=latitude, longitude=longitude)


#: Field → composer used when its setter gets more than one argument.
COMPOSERS: dict[str, Callable[..., dict[str, Any]]] = {
    "author": person,
    "creator": person,
    "performer": person,
    "publisher": organization,
    "organizer": organization,
    "hiringOrganization": organization,
    "provider": organization,
    "image": image_object,
    "thumbnail": image_object,
    "speakable": speakable,
    "about": thing,
    "isPartOf": series,
    "baseSalary": salary_range,
    "geo": geo_coordinates,
}

#: Fields whose composer also wraps a single non-object argument.
ALWAYS_COMPOSED = frozenset({"speakable"})


_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def singular(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("s") and not word.endswith(("ss", "us", "as", "is")):
        return word[:-1]
    return word


def is_array_rule(rule: FieldRule) -> bool:
    if isinstance(rule, PrimitiveRule):
        return rule.type == PrimitiveType.ARRAY
    if isinstance(rule, AnyOfRule):
        return any(is_array_rule(alt) for alt in rule.any_of)
    return False


def _kind_for(field: str) -> ValueKind:
    if field in URL_FIELDS:
        return ValueKind.URL
    if field in DATE_FIELDS:
        return ValueKind.DATE
    return ValueKind.AUTO


def setter_table(
    profile: ProfileDefinition,
    reserved: frozenset[str] = frozenset(),
) -> dict[str, FieldSetter]:
    """
    Setter name → FieldSetter for every field of ``profile``.

    Names in ``reserved`` (the builder's own methods) get a ``set_`` prefix.
    ``@id`` maps to ``id``; any other field whose name is not a valid
    identifier has no setter and is reachable through ``set()`` only.
    """
    table: dict[str, FieldSetter] = {}
    for field in profile.fields():
        name = SETTER_NAMES.get(field) or snake_case(field)
        if not _IDENTIFIER_RE.match(name):
            continue
        if name in reserved:
            name = f"set_{name}"
        shape = NESTED_SHAPES.get(field)
        compose = COMPOSERS.get(field)
        table[name] = FieldSetter(name, field, _kind_for(field), shape, compose=compose)

        rule = profile.rule_for(field)
        if rule is not None and is_array_rule(rule):
            add_name = ACCUMULATOR_NAMES.get(field) or f"add_{singular(snake_case(field))}"
            table.setdefault(
                add_name, FieldSetter(add_name, field, _kind_for(field), shape, True, compose)
            )
    return table
