"""
Profile Definition – Core Model
================================
Python representation of a profile record: the document type it describes,
its canonical Schema.org type, and the declarative field rules that classify
each field as required, recommended, or optional.

Field rules are a tagged union of three shapes:

- ``ConstRule``     – the value must equal a fixed constant
- ``PrimitiveRule`` – a JSON primitive family plus constraints
- ``AnyOfRule``     – any one of several alternative rules

Profile records carry no explicit tag, so the discriminator is derived from the
keys present (``const`` / ``anyOf`` / anything else).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator


# ---------------------------------------------------------------------------
# Reserved keys
# ---------------------------------------------------------------------------

#: Keys owned by the builder on every document.
RESERVED_KEYS: tuple[str, ...] = ("@context", "@type")

#: Keys added by output modes; never supplied by the caller.
DECORATION_KEYS: tuple[str, ...] = (
    "additionalType",
    "schemaVersion",
    "identifier",
    "additionalProperty",
)

#: Keys that never take part in importance scoring.
UNSCORED_KEYS: frozenset[str] = frozenset(RESERVED_KEYS + DECORATION_KEYS)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ProfileCategory(str, Enum):
    """Top-level grouping of profiles (part of the profile URL)."""
    BUSINESS = "business"
    CONTENT = "content"
    INTERACTION = "interaction"
    TECHNOLOGY = "technology"


class FieldImportance(str, Enum):
    """Which rule map a field is declared in."""
    REQUIRED = "required"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"


class PrimitiveType(str, Enum):
    """JSON primitive families a PrimitiveRule can declare."""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class RuleFormat(str, Enum):
    """String format predicates understood by the evaluator."""
    DATE = "date"
    DATE_TIME = "date-time"
    URI = "uri"
    URI_REFERENCE = "uri-reference"
    EMAIL = "email"


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

class ConstRule(BaseModel):
    """The value must equal ``const`` exactly."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["const"] = "const"
    const: Any
    description: str | None = None


class PrimitiveRule(BaseModel):
    """
    A primitive family with optional constraints.

    ``items``, ``properties`` and ``required`` describe nested shapes. They are
    kept as declarative data; the evaluator only checks the container itself.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["primitive"] = "primitive"
    type: PrimitiveType
    min_length: int | None = Field(None, alias="minLength", ge=0)
    max_length: int | None = Field(None, alias="maxLength", ge=0)
    minimum: float | None = None
    maximum: float | None = None
    format: RuleFormat | None = None
    items: FieldRule | None = None
    properties: dict[str, FieldRule] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    description: str | None = None


class AnyOfRule(BaseModel):
    """The value must satisfy at least one alternative, tried in order."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["any_of"] = "any_of"
    any_of: list[FieldRule] = Field(..., alias="anyOf", min_length=1)
    description: str | None = None


def _rule_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        if "kind" in value:
            return value["kind"]
        if "const" in value:
            return "const"
        if "anyOf" in value or "any_of" in value:
            return "any_of"
        return "primitive"
    return getattr(value, "kind", None)


FieldRule = Annotated[
    Union[
        Annotated[ConstRule, Tag("const")],
        Annotated[PrimitiveRule, Tag("primitive")],
        Annotated[AnyOfRule, Tag("any_of")],
    ],
    Discriminator(_rule_tag),
]

PrimitiveRule.model_rebuild()
AnyOfRule.model_rebuild()


# ---------------------------------------------------------------------------
# Profile definition
# ---------------------------------------------------------------------------

class ProfileDefinition(BaseModel):
    """
    One document type with its field rules and importance lists.

    Loaded once by the registry and shared read-only by every builder and
    validator of that type.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(..., min_length=1, description="Profile identifier, e.g. 'JobPosting'")
    category: ProfileCategory
    schema_type: str = Field(..., alias="schemaType", description="Canonical vocabulary URI")
    profile_url: str = Field(..., alias="profileUrl", description="Profile URI used for decoration")
    version: str = Field("1.0.0", description="Profile version advertised in the alternate channel")
    description: str = ""

    required: dict[str, FieldRule] = Field(default_factory=dict)
    recommended: dict[str, FieldRule] = Field(default_factory=dict)
    optional: dict[str, FieldRule] = Field(default_factory=dict)

    google_rich_results: list[str] = Field(default_factory=list, alias="googleRichResults")
    llm_optimized: list[str] = Field(default_factory=list, alias="llmOptimized")

    @model_validator(mode="before")
    @classmethod
    def strip_unscored_fields(cls, data: Any) -> Any:
        """
        Drop reserved/decoration keys from the rule maps and keep only the first
        (most important) declaration of a field listed in more than one map.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        seen: set[str] = set(UNSCORED_KEYS)
        for importance in FieldImportance:
            rules = data.get(importance.value)
            if not isinstance(rules, dict):
                continue
            kept = {k: v for k, v in rules.items() if k not in seen}
            seen.update(kept)
            data[importance.value] = kept
        return data

    @property
    def schema_type_name(self) -> str:
        """The value written to a document's ``@type`` (e.g. 'Product')."""
        return self.schema_type.rstrip("/").rsplit("/", 1)[-1]

    def rules(self, importance: FieldImportance) -> dict[str, FieldRule]:
        return getattr(self, importance.value)

    def fields(self, importance: FieldImportance | None = None) -> list[str]:
        """Field names of one importance level, or all of them in declaration order."""
        if importance is not None:
            return list(self.rules(importance))
        return [name for imp in FieldImportance for name in self.rules(imp)]

    def importance_of(self, field: str) -> FieldImportance | None:
        for importance in FieldImportance:
            if field in self.rules(importance):
                return importance
        return None

    def rule_for(self, field: str) -> FieldRule | None:
        importance = self.importance_of(field)
        if importance is None:
            return None
        return self.rules(importance)[field]

    def is_search_critical(self, field: str) -> bool:
        return field in self.google_rich_results

    def is_llm_critical(self, field: str) -> bool:
        return field in self.llm_optimized

    def __repr__(self) -> str:
        return (
            f"ProfileDefinition(type={self.type!r}, category={self.category.value!r}, "
            f"required={len(self.required)}, recommended={len(self.recommended)}, "
            f"optional={len(self.optional)})"
        )
