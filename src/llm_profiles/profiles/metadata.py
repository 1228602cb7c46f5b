"""
Field Metadata
===============
Per-field guidance derived from a ProfileDefinition: importance, a coarse
category, search-engine / LLM relevance, and completion hints for editors.

Example::

    meta = field_metadata(profile, "headline")
    meta.importance          # FieldImportance.REQUIRED
    meta.guidance.action     # "You must provide a value for this field"

    [h.label for h in completion_hints(profile, "date")]
    # ['datePublished', 'dateModified']
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models.profile import FieldImportance, FieldRule, PrimitiveRule, ProfileDefinition
from ..validator.rules import describe


class FieldCategory(str, Enum):
    BASIC = "basic"
    CONTENT = "content"
    METADATA = "metadata"
    SEO = "seo"
    LLM = "llm"
    GOOGLE = "google"


_CATEGORY_BY_FIELD: dict[str, FieldCategory] = {
    "name": FieldCategory.BASIC,
    "description": FieldCategory.BASIC,
    "url": FieldCategory.BASIC,
    "image": FieldCategory.BASIC,
    "headline": FieldCategory.CONTENT,
    "articleBody": FieldCategory.CONTENT,
    "keywords": FieldCategory.CONTENT,
    "text": FieldCategory.CONTENT,
    "author": FieldCategory.METADATA,
    "publisher": FieldCategory.METADATA,
    "datePublished": FieldCategory.METADATA,
    "dateModified": FieldCategory.METADATA,
    "inLanguage": FieldCategory.METADATA,
    "mainEntityOfPage": FieldCategory.SEO,
    "breadcrumb": FieldCategory.SEO,
    "about": FieldCategory.LLM,
    "mentions": FieldCategory.LLM,
    "aggregateRating": FieldCategory.GOOGLE,
    "review": FieldCategory.GOOGLE,
    "offers": FieldCategory.GOOGLE,
}

_EXTRA_GUIDANCE: dict[str, str] = {
    "image": "Images help with rich results and social sharing",
    "description": "Descriptions improve search result snippets",
    "keywords": "Keywords help with content categorization",
}


@dataclass(frozen=True)
class FieldGuidance:
    message: str
    action: str
    severity: str


_GUIDANCE: dict[FieldImportance, FieldGuidance] = {
    FieldImportance.REQUIRED: FieldGuidance(
        "This field is required for valid structured data",
        "You must provide a value for this field",
        "error",
    ),
    FieldImportance.RECOMMENDED: FieldGuidance(
        "This field is recommended for better SEO and rich results",
        "Consider adding this field to improve visibility",
        "warning",
    ),
    FieldImportance.OPTIONAL: FieldGuidance(
        "This field is optional but can enhance your structured data",
        "Add this field if relevant to your content",
        "info",
    ),
}


def guidance_for(field: str, importance: FieldImportance) -> FieldGuidance:
    base = _GUIDANCE[importance]
    extra = _EXTRA_GUIDANCE.get(field)
    if extra and importance == FieldImportance.RECOMMENDED:
        return FieldGuidance(f"{base.message}. {extra}", base.action, base.severity)
    return base


@dataclass(frozen=True)
class FieldMetadata:
    """Everything known about one field of one profile."""
    name: str
    importance: FieldImportance
    category: FieldCategory
    shape: str
    description: str
    google_rich_results: bool
    llm_optimized: bool
    rule: FieldRule
    guidance: FieldGuidance

    @property
    def sort_key(self) -> tuple[int, str]:
        return (list(FieldImportance).index(self.importance), self.name)


@dataclass(frozen=True)
class CompletionHint:
    label: str
    detail: str
    documentation: str
    importance: FieldImportance
    google_rich_results: bool
    llm_optimized: bool


def field_metadata(profile: ProfileDefinition, field: str) -> FieldMetadata | None:
    """Metadata for ``field`` or None when the profile does not declare it."""
    importance = profile.importance_of(field)
    if importance is None:
        return None
    rule = profile.rules(importance)[field]
    description = rule.description or _default_description(rule, field)
    return FieldMetadata(
        name=field,
        importance=importance,
        category=_CATEGORY_BY_FIELD.get(field, FieldCategory.BASIC),
        shape=describe(rule),
        description=description,
        google_rich_results=profile.is_search_critical(field),
        llm_optimized=profile.is_llm_critical(field),
        rule=rule,
        guidance=guidance_for(field, importance),
    )


def all_fields_metadata(profile: ProfileDefinition) -> dict[FieldImportance, list[FieldMetadata]]:
    """Field metadata grouped by importance, in declaration order."""
    return {
        importance: [field_metadata(profile, name) for name in profile.fields(importance)]
        for importance in FieldImportance
    }


def completion_hints(profile: ProfileDefinition, partial: str = "") -> list[CompletionHint]:
    """
    Editor-style completions for field names containing ``partial``
    (case-insensitive), required fields first.
    """
    needle = partial.lower()
    hints = []
    for meta in sorted(
        (m for group in all_fields_metadata(profile).values() for m in group),
        key=lambda m: m.sort_key,
    ):
        if needle and needle not in meta.name.lower():
            continue
        hints.append(CompletionHint(
            label=meta.name,
            detail=f"{meta.importance.value} - {meta.shape}",
            documentation=meta.description,
            importance=meta.importance,
            google_rich_results=meta.google_rich_results,
            llm_optimized=meta.llm_optimized,
        ))
    return hints


def _default_description(rule: FieldRule, field: str) -> str:
    if not isinstance(rule, PrimitiveRule):
        # AnyOf alternatives often carry their own descriptions.
        for alternative in getattr(rule, "any_of", []):
            if alternative.description:
                return alternative.description
    return f"The {field} field"
