"""
Document assembly: a pure function from (field map, profile, mode) to output.

Decoration keys are derived from the mode every time and never read from the
field map, so rendering the same fields under the same mode always produces
the same output, whatever mode was used before.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from ..models.modes import PROFILE_VOCAB_URL, OutputMode, capabilities
from ..models.profile import UNSCORED_KEYS, ProfileDefinition

PRIMARY_CHANNEL = "primary"
ALTERNATE_CHANNEL = "alternate"

OPTIMIZED_FOR = ("google-rich-results", "llm-processing")


def body(
    fields: Mapping[str, Any],
    profile: ProfileDefinition,
    context: str = "https://schema.org",
) -> dict[str, Any]:
    """``@context`` and ``@type`` first, then deep copies of the caller's fields."""
    document: dict[str, Any] = {"@context": context, "@type": profile.schema_type_name}
    for key, value in fields.items():
        if key not in UNSCORED_KEYS:
            document[key] = copy.deepcopy(value)
    return document


def profile_property(profile: ProfileDefinition) -> dict[str, Any]:
    return {"@type": "PropertyValue", "name": "profile", "value": profile.profile_url}


def profile_context(profile: ProfileDefinition, context: str = "https://schema.org") -> list[Any]:
    """Vocabulary context of the alternate channel, carrying the profile metadata."""
    return [
        context,
        {
            "llmprofiles": PROFILE_VOCAB_URL,
            "profile": {
                "@id": profile.profile_url,
                "version": profile.version,
                "category": profile.category.value,
                "optimizedFor": list(OPTIMIZED_FOR),
            },
        },
    ]


def assemble(
    fields: Mapping[str, Any],
    profile: ProfileDefinition,
    mode: OutputMode | str,
    context: str = "https://schema.org",
) -> dict[str, Any]:
    """
    Render the finished output.

    Returns a flat document, or ``{"primary": ..., "alternate": ...}`` when the
    mode splits channels. The result shares no mutable state with ``fields``.
    """
    caps = capabilities(mode)
    document = body(fields, profile, context)

    if caps.uses_alias:
        document["additionalType"] = profile.profile_url
    if caps.uses_version:
        document["schemaVersion"] = profile.profile_url
    if caps.uses_identifier:
        document["identifier"] = profile.profile_url
    if caps.uses_property_value:
        document["additionalProperty"] = profile_property(profile)

    if not caps.splits_channels:
        return document

    # Channels share every key; only the alternate @context differs.
    alternate = copy.deepcopy(document)
    if caps.includes_profile_metadata:
        alternate["@context"] = profile_context(profile, context)
    return {PRIMARY_CHANNEL: document, ALTERNATE_CHANNEL: alternate}
