"""
Output Modes
=============
The three fixed output policies and their capability sets.

- ``strict-seo``        – decorates the document with additionalType,
                          schemaVersion and identifier
- ``split-channels``    – adds a PropertyValue profile block and returns a
                          primary/alternate channel pair
- ``standards-header``  – keeps the body clean and exposes the profile as an
                          HTML rel hint and an HTTP Link header instead

Capabilities are a pure lookup on the mode value.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..errors import UnknownMode

PROFILE_HUB_URL = "https://llmprofiles.org/profiles"
PROFILE_VOCAB_URL = "https://llmprofiles.org/vocab#"


class OutputMode(str, Enum):
    STRICT_SEO = "strict-seo"
    SPLIT_CHANNELS = "split-channels"
    STANDARDS_HEADER = "standards-header"


class ModeCapabilities(BaseModel):
    """What a mode adds to, or does with, the finished document."""
    model_config = ConfigDict(frozen=True)

    uses_alias: bool = False
    uses_version: bool = False
    uses_identifier: bool = False
    uses_property_value: bool = False
    splits_channels: bool = False
    includes_profile_metadata: bool = False
    exposes_link_hints: bool = False


_CAPABILITIES: dict[OutputMode, ModeCapabilities] = {
    OutputMode.STRICT_SEO: ModeCapabilities(
        uses_alias=True,
        uses_version=True,
        uses_identifier=True,
    ),
    OutputMode.SPLIT_CHANNELS: ModeCapabilities(
        uses_property_value=True,
        splits_channels=True,
        includes_profile_metadata=True,
    ),
    OutputMode.STANDARDS_HEADER: ModeCapabilities(
        exposes_link_hints=True,
    ),
}


def resolve_mode(mode: OutputMode | str | Any) -> OutputMode:
    """Coerce a mode name to OutputMode, raising UnknownMode otherwise."""
    if isinstance(mode, OutputMode):
        return mode
    try:
        return OutputMode(mode)
    except ValueError:
        raise UnknownMode(mode, [m.value for m in OutputMode]) from None


def capabilities(mode: OutputMode | str) -> ModeCapabilities:
    return _CAPABILITIES[resolve_mode(mode)]


def rel_profile(mode: OutputMode | str) -> str | None:
    """Value for ``<link rel="profile" href=...>`` or None if the mode has no hints."""
    if not capabilities(mode).exposes_link_hints:
        return None
    return PROFILE_HUB_URL


def link_header(mode: OutputMode | str) -> str | None:
    """Value for the HTTP ``Link`` header or None if the mode has no hints."""
    if not capabilities(mode).exposes_link_hints:
        return None
    return f'<{PROFILE_HUB_URL}>; rel="profile"'
