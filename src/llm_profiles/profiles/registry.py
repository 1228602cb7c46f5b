"""
Profile Registry
=================
Read-only catalog of ProfileDefinitions, one per document type.

The registry is built once (normally from the JSON records bundled in
``profiles/data``) and then only read. Lookups are case-insensitive, ignore
punctuation, and also accept the Schema.org type name of a profile::

    registry = ProfileRegistry.from_directory()
    registry.lookup("JobPosting")      # same as "jobposting" or "job-posting"
    registry.lookup("Product")         # the ProductOffer profile
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from ..errors import ConfigurationError, UnknownProfileType
from ..models.profile import ProfileCategory, ProfileDefinition

logger = logging.getLogger(__name__)

BUNDLED_PROFILES_DIR = Path(__file__).parent / "data"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _key(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


class ProfileRegistry:
    """Immutable mapping of profile type → ProfileDefinition."""

    def __init__(self, profiles: Iterable[ProfileDefinition]) -> None:
        by_type: dict[str, ProfileDefinition] = {}
        for profile in profiles:
            key = _key(profile.type)
            if key in by_type:
                raise ConfigurationError(f"Duplicate profile type: {profile.type!r}")
            by_type[key] = profile

        # Schema.org type names resolve to their profile unless they clash
        # with a profile type of their own.
        aliases: dict[str, str] = {}
        for key, profile in by_type.items():
            alias = _key(profile.schema_type_name)
            if alias != key and alias not in by_type:
                aliases.setdefault(alias, key)

        self._profiles = MappingProxyType(by_type)
        self._aliases = MappingProxyType(aliases)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "ProfileRegistry":
        """Build from already-parsed declarative records."""
        return cls(ProfileDefinition.model_validate(r) for r in records)

    @classmethod
    def from_directory(cls, directory: str | Path | None = None) -> "ProfileRegistry":
        """Load every ``*.json`` record in ``directory`` (bundled profiles by default)."""
        directory = Path(directory) if directory is not None else BUNDLED_PROFILES_DIR
        paths = sorted(directory.glob("*.json"))
        if not paths:
            raise ConfigurationError(f"No profile records found in {directory}")

        profiles: list[ProfileDefinition] = []
        for path in paths:
            try:
                record = json.loads(path.read_text(encoding="utf-8"))
                profiles.append(ProfileDefinition.model_validate(record))
            except (json.JSONDecodeError, ValidationError) as e:
                raise ConfigurationError(f"Invalid profile record {path.name}: {e}") from e

        registry = cls(profiles)
        logger.debug("Loaded %d profiles from %s", len(registry), directory)
        return registry

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, type_name: str) -> ProfileDefinition:
        """Return the profile for ``type_name`` or raise UnknownProfileType."""
        key = _key(type_name)
        profile = self._profiles.get(key)
        if profile is None and key in self._aliases:
            profile = self._profiles[self._aliases[key]]
        if profile is None:
            raise UnknownProfileType(type_name, self.types())
        return profile

    def get(self, type_name: str) -> ProfileDefinition | None:
        try:
            return self.lookup(type_name)
        except UnknownProfileType:
            return None

    def types(self) -> list[str]:
        """Profile type names, sorted."""
        return sorted(p.type for p in self._profiles.values())

    def by_category(self, category: ProfileCategory | str) -> list[ProfileDefinition]:
        category = ProfileCategory(category)
        return sorted(
            (p for p in self._profiles.values() if p.category == category),
            key=lambda p: p.type,
        )

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.get(type_name) is not None

    def __iter__(self) -> Iterator[ProfileDefinition]:
        return iter(sorted(self._profiles.values(), key=lambda p: p.type))

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileRegistry({len(self)} profiles: {', '.join(self.types())})"


@lru_cache(maxsize=None)
def default_registry(profiles_dir: Path | None = None) -> ProfileRegistry:
    """The process-wide registry, loaded on first use and never mutated."""
    return ProfileRegistry.from_directory(profiles_dir)
