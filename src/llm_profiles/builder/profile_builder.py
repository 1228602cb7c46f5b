"""
Profile Builder
================
Fluent builder for profile documents.

One generic builder serves every profile. Setters are generated from the
profile's declared fields (``headline()``, ``date_published()``,
``add_mention()``, ...), and ``set()`` / ``add()`` / ``unset()`` cover
anything else. Setters never fail on a value's shape; strictness lives in
``validate()`` and ``finalize()``.

Example::

    from llm_profiles import ProfileBuilder

    doc = (
        ProfileBuilder.article()
        .headline("Breaking News")
        .author({"@type": "Person", "name": "Jane Doe"})
        .date_published(datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc))
        .add_mention("Python")
        .finalize()
    )

    channels = builder.finalize("split-channels")   # {"primary": ..., "alternate": ...}
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from ..config import EngineSettings, get_settings
from ..errors import ConfigurationError, InvalidFieldShape, MissingRequiredFields
from ..models.modes import OutputMode, link_header, rel_profile, resolve_mode
from ..models.profile import (
    DECORATION_KEYS,
    RESERVED_KEYS,
    ProfileCategory,
    ProfileDefinition,
    RuleFormat,
)
from ..profiles.metadata import CompletionHint, completion_hints
from ..profiles.registry import ProfileRegistry, default_registry
from ..sanitize.sanitizer import NESTED_SHAPES, Sanitizer, default_sanitizer, to_iso
from ..validator.rules import select_alternative
from ..validator.scoring import ValidationIssue, ValidationResult, validate_document
from .assembly import ALTERNATE_CHANNEL, PRIMARY_CHANNEL, assemble, body
from .setters import ALWAYS_COMPOSED, FieldSetter, ValueKind, setter_table

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass
class BuildOutcome:
    """A finished output together with the validation run that gated it."""
    output: dict[str, Any]
    validation: ValidationResult | None = None

    @property
    def is_split(self) -> bool:
        return set(self.output) == {PRIMARY_CHANNEL, ALTERNATE_CHANNEL}

    @property
    def warnings(self) -> list[ValidationIssue]:
        """Missing required fields (when not raised) followed by the validation warnings."""
        if self.validation is None:
            return []
        return self.validation.errors + self.validation.warnings


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


class _ProfileFactory:
    """
    ``ProfileBuilder.article()`` on the class; on an instance the name falls
    through to the field setter of the same name (``builder.review(...)``).
    """

    def __init__(self, profile_type: str) -> None:
        self.profile_type = profile_type
        self.__doc__ = f"Builder for the {profile_type} profile."

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type) -> Callable[..., Any]:
        if instance is not None:
            return instance._field_setter(self.name)

        def factory(**kwargs: Any) -> "ProfileBuilder":
            return owner(self.profile_type, **kwargs)

        factory.__name__ = self.name
        factory.__doc__ = self.__doc__
        return factory


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ProfileBuilder:
    """
    Accumulates field values for one profile and renders them per output mode.

    Constructor arguments left as None take their defaults from
    ``EngineSettings`` (mode, sanitization) and the bundled registry.
    """

    article = _ProfileFactory("Article")
    book = _ProfileFactory("Book")
    course = _ProfileFactory("Course")
    dataset = _ProfileFactory("Dataset")
    event = _ProfileFactory("Event")
    faq_page = _ProfileFactory("FAQPage")
    how_to = _ProfileFactory("HowTo")
    job_posting = _ProfileFactory("JobPosting")
    local_business = _ProfileFactory("LocalBusiness")
    product = _ProfileFactory("ProductOffer")
    qa_page = _ProfileFactory("QAPage")
    recipe = _ProfileFactory("Recipe")
    review = _ProfileFactory("Review")
    software_application = _ProfileFactory("SoftwareApplication")
    video_object = _ProfileFactory("VideoObject")

    def __init__(
        self,
        profile_type: str | ProfileDefinition,
        category: ProfileCategory | str | None = None,
        mode: OutputMode | str | None = None,
        sanitize: bool | None = None,
        *,
        registry: ProfileRegistry | None = None,
        sanitizer: Sanitizer | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry or default_registry(self._settings.profiles_dir)
        if isinstance(profile_type, ProfileDefinition):
            self._profile = profile_type
        else:
            self._profile = self._registry.lookup(profile_type)

        if category is not None:
            try:
                category = ProfileCategory(category)
            except ValueError:
                raise ConfigurationError(f"Unknown category: {category!r}") from None
            if category != self._profile.category:
                raise ConfigurationError(
                    f"{self._profile.type} belongs to category "
                    f"{self._profile.category.value!r}, not {category.value!r}"
                )

        self._mode = resolve_mode(mode if mode is not None else self._settings.default_mode)
        self._sanitize = self._settings.sanitize_inputs if sanitize is None else sanitize
        self._sanitizer: Sanitizer = sanitizer or default_sanitizer
        self._fields: dict[str, Any] = {}
        self._setters = setter_table(self._profile, _reserved_names(type(self)))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def profile(self) -> ProfileDefinition:
        return self._profile

    @property
    def mode(self) -> OutputMode:
        return self._mode

    @property
    def sanitizes(self) -> bool:
        return self._sanitize

    @property
    def fields(self) -> dict[str, Any]:
        """A copy of the caller-supplied field map."""
        return copy.deepcopy(self._fields)

    @property
    def document(self) -> dict[str, Any]:
        """The current document without any mode decoration."""
        return body(self._fields, self._profile, self._settings.vocabulary_context)

    @property
    def setters(self) -> list[str]:
        return sorted(self._setters)

    @property
    def rel_profile(self) -> str | None:
        return rel_profile(self._mode)

    @property
    def link_header(self) -> str | None:
        return link_header(self._mode)

    def hints(self, partial: str = "") -> list[CompletionHint]:
        """Field-name completions for this profile."""
        return completion_hints(self._profile, partial)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set(self, field: str, value: Any) -> "ProfileBuilder":
        """Set ``field``; ``None`` removes it. ``@context`` / ``@type`` are refused."""
        if field in RESERVED_KEYS:
            raise ValueError(f"{field!r} is set by the builder and cannot be overridden")
        if field in DECORATION_KEYS:
            logger.warning("Ignoring %r: it is added by the output mode", field)
            return self
        return self._store(self._setter_for(field), value)

    def add(self, field: str, item: Any) -> "ProfileBuilder":
        """Append ``item`` to the list stored under ``field``, creating it if needed."""
        if field in RESERVED_KEYS:
            raise ValueError(f"{field!r} is set by the builder and cannot be overridden")
        if field in DECORATION_KEYS:
            logger.warning("Ignoring %r: it is added by the output mode", field)
            return self
        return self._append(self._setter_for(field), item)

    def unset(self, field: str) -> "ProfileBuilder":
        self._fields.pop(field, None)
        return self

    def update(self, values: Mapping[str, Any]) -> "ProfileBuilder":
        """``set()`` every entry; reserved and decoration keys are skipped."""
        for field, value in values.items():
            if field in RESERVED_KEYS or field in DECORATION_KEYS:
                continue
            self.set(field, value)
        return self

    def _field_setter(self, name: str) -> Callable[..., "ProfileBuilder"]:
        setter = self.__dict__.get("_setters", {}).get(name)
        if setter is None:
            profile = self.__dict__.get("_profile")
            owner = profile.type if profile is not None else type(self).__name__
            raise AttributeError(f"{owner} builder has no setter {name!r}")

        def apply(value: Any, *args: Any, **kwargs: Any) -> "ProfileBuilder":
            if args or kwargs or (setter.field in ALWAYS_COMPOSED and not isinstance(value, Mapping)):
                if setter.compose is None:
                    raise TypeError(f"{name}() takes a single value")
                value = setter.compose(value, *args, **kwargs)
            if setter.accumulate:
                return self._append(setter, value)
            return self._store(setter, value)

        apply.__name__ = name
        apply.__doc__ = f"{'Append to' if setter.accumulate else 'Set'} {setter.field!r}."
        return apply

    def __getattr__(self, name: str) -> Callable[..., "ProfileBuilder"]:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._field_setter(name)

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self.__dict__.get("_setters", {})))

    def _setter_for(self, field: str) -> FieldSetter:
        for setter in self._setters.values():
            if setter.field == field and not setter.accumulate:
                return setter
        return FieldSetter(field, field, shape=NESTED_SHAPES.get(field))

    def _store(self, setter: FieldSetter, value: Any) -> "ProfileBuilder":
        if value is None:
            return self.unset(setter.field)
        cleaned = self._clean(setter, value)
        if cleaned is None:
            logger.warning("Dropped %s.%s: value rejected by sanitizer", self._profile.type, setter.field)
            self._fields.pop(setter.field, None)
        else:
            self._fields[setter.field] = cleaned
        return self

    def _append(self, setter: FieldSetter, item: Any) -> "ProfileBuilder":
        current = self._fields.get(setter.field)
        if current is None:
            current = []
        elif not isinstance(current, list):
            current = [current]
        cleaned = self._clean(setter, item)
        if cleaned is None:
            logger.warning("Dropped item of %s.%s: rejected by sanitizer", self._profile.type, setter.field)
            return self
        self._fields[setter.field] = [*current, cleaned]
        return self

    # ------------------------------------------------------------------
    # Sanitization
    # ------------------------------------------------------------------

    def _clean(self, setter: FieldSetter, value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return self._sanitizer.sanitize_date(value) if self._sanitize else to_iso(value)
        if not self._sanitize:
            return copy.deepcopy(value)

        if isinstance(value, Mapping):
            shape = value.get("@type")
            if not isinstance(shape, str):
                shape = setter.shape
            return self._sanitizer.sanitize_structured_data(value, shape)
        if isinstance(value, (list, tuple)):
            items = (self._clean(setter, v) for v in value)
            return [v for v in items if v is not None]
        if isinstance(value, bool):
            return value

        kind = setter.kind
        minimum = maximum = None
        if kind == ValueKind.AUTO or not isinstance(value, str):
            kind, minimum, maximum = self._kind_of(setter.field, value)

        if kind == ValueKind.URL:
            return self._sanitizer.sanitize_url(value)
        if kind == ValueKind.DATE:
            return self._sanitizer.sanitize_date(value)
        if kind == ValueKind.NUMBER:
            return self._sanitizer.sanitize_number(value, minimum, maximum)
        if kind == ValueKind.TEXT:
            return self._sanitizer.sanitize_string(value) or None
        return copy.deepcopy(value)

    def _kind_of(self, field: str, value: Any) -> tuple[ValueKind | None, float | None, float | None]:
        """Pick a cleaning kind from the rule alternative ``value``'s shape selects."""
        rule = self._profile.rule_for(field)
        alternative = select_alternative(value, rule) if rule is not None else None
        if alternative is not None and isinstance(value, str):
            if alternative.format in (RuleFormat.URI, RuleFormat.URI_REFERENCE):
                return ValueKind.URL, None, None
            if alternative.format in (RuleFormat.DATE, RuleFormat.DATE_TIME):
                return ValueKind.DATE, None, None
            return ValueKind.TEXT, None, None
        if isinstance(value, str):
            return ValueKind.TEXT, None, None
        if isinstance(value, (int, float)):
            if alternative is not None:
                return ValueKind.NUMBER, alternative.minimum, alternative.maximum
            return ValueKind.NUMBER, None, None
        return None, None, None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        """Score the current fields. Recomputed on every call."""
        return validate_document(self.document, self._profile, self._settings.max_suggestions)

    def is_valid(self) -> bool:
        return self.validate().valid

    def missing_required(self) -> list[str]:
        return self.validate().missing_required

    def state_summary(self) -> dict[str, Any]:
        """Completion status of the builder, for progress displays."""
        result = self.validate()
        return {
            "profileType": self._profile.type,
            "mode": self._mode.value,
            "fieldsSet": list(self._fields),
            "valid": result.valid,
            "status": result.status,
            "scores": result.scores.to_dict(),
            "missingRequired": result.missing_required,
            "nextSteps": result.next_steps(),
        }

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def finalize_with_report(
        self,
        mode: OutputMode | str | None = None,
        *,
        validate: bool | None = None,
        throw_on_error: bool | None = None,
        strict_shapes: bool = False,
    ) -> BuildOutcome:
        """
        Render the fields under ``mode`` (the builder's own mode by default).

        When validating, missing required fields raise MissingRequiredFields
        or, with ``throw_on_error=False``, are logged and returned in the
        outcome. ``strict_shapes`` raises InvalidFieldShape for values that
        match none of their field's rule shapes.
        """
        target = self._mode if mode is None else resolve_mode(mode)
        if target != self._mode:
            logger.debug("Rendering %s under %s (builder mode %s)", self._profile.type, target.value, self._mode.value)
        if validate is None:
            validate = self._settings.validate_on_finalize
        if throw_on_error is None:
            throw_on_error = self._settings.throw_on_error

        result = None
        if validate or strict_shapes:
            result = self.validate()
            if validate and not result.valid:
                if throw_on_error:
                    raise MissingRequiredFields(result.missing_required, result)
                logger.warning(
                    "Building %s with missing required fields: %s",
                    self._profile.type, ", ".join(result.missing_required),
                )
            if strict_shapes and result.shape_issues:
                raise InvalidFieldShape(result.shape_issues)

        output = assemble(self._fields, self._profile, target, self._settings.vocabulary_context)
        return BuildOutcome(output, result)

    def finalize(
        self,
        mode: OutputMode | str | None = None,
        *,
        validate: bool | None = None,
        throw_on_error: bool | None = None,
        strict_shapes: bool = False,
    ) -> dict[str, Any]:
        """Render the finished document, or a primary/alternate pair in split-channels mode."""
        return self.finalize_with_report(
            mode,
            validate=validate,
            throw_on_error=throw_on_error,
            strict_shapes=strict_shapes,
        ).output

    build = finalize

    def build_unsafe(self, mode: OutputMode | str | None = None) -> dict[str, Any]:
        """Render without any validation."""
        return self.finalize(mode, validate=False)

    def build_with_warnings(self, mode: OutputMode | str | None = None) -> BuildOutcome:
        """Render even when required fields are missing; the outcome carries the report."""
        return self.finalize_with_report(mode, validate=True, throw_on_error=False)

    def with_mode(self, mode: OutputMode | str) -> "ProfileBuilder":
        """A new builder with the same fields and a different mode."""
        clone = type(self)(
            self._profile,
            mode=mode,
            sanitize=self._sanitize,
            registry=self._registry,
            sanitizer=self._sanitizer,
            settings=self._settings,
        )
        clone._fields = copy.deepcopy(self._fields)
        return clone

    def __repr__(self) -> str:
        return (
            f"ProfileBuilder({self._profile.type!r}, mode={self._mode.value!r}, "
            f"fields={len(self._fields)})"
        )


def _reserved_names(cls: type) -> frozenset[str]:
    """Public builder attributes that profile setters must not shadow."""
    names = set()
    for klass in cls.__mro__:
        for name, value in vars(klass).items():
            if not name.startswith("_") and not isinstance(value, _ProfileFactory):
                names.add(name)
    return frozenset(names)
