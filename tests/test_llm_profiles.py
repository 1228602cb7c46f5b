"""
Test Suite for llm-profiles
============================
Tests for the profile registry, field rule evaluator, output modes, builder,
validation/scoring engine, sanitizer, settings and CLI.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from click.testing import CliRunner
from pydantic import TypeAdapter, ValidationError
from rich.console import Console

from llm_profiles import (
    AnyOfRule,
    BuildOutcome,
    ConfigurationError,
    ConstRule,
    EngineSettings,
    FieldImportance,
    FieldRule,
    InputSanitizer,
    InvalidFieldShape,
    IssueBucket,
    MissingRequiredFields,
    OutputMode,
    PrimitiveRule,
    ProfileBuilder,
    ProfileCategory,
    ProfileDefinition,
    ProfileRegistry,
    ProfileValidator,
    RuleFormat,
    Severity,
    UnknownMode,
    UnknownProfileType,
    capabilities,
    completion_hints,
    default_registry,
    field_metadata,
    link_header,
    rel_profile,
    satisfies,
    validate_document,
)
from llm_profiles.cli import main as cli_main
from llm_profiles.cli.main import cli
from llm_profiles.models.profile import DECORATION_KEYS
from llm_profiles.profiles.metadata import FieldCategory
from llm_profiles.validator.rules import describe, explain, select_alternative


PROFILE_TYPES = ProfileRegistry.from_directory().types()
MODES = [m.value for m in OutputMode]


# ===========================================================================
# Helpers & fixtures
# ===========================================================================


def sample_value(rule: FieldRule) -> Any:
    """A minimal value that satisfies ``rule``."""
    if isinstance(rule, ConstRule):
        return rule.const
    if isinstance(rule, AnyOfRule):
        return sample_value(rule.any_of[0])
    family = rule.type.value
    if family == "string":
        return {
            RuleFormat.DATE: "2024-06-15",
            RuleFormat.DATE_TIME: "2024-06-15T09:00:00Z",
            RuleFormat.URI: "https://example.com/sample",
            RuleFormat.URI_REFERENCE: "https://example.com/sample",
            RuleFormat.EMAIL: "team@example.com",
        }.get(rule.format, "Sample value")
    if family in ("integer", "number"):
        value = int(rule.minimum) if rule.minimum is not None else 1
        if rule.maximum is not None:
            value = min(value, int(rule.maximum))
        return value
    if family == "boolean":
        return True
    if family == "array":
        return ["Sample value"]
    return {"name": "Sample"}


def required_fields(profile: ProfileDefinition) -> dict[str, Any]:
    return {name: sample_value(rule) for name, rule in profile.required.items()}


def strip_generated(document: dict[str, Any]) -> dict[str, Any]:
    skipped = {"@context", "@type", *DECORATION_KEYS}
    return {k: v for k, v in document.items() if k not in skipped}


@pytest.fixture
def registry() -> ProfileRegistry:
    return ProfileRegistry.from_directory()


@pytest.fixture
def article(registry: ProfileRegistry) -> ProfileDefinition:
    return registry.lookup("Article")


@pytest.fixture
def event(registry: ProfileRegistry) -> ProfileDefinition:
    return registry.lookup("Event")


@pytest.fixture
def complete_article() -> ProfileBuilder:
    """Article builder with every required field set."""
    return (
        ProfileBuilder.article()
        .headline("Breaking News")
        .author({"@type": "Person", "name": "Jane Doe"})
        .date_published("2024-06-15T09:00:00Z")
    )


@pytest.fixture
def profile_record() -> dict[str, Any]:
    return {
        "type": "Widget",
        "category": "technology",
        "schemaType": "https://schema.org/Thing",
        "profileUrl": "https://example.com/profiles/widget/v1",
        "description": "Test profile",
        "required": {"name": {"type": "string", "minLength": 1}},
        "recommended": {"url": {"type": "string", "format": "uri"}},
        "optional": {"color": {"type": "string"}},
        "googleRichResults": ["name", "url"],
        "llmOptimized": ["name"],
    }


# ===========================================================================
# Profile registry
# ===========================================================================


class TestProfileRegistry:
    """Tests for loading and looking up profile definitions."""

    def test_bundled_profiles(self, registry: ProfileRegistry) -> None:
        assert len(registry) == 15
        assert "Article" in registry.types()
        assert "JobPosting" in registry.types()
        assert registry.types() == sorted(registry.types())

    def test_lookup_is_case_and_punctuation_insensitive(self, registry: ProfileRegistry) -> None:
        for name in ("JobPosting", "jobposting", "job-posting", "JOB_POSTING"):
            assert registry.lookup(name).type == "JobPosting"

    def test_lookup_by_schema_type_name(self, registry: ProfileRegistry) -> None:
        profile = registry.lookup("Product")
        assert profile.type == "ProductOffer"
        assert profile.schema_type_name == "Product"

    def test_unknown_type(self, registry: ProfileRegistry) -> None:
        with pytest.raises(UnknownProfileType) as exc:
            registry.lookup("Spaceship")
        assert isinstance(exc.value, ConfigurationError)
        assert isinstance(exc.value, LookupError)
        assert "Article" in exc.value.known

    def test_contains_and_get(self, registry: ProfileRegistry) -> None:
        assert "event" in registry
        assert "Spaceship" not in registry
        assert registry.get("Spaceship") is None

    def test_by_category(self, registry: ProfileRegistry) -> None:
        content = registry.by_category("content")
        assert content
        assert all(p.category == ProfileCategory.CONTENT for p in content)
        assert "Article" in [p.type for p in content]

    def test_iteration_is_sorted(self, registry: ProfileRegistry) -> None:
        assert [p.type for p in registry] == registry.types()

    def test_profiles_are_immutable(self, article: ProfileDefinition) -> None:
        with pytest.raises(ValidationError):
            article.type = "Other"

    def test_default_registry_is_shared(self) -> None:
        assert default_registry() is default_registry()

    def test_reserved_and_duplicate_fields_are_not_scored(self) -> None:
        profile = ProfileDefinition.model_validate({
            "type": "Thing",
            "category": "content",
            "schemaType": "https://schema.org/Thing",
            "profileUrl": "https://example.com/thing",
            "required": {"@type": {"const": "Thing"}, "name": {"type": "string"}},
            "recommended": {"name": {"type": "string"}, "additionalType": {"type": "string"}},
        })
        assert profile.fields(FieldImportance.REQUIRED) == ["name"]
        assert profile.fields(FieldImportance.RECOMMENDED) == []
        assert profile.importance_of("name") == FieldImportance.REQUIRED

    def test_rule_shapes_are_parsed(self, registry: ProfileRegistry, article: ProfileDefinition) -> None:
        assert isinstance(article.rule_for("author"), AnyOfRule)
        headline = article.rule_for("headline")
        assert isinstance(headline, PrimitiveRule)
        assert headline.min_length == 3
        faq = registry.lookup("FAQPage").rule_for("mainEntity")
        assert isinstance(faq.items.properties["@type"], ConstRule)

    def test_from_directory(self, tmp_path: Path, profile_record: dict) -> None:
        (tmp_path / "widget.json").write_text(json.dumps(profile_record), encoding="utf-8")
        custom = ProfileRegistry.from_directory(tmp_path)
        assert custom.types() == ["Widget"]
        assert custom.lookup("Thing").type == "Widget"

    def test_from_empty_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            ProfileRegistry.from_directory(tmp_path)

    def test_invalid_record(self, tmp_path: Path) -> None:
        (tmp_path / "broken.json").write_text('{"type": "Broken"}', encoding="utf-8")
        with pytest.raises(ConfigurationError, match="broken.json"):
            ProfileRegistry.from_directory(tmp_path)

    def test_duplicate_types(self, profile_record: dict) -> None:
        with pytest.raises(ConfigurationError):
            ProfileRegistry.from_records([profile_record, profile_record])


# ===========================================================================
# Field rule evaluator
# ===========================================================================


class TestFieldRules:
    """Tests for satisfies() and friends."""

    def test_const(self) -> None:
        rule = ConstRule(const="Question")
        assert satisfies("Question", rule)
        assert not satisfies("Answer", rule)
        assert not satisfies(None, rule)

    def test_string_length(self) -> None:
        rule = PrimitiveRule(type="string", minLength=3, maxLength=5)
        assert satisfies("abc", rule)
        assert not satisfies("ab", rule)
        assert not satisfies("abcdef", rule)

    def test_date_time_format(self) -> None:
        rule = PrimitiveRule(type="string", format="date-time")
        assert satisfies("2024-06-15T09:00:00Z", rule)
        assert satisfies("2024-06-15T09:00:00.250+02:00", rule)
        assert not satisfies("2024-06-15", rule)
        assert not satisfies("2024-06-15T09:00Z", rule)
        assert not satisfies("2024-02-30T09:00:00Z", rule)

    def test_date_format(self) -> None:
        rule = PrimitiveRule(type="string", format="date")
        assert satisfies("2024-06-15", rule)
        assert not satisfies("2024-13-01", rule)
        assert not satisfies("15/06/2024", rule)

    def test_uri_format(self) -> None:
        rule = PrimitiveRule(type="string", format="uri")
        assert satisfies("https://example.com/a", rule)
        assert satisfies("mailto:team@example.com", rule)
        assert not satisfies("example.com", rule)
        assert not satisfies("https://exa mple.com", rule)

    def test_email_format(self) -> None:
        rule = PrimitiveRule(type="string", format="email")
        assert satisfies("team@example.com", rule)
        assert not satisfies("team@example", rule)

    def test_integer_and_number(self) -> None:
        integer = PrimitiveRule(type="integer", minimum=1)
        assert satisfies(5, integer)
        assert satisfies(5.0, integer)
        assert not satisfies(5.5, integer)
        assert not satisfies(0, integer)
        assert not satisfies(True, integer)

        number = PrimitiveRule(type="number", maximum=5)
        assert satisfies(4.5, number)
        assert not satisfies(5.5, number)
        assert not satisfies(float("nan"), number)
        assert not satisfies("4", number)

    def test_boolean(self) -> None:
        rule = PrimitiveRule(type="boolean")
        assert satisfies(False, rule)
        assert not satisfies(0, rule)

    def test_arrays_checked_at_container_level(self) -> None:
        rule = PrimitiveRule(type="array", items=PrimitiveRule(type="string"))
        assert satisfies([1, 2], rule)
        assert satisfies((), rule)
        assert not satisfies("a, b", rule)

    def test_shape_polymorphism(self, article: ProfileDefinition) -> None:
        rule = article.rule_for("author")
        assert satisfies("Jane Doe", rule)
        assert satisfies({"@type": "Person", "name": "Jane Doe"}, rule)
        assert not satisfies(42, rule)

    def test_absent_never_satisfies(self, article: ProfileDefinition) -> None:
        for name in article.fields():
            assert not satisfies(None, article.rule_for(name))

    def test_explain(self, article: ProfileDefinition) -> None:
        assert explain("Breaking News", article.rule_for("headline")) is None
        assert "shorter than 3" in explain("Hi", article.rule_for("headline"))
        assert explain(42, article.rule_for("author")) == "expected string | object, got integer"

    def test_describe(self, event: ProfileDefinition) -> None:
        assert describe(event.rule_for("organizer")) == "string | object"
        assert describe(event.rule_for("startDate")) == "string(date-time)"

    def test_select_alternative(self, article: ProfileDefinition) -> None:
        rule = article.rule_for("image")
        assert select_alternative("https://example.com/a.jpg", rule).format == RuleFormat.URI
        assert select_alternative({"url": "x"}, rule).type.value == "object"
        assert select_alternative(42, rule) is None

    def test_discriminator_from_record(self) -> None:
        adapter = TypeAdapter(FieldRule)
        assert isinstance(adapter.validate_python({"const": 1}), ConstRule)
        assert isinstance(adapter.validate_python({"type": "string"}), PrimitiveRule)
        rule = adapter.validate_python({"anyOf": [{"type": "string"}, {"type": "object"}]})
        assert isinstance(rule, AnyOfRule)
        assert len(rule.any_of) == 2


# ===========================================================================
# Modes
# ===========================================================================


class TestModes:
    """Tests for the three output modes."""

    def test_strict_seo(self) -> None:
        caps = capabilities("strict-seo")
        assert caps.uses_alias and caps.uses_version and caps.uses_identifier
        assert not caps.splits_channels
        assert not caps.exposes_link_hints

    def test_split_channels(self) -> None:
        caps = capabilities(OutputMode.SPLIT_CHANNELS)
        assert caps.uses_property_value
        assert caps.splits_channels
        assert caps.includes_profile_metadata
        assert not caps.uses_alias

    def test_standards_header(self) -> None:
        caps = capabilities("standards-header")
        assert caps.exposes_link_hints
        assert not any([caps.uses_alias, caps.uses_version, caps.uses_identifier, caps.splits_channels])

    def test_capabilities_are_a_pure_lookup(self) -> None:
        assert capabilities("strict-seo") == capabilities(OutputMode.STRICT_SEO)

    def test_unknown_mode(self) -> None:
        with pytest.raises(UnknownMode) as exc:
            capabilities("fancy")
        assert isinstance(exc.value, ConfigurationError)
        assert isinstance(exc.value, ValueError)
        assert "strict-seo" in str(exc.value)

    def test_link_hints(self) -> None:
        assert rel_profile("standards-header") == "https://llmprofiles.org/profiles"
        assert link_header("standards-header") == '<https://llmprofiles.org/profiles>; rel="profile"'
        assert rel_profile("strict-seo") is None
        assert link_header("split-channels") is None


# ===========================================================================
# Validation / scoring
# ===========================================================================


class TestValidation:
    """Tests for validate_document() and ProfileValidator."""

    def test_article_with_headline_only(self, article: ProfileDefinition) -> None:
        result = validate_document({"headline": "Breaking News"}, article)
        assert not result.valid
        assert result.missing_required == ["author", "datePublished"]
        warned = {i.field: i.importance for i in result.warnings}
        assert warned["dateModified"] == IssueBucket.HELPFUL
        assert warned["publisher"] == IssueBucket.IMPORTANT
        assert result.scores.required == 33

    def test_event_with_required_fields(self, event: ProfileDefinition) -> None:
        result = validate_document(
            {"name": "Tech Talk", "startDate": "2024-06-15T09:00:00Z", "location": "Hall A"},
            event,
        )
        assert result.valid
        assert result.scores.required == 100
        assert not result.errors
        assert not result.shape_issues

    def test_empty_required_set_is_complete(self, profile_record: dict) -> None:
        profile_record["required"] = {}
        profile = ProfileDefinition.model_validate(profile_record)
        result = validate_document({}, profile)
        assert result.valid
        assert result.scores.required == 100
        assert result.scores.overall == 0

    def test_suggestions_are_capped(self, article: ProfileDefinition) -> None:
        assert len(validate_document({}, article).suggestions) == 5
        assert len(validate_document({}, article, max_suggestions=2).suggestions) == 2
        assert all(i.importance == IssueBucket.SUGGESTION for i in validate_document({}, article).suggestions)

    def test_empty_values_count_as_absent(self, event: ProfileDefinition) -> None:
        result = validate_document({"name": "", "startDate": None, "location": "Hall A"}, event)
        assert result.missing_required == ["name", "startDate"]

    def test_invalid_shape_is_a_warning(self, article: ProfileDefinition) -> None:
        result = validate_document(
            {"headline": "Breaking News", "author": 42, "datePublished": "2024-06-15T09:00:00Z"},
            article,
        )
        assert result.valid
        assert [i.field for i in result.shape_issues] == ["author"]
        assert result.shape_issues[0].severity == Severity.WARNING
        assert "author" not in result.missing_required

    def test_type_mismatch_is_a_warning(self, event: ProfileDefinition) -> None:
        result = validate_document({"@type": "Recipe", "name": "Tech Talk"}, event)
        assert "@type" in result.bucket(IssueBucket.INVALID_SHAPE)
        ok = validate_document({"@type": "Event", "name": "Tech Talk"}, event)
        assert "@type" not in ok.bucket(IssueBucket.INVALID_SHAPE)

    def test_unhashable_type_is_a_warning(self, article: ProfileDefinition) -> None:
        result = validate_document({"@type": {"name": "x"}, "headline": "Breaking News"}, article)
        assert "@type" in result.bucket(IssueBucket.INVALID_SHAPE)
        mixed = validate_document({"@type": [["Article"], "Article"], "headline": "Breaking News"}, article)
        assert "@type" not in mixed.bucket(IssueBucket.INVALID_SHAPE)

    def test_valid_needs_every_required_field(self, profile_record: dict) -> None:
        profile_record["required"] = {f"field{i}": {"type": "string"} for i in range(200)}
        profile = ProfileDefinition.model_validate(profile_record)
        document = {f"field{i}": "x" for i in range(199)}
        result = validate_document(document, profile)
        assert result.scores.required == 100
        assert not result.valid
        assert result.missing_required == ["field199"]

    def test_report_shape(self, article: ProfileDefinition) -> None:
        report = validate_document({"headline": "Breaking News"}, article).to_dict()
        assert report["valid"] is False
        assert set(report["scores"]) == {"overall", "required", "recommended", "optional"}
        assert report["errors"][0] == {"field": "author", "reason": "Required field missing"}
        assert set(report["warnings"][0]) == {"field", "reason", "importance"}
        assert set(report["suggestions"][0]) == {"field", "reason"}
        json.dumps(report)

    def test_status_and_coverage(self, event: ProfileDefinition) -> None:
        full = {name: sample_value(event.rule_for(name))
                for name in event.fields(FieldImportance.REQUIRED) + event.fields(FieldImportance.RECOMMENDED)}
        result = validate_document(full, event)
        assert result.status == "complete"
        assert result.search_coverage.complete
        assert result.llm_coverage.percent == 100
        assert result.next_steps() == ["All required and recommended fields are present"]

        sparse = validate_document({"name": "Tech Talk"}, event)
        assert sparse.status == "incomplete"
        assert "startDate" in sparse.search_coverage.missing or "startDate" in sparse.missing_required
        assert sparse.next_steps()[0] == "Add required fields: startDate, location"

    @pytest.mark.parametrize("profile_type", PROFILE_TYPES)
    def test_required_gate(self, registry: ProfileRegistry, profile_type: str) -> None:
        profile = registry.lookup(profile_type)
        assert validate_document({}, profile).missing_required == list(profile.required)
        for missing in profile.required:
            document = {k: v for k, v in required_fields(profile).items() if k != missing}
            result = validate_document(document, profile)
            assert not result.valid
            assert result.missing_required == [missing]

    @pytest.mark.parametrize("profile_type", PROFILE_TYPES)
    def test_monotonic_scoring(self, registry: ProfileRegistry, profile_type: str) -> None:
        profile = registry.lookup(profile_type)
        document: dict[str, Any] = {}
        previous = validate_document(document, profile).scores
        for name in profile.fields(FieldImportance.REQUIRED) + profile.fields(FieldImportance.RECOMMENDED):
            document[name] = sample_value(profile.rule_for(name))
            scores = validate_document(document, profile).scores
            assert scores.required >= previous.required
            assert scores.overall >= previous.overall
            assert scores.recommended >= previous.recommended
            previous = scores
        assert previous.required == 100
        assert previous.overall == 100

    def test_validator_uses_document_type(self, registry: ProfileRegistry) -> None:
        validator = ProfileValidator(registry, max_suggestions=5)
        result = validator.validate({"@type": "Product", "name": "Widget", "offers": {"price": 5}})
        assert result.profile_type == "ProductOffer"
        assert result.valid

    def test_validator_requires_a_type(self, registry: ProfileRegistry) -> None:
        with pytest.raises(ValueError):
            ProfileValidator(registry, max_suggestions=5).validate({"name": "x"})

    def test_validator_reads_primary_channel(self, complete_article: ProfileBuilder) -> None:
        channels = complete_article.finalize("split-channels")
        assert ProfileValidator().validate(channels).valid

    def test_validate_batch(self, registry: ProfileRegistry) -> None:
        validator = ProfileValidator(registry, max_suggestions=5)
        batch = validator.validate_batch(
            [
                {"name": "Tech Talk", "startDate": "2024-06-15T09:00:00Z", "location": "Hall A"},
                {"name": "Tech Talk"},
            ],
            "Event",
        )
        assert batch.total == 2
        assert batch.valid == 1
        assert batch.invalid == 1
        assert batch.with_warnings == 2
        assert batch.summary()["googleCompliant"] == 0
        assert str(batch) == "1/2 valid, 2 with warnings"


# ===========================================================================
# Builder
# ===========================================================================


class TestProfileBuilder:
    """Tests for the fluent ProfileBuilder."""

    def test_factories(self) -> None:
        assert ProfileBuilder.article().profile.type == "Article"
        assert ProfileBuilder.job_posting().profile.type == "JobPosting"
        assert ProfileBuilder.product().profile.schema_type_name == "Product"
        assert ProfileBuilder.review().profile.type == "Review"

    def test_factory_name_falls_through_to_setter(self) -> None:
        builder = ProfileBuilder.article()
        assert builder.review([{"@type": "Review", "reviewBody": "Great"}]) is builder
        assert builder.fields["review"] == [{"@type": "Review", "reviewBody": "Great"}]

    def test_category_must_match(self) -> None:
        assert ProfileBuilder("Article", "content").profile.type == "Article"
        with pytest.raises(ConfigurationError):
            ProfileBuilder("Article", "business")
        with pytest.raises(ConfigurationError):
            ProfileBuilder("Article", "nonsense")

    def test_unknown_profile_and_mode(self) -> None:
        with pytest.raises(UnknownProfileType):
            ProfileBuilder("Spaceship")
        with pytest.raises(UnknownMode):
            ProfileBuilder("Article", mode="fancy")

    def test_generated_setters(self) -> None:
        builder = ProfileBuilder.article()
        assert "date_published" in builder.setters
        assert "main_entity_of_page" in builder.setters
        assert "add_mention" in builder.setters
        assert "add_keyword" in builder.setters
        assert "headline" in dir(builder)
        with pytest.raises(AttributeError):
            builder.ingredients("flour")

    def test_setters_chain(self) -> None:
        builder = ProfileBuilder.article()
        assert builder.headline("Breaking News").description("Summary") is builder
        assert builder.set("genre", "News") is builder
        assert builder.unset("genre") is builder

    def test_later_set_overwrites(self) -> None:
        builder = ProfileBuilder.article().headline("First").headline("Second")
        assert builder.fields["headline"] == "Second"

    def test_reserved_keys_refused(self) -> None:
        builder = ProfileBuilder.article()
        with pytest.raises(ValueError):
            builder.set("@type", "NewsArticle")
        with pytest.raises(ValueError):
            builder.set("@context", "https://example.com")

    def test_decoration_keys_ignored(self) -> None:
        builder = ProfileBuilder.article().set("additionalType", "https://example.com")
        assert "additionalType" not in builder.fields

    def test_add_creates_list(self) -> None:
        builder = ProfileBuilder.article().add_mention("Python").add_mention({"@type": "Thing", "name": "JSON-LD"})
        assert builder.fields["mentions"] == ["Python", {"@type": "Thing", "name": "JSON-LD"}]

    def test_add_promotes_scalar(self) -> None:
        builder = ProfileBuilder.article().keywords("python").add("keywords", "json-ld")
        assert builder.fields["keywords"] == ["python", "json-ld"]

    def test_none_unsets(self) -> None:
        builder = ProfileBuilder.article().headline("Breaking News").headline(None)
        assert "headline" not in builder.fields

    def test_dates_become_iso_strings(self) -> None:
        moment = datetime(2024, 6, 15, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        for sanitize in (True, False):
            builder = ProfileBuilder.article(sanitize=sanitize).date_published(moment)
            assert builder.fields["datePublished"] == "2024-06-15T09:00:00Z"
        video = ProfileBuilder.video_object().upload_date(date(2024, 6, 15))
        assert video.fields["uploadDate"] == "2024-06-15"

    def test_values_are_sanitized(self) -> None:
        builder = (
            ProfileBuilder.article()
            .headline("  <b>Breaking</b>   News ")
            .url("javascript:alert(1)")
            .word_count(1200)
        )
        assert builder.fields["headline"] == "Breaking News"
        assert "url" not in builder.fields
        assert builder.fields["wordCount"] == 1200

    def test_sanitize_disabled(self) -> None:
        builder = ProfileBuilder.article(sanitize=False).headline("<b>Raw</b>")
        assert builder.fields["headline"] == "<b>Raw</b>"
        assert not builder.sanitizes

    def test_custom_sanitizer(self) -> None:
        calls: list[tuple[str, Any]] = []

        class RecordingSanitizer(InputSanitizer):
            def sanitize_structured_data(self, data: Any, shape: str | None = None) -> dict[str, Any]:
                calls.append(("structured", shape))
                return super().sanitize_structured_data(data, shape)

            def sanitize_url(self, value: Any) -> str | None:
                calls.append(("url", value))
                return super().sanitize_url(value)

        (
            ProfileBuilder("Article", sanitizer=RecordingSanitizer())
            .author({"@type": "Person", "name": "Jane"})
            .image("https://example.com/a.jpg")
        )
        assert ("structured", "Person") in calls
        assert ("url", "https://example.com/a.jpg") in calls

    def test_setters_accept_any_shape(self) -> None:
        builder = ProfileBuilder.article()
        builder.author("Jane Doe")
        assert builder.fields["author"] == "Jane Doe"
        builder.author({"@type": "Person", "name": "Jane Doe"})
        assert builder.fields["author"]["name"] == "Jane Doe"
        builder.author(42)
        assert builder.fields["author"] == 42

    def test_shape_follows_declared_type(self) -> None:
        shapes: list[str | None] = []

        class RecordingSanitizer(InputSanitizer):
            def sanitize_structured_data(self, data: Any, shape: str | None = None) -> dict[str, Any]:
                shapes.append(shape)
                return super().sanitize_structured_data(data, shape)

        builder = ProfileBuilder("Article", sanitizer=RecordingSanitizer())
        builder.author({"@type": "Organization", "name": "Daily Planet"})
        builder.author({"name": "Jane Doe"})
        assert shapes == ["Organization", "Person"]

    def test_positional_shorthand(self) -> None:
        builder = (
            ProfileBuilder.article()
            .author("Jane Doe", "https://example.com/jane")
            .image("https://example.com/a.jpg", 1200, 630, "Cover")
            .publisher("Daily Planet", "https://example.com", "https://example.com/logo.png", 600, 60)
            .about("Urban transport", description="Bike lanes and buses")
            .is_part_of("https://example.com/series/city", "City Desk")
            .speakable([".headline", ".summary"])
            .id("https://example.com/a")
        )
        fields = builder.fields
        assert fields["author"] == {
            "@type": "Person", "name": "Jane Doe", "url": "https://example.com/jane",
        }
        assert fields["image"] == {
            "@type": "ImageObject",
            "url": "https://example.com/a.jpg",
            "width": 1200,
            "height": 630,
            "caption": "Cover",
        }
        assert fields["publisher"]["@type"] == "Organization"
        assert fields["publisher"]["url"] == "https://example.com"
        assert fields["publisher"]["logo"] == {
            "@type": "ImageObject", "url": "https://example.com/logo.png", "width": 600, "height": 60,
        }
        assert fields["about"] == {
            "@type": "Thing", "name": "Urban transport", "description": "Bike lanes and buses",
        }
        assert fields["isPartOf"] == {
            "@type": "CreativeWorkSeries", "url": "https://example.com/series/city", "name": "City Desk",
        }
        assert fields["speakable"] == {
            "@type": "SpeakableSpecification", "cssSelector": [".headline", ".summary"],
        }
        assert fields["@id"] == "https://example.com/a"
        assert "id" in builder.setters

    def test_positional_shorthand_for_places_and_pay(self) -> None:
        business = ProfileBuilder.local_business().geo(47.56, 7.59)
        assert business.fields["geo"] == {"@type": "GeoCoordinates", "latitude": 47.56, "longitude": 7.59}
        assert ProfileBuilder.local_business().geo(120, 7.59).fields["geo"] == {
            "@type": "GeoCoordinates", "longitude": 7.59,
        }

        job = ProfileBuilder.job_posting().base_salary(120000, 150000, "YEAR", currency="CHF")
        assert job.fields["baseSalary"] == {
            "@type": "MonetaryAmount",
            "currency": "CHF",
            "value": {
                "@type": "QuantitativeValue", "minValue": 120000, "maxValue": 150000, "unitText": "YEAR",
            },
        }

    def test_shorthand_needs_a_composer(self) -> None:
        with pytest.raises(TypeError):
            ProfileBuilder.article().headline("Breaking", "News")

    def test_finalize_strict_seo(self, complete_article: ProfileBuilder) -> None:
        doc = complete_article.finalize()
        url = complete_article.profile.profile_url
        assert list(doc)[:2] == ["@context", "@type"]
        assert doc["@context"] == "https://schema.org"
        assert doc["@type"] == "Article"
        assert doc["additionalType"] == url
        assert doc["schemaVersion"] == url
        assert doc["identifier"] == url
        assert "additionalProperty" not in doc

    def test_finalize_missing_required_raises(self) -> None:
        builder = ProfileBuilder.article().headline("Breaking News")
        with pytest.raises(MissingRequiredFields) as exc:
            builder.finalize()
        assert exc.value.fields == ["author", "datePublished"]
        assert not exc.value.result.valid

    def test_finalize_missing_required_degrades(self, caplog: pytest.LogCaptureFixture) -> None:
        builder = ProfileBuilder.article().headline("Breaking News")
        with caplog.at_level(logging.WARNING):
            doc = builder.finalize(throw_on_error=False)
        assert doc["headline"] == "Breaking News"
        assert "missing required fields" in caplog.text

    def test_finalize_without_validation(self) -> None:
        doc = ProfileBuilder.article().build_unsafe()
        assert doc["@type"] == "Article"
        assert ProfileBuilder.article().finalize(validate=False)["@type"] == "Article"

    def test_build_with_warnings(self) -> None:
        outcome = ProfileBuilder.article().headline("Breaking News").build_with_warnings()
        assert isinstance(outcome, BuildOutcome)
        assert not outcome.validation.valid
        assert [i.field for i in outcome.warnings][:2] == ["author", "datePublished"]

    def test_strict_shapes(self, complete_article: ProfileBuilder) -> None:
        complete_article.author(42)
        assert complete_article.finalize()["author"] == 42
        with pytest.raises(InvalidFieldShape) as exc:
            complete_article.finalize(strict_shapes=True)
        assert exc.value.fields == ["author"]

    def test_finalize_returns_independent_snapshot(self, complete_article: ProfileBuilder) -> None:
        doc = complete_article.finalize()
        doc["headline"] = "Changed"
        doc["author"]["name"] = "Someone else"
        assert complete_article.fields["headline"] == "Breaking News"
        assert complete_article.fields["author"]["name"] == "Jane Doe"

    def test_split_channels(self, complete_article: ProfileBuilder) -> None:
        profile = complete_article.profile
        channels = complete_article.finalize("split-channels")
        assert set(channels) == {"primary", "alternate"}
        primary, alternate = channels["primary"], channels["alternate"]
        assert primary["@context"] == "https://schema.org"
        assert alternate["@context"] == [
            "https://schema.org",
            {
                "llmprofiles": "https://llmprofiles.org/vocab#",
                "profile": {
                    "@id": profile.profile_url,
                    "version": profile.version,
                    "category": "content",
                    "optimizedFor": ["google-rich-results", "llm-processing"],
                },
            },
        ]
        property_value = {
            "@type": "PropertyValue",
            "name": "profile",
            "value": profile.profile_url,
        }
        assert primary["additionalProperty"] == property_value
        assert alternate["additionalProperty"] == property_value
        assert primary["headline"] == alternate["headline"] == "Breaking News"
        assert {k: v for k, v in primary.items() if k != "@context"} == {
            k: v for k, v in alternate.items() if k != "@context"
        }

    def test_strict_seo_then_split_channels(self, complete_article: ProfileBuilder) -> None:
        complete_article.finalize()
        channels = complete_article.finalize("split-channels")
        for channel in channels.values():
            for key in ("additionalType", "schemaVersion", "identifier"):
                assert key not in channel
        assert complete_article.mode == OutputMode.STRICT_SEO

    def test_standards_header(self, complete_article: ProfileBuilder) -> None:
        builder = complete_article.with_mode("standards-header")
        doc = builder.finalize()
        assert not set(DECORATION_KEYS) & set(doc)
        assert builder.rel_profile == "https://llmprofiles.org/profiles"
        assert builder.link_header == '<https://llmprofiles.org/profiles>; rel="profile"'
        assert complete_article.link_header is None

    def test_with_mode_copies_fields(self, complete_article: ProfileBuilder) -> None:
        other = complete_article.with_mode("split-channels")
        other.headline("Changed")
        assert complete_article.fields["headline"] == "Breaking News"
        assert other.mode == OutputMode.SPLIT_CHANNELS

    @pytest.mark.parametrize("mode", MODES)
    def test_mode_rebuild_is_idempotent(self, complete_article: ProfileBuilder, mode: str) -> None:
        complete_article.add_mention("Python").word_count(1200)
        first = complete_article.finalize(mode)
        body = first["primary"] if mode == "split-channels" else first
        rebuilt = ProfileBuilder.article().update(strip_generated(body))
        assert rebuilt.finalize(mode) == first
        assert complete_article.finalize(mode) == first

    @pytest.mark.parametrize("profile_type", PROFILE_TYPES)
    @pytest.mark.parametrize("mode", MODES)
    def test_channel_split_invariant(self, registry: ProfileRegistry, profile_type: str, mode: str) -> None:
        profile = registry.lookup(profile_type)
        builder = ProfileBuilder(profile, registry=registry).update(required_fields(profile))
        output = builder.finalize(mode)
        if mode == "split-channels":
            assert set(output) == {"primary", "alternate"}
        else:
            assert "primary" not in output and "alternate" not in output
            assert output["@type"] == profile.schema_type_name

    def test_validate_and_state_summary(self, complete_article: ProfileBuilder) -> None:
        assert complete_article.is_valid()
        assert complete_article.missing_required() == []
        summary = complete_article.state_summary()
        assert summary["profileType"] == "Article"
        assert summary["mode"] == "strict-seo"
        assert summary["fieldsSet"] == ["headline", "author", "datePublished"]
        assert summary["valid"] is True
        assert ProfileBuilder.article().missing_required() == ["headline", "author", "datePublished"]

    def test_document_has_no_decoration(self, complete_article: ProfileBuilder) -> None:
        assert not set(DECORATION_KEYS) & set(complete_article.document)

    def test_hints(self) -> None:
        labels = [h.label for h in ProfileBuilder.article().hints("date")]
        assert labels == ["datePublished", "dateModified"]


# ===========================================================================
# Field metadata
# ===========================================================================


class TestFieldMetadata:
    """Tests for field metadata and completion hints."""

    def test_required_field(self, article: ProfileDefinition) -> None:
        meta = field_metadata(article, "headline")
        assert meta.importance == FieldImportance.REQUIRED
        assert meta.category == FieldCategory.CONTENT
        assert meta.google_rich_results
        assert meta.llm_optimized
        assert meta.guidance.severity == "error"
        assert meta.description == "The main headline or title of the article"

    def test_recommended_guidance(self, article: ProfileDefinition) -> None:
        meta = field_metadata(article, "description")
        assert meta.guidance.message.endswith("Descriptions improve search result snippets")

    def test_unknown_field(self, article: ProfileDefinition) -> None:
        assert field_metadata(article, "nonexistent") is None

    def test_completion_hints_order(self, article: ProfileDefinition) -> None:
        hints = completion_hints(article)
        assert [h.label for h in hints[:3]] == ["author", "datePublished", "headline"]
        assert hints[0].detail == "required - string | object"


# ===========================================================================
# Sanitizer
# ===========================================================================


class TestSanitizer:
    """Tests for the default InputSanitizer."""

    def setup_method(self) -> None:
        self.s = InputSanitizer()

    def test_string(self) -> None:
        assert self.s.sanitize_string("  <b>Hello</b>   world ") == "Hello world"
        assert self.s.sanitize_string("a<script>alert(1)</script>b") == "ab"
        assert self.s.sanitize_string("Tom & Jerry") == "Tom &amp; Jerry"
        assert self.s.sanitize_string(None) == ""

    def test_string_keeps_comparison_operators(self) -> None:
        assert self.s.sanitize_string("Scores: 5 < 6 and 7 > 3 overall") == (
            "Scores: 5 &lt; 6 and 7 &gt; 3 overall"
        )
        assert self.s.sanitize_string("<p>1 < 2</p><style>p {}</style>") == "1 &lt; 2"

    def test_escaped_markup_is_idempotent(self) -> None:
        once = self.s.sanitize_string("Use &lt;b&gt; for 5 < 6")
        assert once == "Use &lt;b&gt; for 5 &lt; 6"
        assert self.s.sanitize_string(once) == once

    def test_nested_shape_prefers_declared_type(self) -> None:
        cleaned = self.s.sanitize_structured_data({
            "position": {"@type": "GeoCoordinates", "latitude": 120, "longitude": 7.5},
            "geo": {"latitude": -95, "longitude": 7.5},
        })
        assert cleaned["position"] == {"@type": "GeoCoordinates", "longitude": 7.5}
        assert cleaned["geo"] == {"longitude": 7.5}

    def test_string_is_idempotent(self) -> None:
        once = self.s.sanitize_string("Fish & \"Chips\"")
        assert self.s.sanitize_string(once) == once

    def test_url(self) -> None:
        assert self.s.sanitize_url("https://example.com/a?b=1&c=2") == "https://example.com/a?b=1&c=2"
        assert self.s.sanitize_url("mailto:team@example.com") == "mailto:team@example.com"
        assert self.s.sanitize_url("javascript:alert(1)") is None
        assert self.s.sanitize_url("ftp://example.com") is None
        assert self.s.sanitize_url("https://") is None
        assert self.s.sanitize_url("not a url") is None
        assert self.s.sanitize_url(42) is None

    def test_date_preserves_precision(self) -> None:
        assert self.s.sanitize_date("2024-06-15") == "2024-06-15"
        assert self.s.sanitize_date("2024-06-15T11:00:00+02:00") == "2024-06-15T09:00:00Z"
        assert self.s.sanitize_date("2024-06-15T09:00:00Z") == "2024-06-15T09:00:00Z"
        assert self.s.sanitize_date(datetime(2024, 6, 15, 9, 0)) == "2024-06-15T09:00:00Z"
        assert self.s.sanitize_date(datetime(2024, 6, 15, 9, 0, 0, 250000)) == "2024-06-15T09:00:00.250Z"

    def test_date_rejects(self) -> None:
        assert self.s.sanitize_date("1850-01-01") is None
        assert self.s.sanitize_date("2024-02-30") is None
        assert self.s.sanitize_date("next tuesday") is None
        assert self.s.sanitize_date(20240615) is None

    def test_number(self) -> None:
        assert self.s.sanitize_number("42") == 42
        assert self.s.sanitize_number("3.5") == 3.5
        assert self.s.sanitize_number(5, minimum=1, maximum=10) == 5
        assert self.s.sanitize_number(0, minimum=1) is None
        assert self.s.sanitize_number(float("inf")) is None
        assert self.s.sanitize_number(True) is None
        assert self.s.sanitize_number("abc") is None
        assert self.s.sanitize_number(19.999, decimals=2) == 20.0

    def test_contact_fields(self) -> None:
        assert self.s.sanitize_email(" Team@Example.com ") == "team@example.com"
        assert self.s.sanitize_email("nope") is None
        assert self.s.sanitize_phone("+1 (555) 010-0000") == "+1 (555) 010-0000"
        assert self.s.sanitize_phone("call me") is None
        assert self.s.sanitize_language_code("en-US") == "en-US"
        assert self.s.sanitize_language_code("english please") is None
        assert self.s.sanitize_sku("AB-123_x") == "AB-123_x"
        assert self.s.sanitize_sku("AB 123") is None

    def test_structured_data(self) -> None:
        cleaned = self.s.sanitize_structured_data({
            "@type": "Organization",
            "name": "<i>Acme</i>",
            "url": "javascript:void(0)",
            "logo": "https://example.com/logo.png",
            "address": {"@type": "PostalAddress", "streetAddress": " 1 Main   St "},
            "geo": {"@type": "GeoCoordinates", "latitude": 100, "longitude": 8.5},
            "foundingDate": "2001-02-03",
            "keywords": ["a", "<b></b>", "c"],
        }, "Organization")
        assert cleaned["@type"] == "Organization"
        assert cleaned["name"] == "Acme"
        assert "url" not in cleaned
        assert cleaned["logo"] == "https://example.com/logo.png"
        assert cleaned["address"]["streetAddress"] == "1 Main St"
        assert cleaned["geo"] == {"@type": "GeoCoordinates", "longitude": 8.5}
        assert cleaned["keywords"] == ["a", "c"]

    def test_structured_data_requires_mapping(self) -> None:
        assert self.s.sanitize_structured_data("Acme") == {}


# ===========================================================================
# Settings
# ===========================================================================


class TestSettings:
    """Tests for EngineSettings."""

    def test_defaults(self) -> None:
        settings = EngineSettings()
        assert settings.default_mode == OutputMode.STRICT_SEO
        assert settings.sanitize_inputs
        assert settings.max_suggestions == 5
        assert settings.profiles_dir is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_PROFILES_DEFAULT_MODE", "split-channels")
        monkeypatch.setenv("LLM_PROFILES_MAX_SUGGESTIONS", "2")
        monkeypatch.setenv("LLM_PROFILES_SANITIZE_INPUTS", "false")
        settings = EngineSettings()
        assert settings.default_mode == OutputMode.SPLIT_CHANNELS
        assert settings.max_suggestions == 2
        assert not settings.sanitize_inputs

    def test_invalid_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_PROFILES_DEFAULT_MODE", "fancy")
        with pytest.raises(ValidationError):
            EngineSettings()

    def test_builder_uses_settings(self) -> None:
        settings = EngineSettings(
            default_mode="split-channels",
            validate_on_finalize=False,
            max_suggestions=1,
        )
        builder = ProfileBuilder.event(settings=settings)
        assert builder.mode == OutputMode.SPLIT_CHANNELS
        assert set(builder.finalize()) == {"primary", "alternate"}
        assert len(builder.validate().suggestions) <= 1

    def test_custom_context(self, complete_article: ProfileBuilder) -> None:
        settings = EngineSettings(vocabulary_context="http://schema.org")
        builder = ProfileBuilder("Article", settings=settings).update(complete_article.fields)
        assert builder.finalize()["@context"] == "http://schema.org"


# ===========================================================================
# CLI
# ===========================================================================


class TestCLI:
    """Tests for the llm-profiles command line."""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    @pytest.fixture(autouse=True)
    def wide_console(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli_main, "console", Console(width=200))

    def test_profiles(self) -> None:
        result = self.runner.invoke(cli, ["profiles"])
        assert result.exit_code == 0
        assert "Article" in result.output

    def test_profiles_by_category(self) -> None:
        result = self.runner.invoke(cli, ["profiles", "--category", "business"])
        assert result.exit_code == 0
        assert "JobPosting" in result.output
        assert "Recipe" not in result.output

    def test_show(self) -> None:
        result = self.runner.invoke(cli, ["show", "Article"])
        assert result.exit_code == 0
        assert "headline" in result.output

    def test_show_unknown(self) -> None:
        assert self.runner.invoke(cli, ["show", "Spaceship"]).exit_code == 2

    def test_validate_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text(json.dumps({
            "@type": "Event", "name": "Tech Talk",
            "startDate": "2024-06-15T09:00:00Z", "location": "Hall A",
        }), encoding="utf-8")
        result = self.runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_validate_invalid_json_output(self, tmp_path: Path) -> None:
        path = tmp_path / "article.json"
        path.write_text(json.dumps({"headline": "Breaking News"}), encoding="utf-8")
        result = self.runner.invoke(cli, ["validate", str(path), "--type", "Article", "--json-output"])
        assert result.exit_code == 1
        report = json.loads(result.output)
        assert report["summary"]["invalid"] == 1
        assert [e["field"] for e in report["results"][0]["errors"]] == ["author", "datePublished"]

    def test_validate_strict(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text(json.dumps({
            "@type": "Event", "name": "Tech Talk",
            "startDate": "2024-06-15T09:00:00Z", "location": "Hall A",
        }), encoding="utf-8")
        assert self.runner.invoke(cli, ["validate", str(path), "--strict"]).exit_code == 1

    def test_build(self, tmp_path: Path) -> None:
        fields = tmp_path / "fields.json"
        fields.write_text(json.dumps({
            "name": "Tech Talk", "startDate": "2024-06-15T09:00:00Z", "location": "Hall A",
        }), encoding="utf-8")
        out = tmp_path / "event.jsonld"
        result = self.runner.invoke(
            cli, ["build", str(fields), "--type", "Event", "--mode", "split-channels", "-o", str(out)]
        )
        assert result.exit_code == 0
        channels = json.loads(out.read_text(encoding="utf-8"))
        assert set(channels) == {"primary", "alternate"}
        assert channels["primary"]["name"] == "Tech Talk"

    def test_build_missing_required(self, tmp_path: Path) -> None:
        fields = tmp_path / "fields.json"
        fields.write_text(json.dumps({"headline": "Breaking News"}), encoding="utf-8")
        out = tmp_path / "article.jsonld"
        assert self.runner.invoke(cli, ["build", str(fields), "--type", "Article", "-o", str(out)]).exit_code == 1
        assert not out.exists()
        result = self.runner.invoke(
            cli, ["build", str(fields), "--type", "Article", "--warn-only", "-o", str(out)]
        )
        assert result.exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8"))["headline"] == "Breaking News"

    def test_version(self) -> None:
        result = self.runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "llm-profiles" in result.output


# ===========================================================================
# Entry point
# ===========================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
