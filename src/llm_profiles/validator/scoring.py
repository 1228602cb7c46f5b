"""
Validation & Scoring Engine
============================
Walks a document against its ProfileDefinition and reports what is missing,
how complete the document is, and which present values have the wrong shape.

Missing fields are bucketed by importance:

- ``critical``   – a required field (error; makes the document invalid)
- ``important``  – a recommended field that search engines use for rich results
- ``helpful``    – any other recommended field
- ``suggestion`` – an optional field, capped to a few entries

Present values that satisfy none of their field's rule shapes become
``invalid-shape`` warnings. They never affect ``valid`` or the scores.

Example::

    from llm_profiles.validator.scoring import ProfileValidator

    result = ProfileValidator().validate({"headline": "Breaking News"}, "Article")
    print(result)                       # [INVALID] Article – 5/100 (incomplete), ...
    for issue in result.errors:
        print(f"{issue.field}: {issue.reason}")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import get_settings
from ..models.profile import UNSCORED_KEYS, FieldImportance, ProfileDefinition
from ..profiles.registry import ProfileRegistry, default_registry
from .rules import explain


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class IssueBucket(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    HELPFUL = "helpful"
    SUGGESTION = "suggestion"
    INVALID_SHAPE = "invalid-shape"


@dataclass
class ValidationIssue:
    field: str
    reason: str
    severity: Severity
    importance: IssueBucket

    def to_dict(self) -> dict[str, str]:
        data = {"field": self.field, "reason": self.reason}
        if self.severity == Severity.WARNING:
            data["importance"] = self.importance.value
        return data


@dataclass
class Scores:
    """Completion percentages, each an integer in 0..100."""
    overall: int
    required: int
    recommended: int
    optional: int

    def to_dict(self) -> dict[str, int]:
        return {
            "overall": self.overall,
            "required": self.required,
            "recommended": self.recommended,
            "optional": self.optional,
        }


@dataclass
class Coverage:
    """Presence of an importance list (``googleRichResults`` or ``llmOptimized``)."""
    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing

    @property
    def percent(self) -> int:
        return percentage(len(self.present), len(self.present) + len(self.missing))

    def to_dict(self) -> dict[str, Any]:
        return {
            "complete": self.complete,
            "coverage": self.percent,
            "present": list(self.present),
            "missing": list(self.missing),
        }


@dataclass
class ValidationResult:
    """Result of validating one document against one profile."""
    valid: bool
    profile_type: str
    scores: Scores
    issues: list[ValidationIssue] = field(default_factory=list)
    search_coverage: Coverage = field(default_factory=Coverage)
    llm_coverage: Coverage = field(default_factory=Coverage)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def suggestions(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def shape_issues(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.importance == IssueBucket.INVALID_SHAPE]

    @property
    def missing_required(self) -> list[str]:
        return [i.field for i in self.errors]

    def bucket(self, importance: IssueBucket) -> list[str]:
        return [i.field for i in self.issues if i.importance == importance]

    @property
    def status(self) -> str:
        """complete / good / fair / incomplete, from the overall score."""
        if self.scores.overall >= 100:
            return "complete"
        if self.scores.overall >= 80:
            return "good"
        if self.scores.overall >= 60:
            return "fair"
        return "incomplete"

    def next_steps(self) -> list[str]:
        steps = []
        critical = self.bucket(IssueBucket.CRITICAL)
        important = self.bucket(IssueBucket.IMPORTANT)
        helpful = self.bucket(IssueBucket.HELPFUL)
        invalid = self.bucket(IssueBucket.INVALID_SHAPE)
        if critical:
            steps.append(f"Add required fields: {', '.join(critical)}")
        if invalid:
            steps.append(f"Fix invalid values: {', '.join(invalid)}")
        if important:
            steps.append(f"Add Google Rich Results fields: {', '.join(important)}")
        if helpful:
            steps.append(f"Consider adding recommended fields: {', '.join(helpful[:3])}")
        if not steps:
            steps.append("All required and recommended fields are present")
        return steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "profileType": self.profile_type,
            "status": self.status,
            "scores": self.scores.to_dict(),
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "suggestions": [i.to_dict() for i in self.suggestions],
            "googleRichResults": self.search_coverage.to_dict(),
            "llmOptimization": self.llm_coverage.to_dict(),
        }

    def __str__(self) -> str:
        status = "VALID" if self.valid else "INVALID"
        return (
            f"[{status}] {self.profile_type} – {self.scores.overall}/100 "
            f"({self.status}), {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)"
        )


@dataclass
class BatchValidation:
    results: list[ValidationResult]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def valid(self) -> int:
        return sum(1 for r in self.results if r.valid)

    @property
    def invalid(self) -> int:
        return self.total - self.valid

    @property
    def with_warnings(self) -> int:
        return sum(1 for r in self.results if r.warnings)

    @property
    def search_compliant(self) -> int:
        return sum(1 for r in self.results if r.search_coverage.complete)

    @property
    def llm_optimized(self) -> int:
        return sum(1 for r in self.results if r.llm_coverage.complete)

    def summary(self) -> dict[str, int]:
        return {
            "total": self.total,
            "valid": self.valid,
            "invalid": self.invalid,
            "withWarnings": self.with_warnings,
            "googleCompliant": self.search_compliant,
            "llmOptimized": self.llm_optimized,
        }

    def __str__(self) -> str:
        return f"{self.valid}/{self.total} valid, {self.with_warnings} with warnings"


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def percentage(present: int, total: int) -> int:
    """100 × present / total, rounded half up; an empty set counts as complete."""
    if total == 0:
        return 100
    return int(100 * present / total + 0.5)


def is_present(document: Mapping[str, Any], name: str) -> bool:
    value = document.get(name)
    return value is not None and value != ""


def _reason_missing(profile: ProfileDefinition, name: str, importance: FieldImportance) -> str:
    if importance == FieldImportance.REQUIRED:
        return "Required field missing"
    if importance == FieldImportance.RECOMMENDED:
        if profile.is_search_critical(name):
            return "Recommended for Google Rich Results"
        return "Recommended for better SEO"
    return "Optional enhancement"


def _coverage(document: Mapping[str, Any], names: Iterable[str]) -> Coverage:
    coverage = Coverage()
    for name in names:
        (coverage.present if is_present(document, name) else coverage.missing).append(name)
    return coverage


def _type_issue(document: Mapping[str, Any], profile: ProfileDefinition) -> ValidationIssue | None:
    declared = document.get("@type")
    if declared is None:
        return None
    accepted = {profile.type, profile.schema_type_name}
    values = declared if isinstance(declared, (list, tuple)) else [declared]
    if any(isinstance(v, str) and v in accepted for v in values):
        return None
    return ValidationIssue(
        "@type",
        f"expected {profile.schema_type_name!r}, got {declared!r}",
        Severity.WARNING,
        IssueBucket.INVALID_SHAPE,
    )


def validate_document(
    document: Mapping[str, Any],
    profile: ProfileDefinition,
    max_suggestions: int = 5,
) -> ValidationResult:
    """
    Score ``document`` against ``profile``.

    Pure function of its inputs: adding a missing required or recommended
    field never lowers any score.
    """
    issues: list[ValidationIssue] = []
    counts: dict[FieldImportance, tuple[int, int]] = {}
    suggestions = 0

    for importance in FieldImportance:
        names = [n for n in profile.fields(importance) if n not in UNSCORED_KEYS]
        present = 0
        for name in names:
            if is_present(document, name):
                present += 1
                reason = explain(document[name], profile.rules(importance)[name])
                if reason is not None:
                    issues.append(ValidationIssue(
                        name, reason, Severity.WARNING, IssueBucket.INVALID_SHAPE
                    ))
                continue

            reason = _reason_missing(profile, name, importance)
            if importance == FieldImportance.REQUIRED:
                issues.append(ValidationIssue(name, reason, Severity.ERROR, IssueBucket.CRITICAL))
            elif importance == FieldImportance.RECOMMENDED:
                bucket = (
                    IssueBucket.IMPORTANT if profile.is_search_critical(name)
                    else IssueBucket.HELPFUL
                )
                issues.append(ValidationIssue(name, reason, Severity.WARNING, bucket))
            elif suggestions < max_suggestions:
                suggestions += 1
                issues.append(ValidationIssue(name, reason, Severity.INFO, IssueBucket.SUGGESTION))
        counts[importance] = (present, len(names))

    type_issue = _type_issue(document, profile)
    if type_issue is not None:
        issues.append(type_issue)

    req_present, req_total = counts[FieldImportance.REQUIRED]
    rec_present, rec_total = counts[FieldImportance.RECOMMENDED]
    opt_present, opt_total = counts[FieldImportance.OPTIONAL]
    scores = Scores(
        overall=percentage(req_present + rec_present, req_total + rec_total),
        required=percentage(req_present, req_total),
        recommended=percentage(rec_present, rec_total),
        optional=percentage(opt_present, opt_total),
    )

    return ValidationResult(
        valid=req_present == req_total,
        profile_type=profile.type,
        scores=scores,
        issues=issues,
        search_coverage=_coverage(document, profile.google_rich_results),
        llm_coverage=_coverage(document, profile.llm_optimized),
    )


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class ProfileValidator:
    """
    Validates documents by profile name.

    A split-channel output (``{"primary": ..., "alternate": ...}``) is
    validated through its primary channel.
    """

    def __init__(
        self,
        registry: ProfileRegistry | None = None,
        max_suggestions: int | None = None,
    ) -> None:
        if registry is None or max_suggestions is None:
            settings = get_settings()
            if registry is None:
                registry = default_registry(settings.profiles_dir)
            if max_suggestions is None:
                max_suggestions = settings.max_suggestions
        self.registry = registry
        self.max_suggestions = max_suggestions

    def validate(
        self,
        document: Mapping[str, Any],
        profile_type: str | ProfileDefinition | None = None,
    ) -> ValidationResult:
        """Validate ``document``; the profile defaults to the document's ``@type``."""
        document = unwrap_channels(document)
        profile = self._resolve(document, profile_type)
        return validate_document(document, profile, self.max_suggestions)

    def validate_batch(
        self,
        documents: Iterable[Mapping[str, Any]],
        profile_type: str | ProfileDefinition | None = None,
    ) -> BatchValidation:
        """Validate many documents and return the results with a summary."""
        return BatchValidation([self.validate(d, profile_type) for d in documents])

    def _resolve(
        self,
        document: Mapping[str, Any],
        profile_type: str | ProfileDefinition | None,
    ) -> ProfileDefinition:
        if isinstance(profile_type, ProfileDefinition):
            return profile_type
        if profile_type is None:
            declared = document.get("@type")
            if isinstance(declared, (list, tuple)) and declared:
                declared = declared[0]
            if not isinstance(declared, str):
                raise ValueError("Document has no @type; pass profile_type explicitly")
            profile_type = declared
        return self.registry.lookup(profile_type)


def unwrap_channels(document: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the primary channel of a split output, or ``document`` unchanged."""
    if set(document) == {"primary", "alternate"} and isinstance(document["primary"], Mapping):
        return document["primary"]
    return document
