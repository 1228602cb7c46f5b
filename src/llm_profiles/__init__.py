"""
llm-profiles – Profile-driven JSON-LD metadata
================================================
Builds and validates Schema.org-style JSON-LD documents for a fixed set of
profiles (Article, Event, JobPosting, Recipe, ...). Each profile declares
required, recommended and optional fields; documents are assembled through a
fluent builder and rendered under one of three output modes.

Quick Start::

    from llm_profiles import ProfileBuilder, ProfileValidator

    builder = (
        ProfileBuilder.event(mode="split-channels")
        .name("Tech Talk")
        .start_date("2024-06-15T09:00:00Z")
        .location({"@type": "Place", "name": "Hall A"})
    )

    channels = builder.finalize()
    channels["primary"]      # clean Schema.org document
    channels["alternate"]    # same data plus profile metadata

    # Re-render under another mode without touching the builder
    doc = builder.finalize("strict-seo")

    # Score an existing document
    result = ProfileValidator().validate(doc)
    print(result)            # [VALID] Event – ...
    for step in result.next_steps():
        print(step)
"""

__version__ = "0.1.0"

# Models
from .models.profile import (
    AnyOfRule,
    ConstRule,
    FieldImportance,
    FieldRule,
    PrimitiveRule,
    PrimitiveType,
    ProfileCategory,
    ProfileDefinition,
    RuleFormat,
)
from .models.modes import (
    ModeCapabilities,
    OutputMode,
    capabilities,
    link_header,
    rel_profile,
)

# Registry
from .profiles.registry import ProfileRegistry, default_registry
from .profiles.metadata import FieldMetadata, completion_hints, field_metadata

# Evaluation & scoring
from .validator.rules import satisfies
from .validator.scoring import (
    BatchValidation,
    IssueBucket,
    ProfileValidator,
    Severity,
    ValidationIssue,
    ValidationResult,
    validate_document,
)

# Builder
from .builder.profile_builder import BuildOutcome, ProfileBuilder
from .sanitize.sanitizer import InputSanitizer, Sanitizer, SanitizerConfig

# Configuration & errors
from .config import EngineSettings, get_settings
from .errors import (
    ConfigurationError,
    InvalidFieldShape,
    MissingRequiredFields,
    ProfileError,
    UnknownMode,
    UnknownProfileType,
)

__all__ = [
    # Models
    "AnyOfRule",
    "ConstRule",
    "FieldImportance",
    "FieldRule",
    "PrimitiveRule",
    "PrimitiveType",
    "ProfileCategory",
    "ProfileDefinition",
    "RuleFormat",
    "ModeCapabilities",
    "OutputMode",
    "capabilities",
    "link_header",
    "rel_profile",
    # Registry
    "ProfileRegistry",
    "default_registry",
    "FieldMetadata",
    "completion_hints",
    "field_metadata",
    # Validation
    "satisfies",
    "BatchValidation",
    "IssueBucket",
    "ProfileValidator",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "validate_document",
    # Builder
    "BuildOutcome",
    "ProfileBuilder",
    "InputSanitizer",
    "Sanitizer",
    "SanitizerConfig",
    # Configuration & errors
    "EngineSettings",
    "get_settings",
    "ConfigurationError",
    "InvalidFieldShape",
    "MissingRequiredFields",
    "ProfileError",
    "UnknownMode",
    "UnknownProfileType",
]
