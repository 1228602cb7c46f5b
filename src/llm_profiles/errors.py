"""
Error Taxonomy
===============
Exceptions raised by the profile engine.

Configuration errors (unknown profile type, unknown mode) are fatal and are
never worth retrying. ``MissingRequiredFields`` and ``InvalidFieldShape`` are
only raised by ``ProfileBuilder.finalize`` when the caller asks for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .validator.scoring import ValidationIssue, ValidationResult


class ProfileError(Exception):
    """Base class for all llm-profiles errors."""


class ConfigurationError(ProfileError):
    """The engine was asked for something that is not configured."""


class UnknownProfileType(ConfigurationError, LookupError):
    """Registry lookup for a profile type that does not exist."""

    def __init__(self, type_name: str, known: list[str] | None = None) -> None:
        self.type_name = type_name
        self.known = known or []
        msg = f"Unknown profile type: {type_name!r}"
        if self.known:
            msg += f". Known types: {', '.join(self.known)}"
        super().__init__(msg)


class UnknownMode(ConfigurationError, ValueError):
    """An output mode outside the three fixed modes."""

    def __init__(self, mode: Any, valid: list[str]) -> None:
        self.mode = mode
        super().__init__(f"Invalid mode: {mode!r}. Valid modes are: {', '.join(valid)}")


class MissingRequiredFields(ProfileError):
    """finalize() was asked to validate and required fields are absent."""

    def __init__(self, fields: list[str], result: "ValidationResult | None" = None) -> None:
        self.fields = fields
        self.result = result
        super().__init__(
            f"Missing required fields: {', '.join(fields)}. "
            "Use validate() for detailed validation results."
        )


class InvalidFieldShape(ProfileError):
    """One or more present fields satisfy none of their declared rule shapes."""

    def __init__(self, issues: "list[ValidationIssue]") -> None:
        self.issues = issues
        self.fields = [i.field for i in issues]
        detail = "; ".join(f"{i.field}: {i.reason}" for i in issues)
        super().__init__(f"Invalid field shape(s) – {detail}")
