"""Engine configuration, read from ``LLM_PROFILES_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.modes import OutputMode


class EngineSettings(BaseSettings):
    """Defaults used by builders, validators and the CLI."""
    model_config = SettingsConfigDict(
        env_prefix="LLM_PROFILES_",
        case_sensitive=False,
    )

    default_mode: OutputMode = OutputMode.STRICT_SEO
    sanitize_inputs: bool = True
    validate_on_finalize: bool = True
    throw_on_error: bool = True
    max_suggestions: int = Field(5, ge=0, description="Cap on optional-field suggestions")
    profiles_dir: Path | None = Field(
        None,
        description="Directory of profile JSON records; the bundled set when unset",
    )
    vocabulary_context: str = "https://schema.org"
    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return EngineSettings()
