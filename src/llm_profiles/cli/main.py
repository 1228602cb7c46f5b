"""
llm-profiles CLI
=================
Command-line interface for the llm-profiles library.

Commands:
    profiles    List the available profiles
    show        Show the fields of one profile
    validate    Validate JSON-LD documents against their profile
    build       Build a document from a JSON field map
    version     Show version information

Usage::

    llm-profiles profiles --category content
    llm-profiles show JobPosting
    llm-profiles validate article.json --strict
    llm-profiles build fields.json --type Event --mode split-channels -o event.jsonld
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..builder.profile_builder import ProfileBuilder
from ..config import get_settings
from ..errors import ConfigurationError, InvalidFieldShape, MissingRequiredFields
from ..models.modes import OutputMode
from ..models.profile import FieldImportance, ProfileCategory
from ..profiles.metadata import all_fields_metadata
from ..profiles.registry import default_registry
from ..validator.scoring import ProfileValidator, Severity, ValidationResult

console = Console()
err_console = Console(stderr=True)

_SEVERITY_COLORS = {Severity.ERROR: "red", Severity.WARNING: "yellow", Severity.INFO: "blue"}


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path.name} is not valid JSON: {e}") from e


@click.group()
@click.version_option(version=__version__, prog_name="llm-profiles")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: LLM_PROFILES_LOG_LEVEL or WARNING)",
)
def cli(log_level: str | None) -> None:
    """
    llm-profiles – profile-driven JSON-LD metadata.

    Build and validate Schema.org documents for Article, Event, JobPosting
    and the other bundled profiles.
    """
    logging.basicConfig(
        level=(log_level or get_settings().log_level).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# profiles / show
# ---------------------------------------------------------------------------


@cli.command("profiles")
@click.option(
    "--category",
    type=click.Choice([c.value for c in ProfileCategory]),
    default=None,
    help="Only list profiles of this category",
)
def list_profiles(category: str | None) -> None:
    """List the available profiles."""
    registry = default_registry(get_settings().profiles_dir)
    profiles = registry.by_category(category) if category else list(registry)

    t = Table(title="Profiles", box=box.ROUNDED)
    t.add_column("Type", style="cyan")
    t.add_column("Category")
    t.add_column("Schema type")
    t.add_column("Required", justify="right")
    t.add_column("Recommended", justify="right")
    t.add_column("Optional", justify="right")
    for p in profiles:
        t.add_row(
            p.type,
            p.category.value,
            p.schema_type_name,
            str(len(p.required)),
            str(len(p.recommended)),
            str(len(p.optional)),
        )
    console.print(t)


@cli.command()
@click.argument("profile_type")
def show(profile_type: str) -> None:
    """Show the fields of PROFILE_TYPE by importance."""
    try:
        profile = default_registry(get_settings().profiles_dir).lookup(profile_type)
    except ConfigurationError as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(2)

    console.print(Panel(
        f"[bold]{profile.type}[/bold] ({profile.category.value})\n"
        f"{profile.description}\n\n"
        f"Schema type: {profile.schema_type}\n"
        f"Profile:     {profile.profile_url}",
        title="Profile",
        border_style="cyan",
    ))

    t = Table(box=box.SIMPLE)
    t.add_column("Field", style="cyan")
    t.add_column("Importance")
    t.add_column("Shape")
    t.add_column("Rich results", justify="center")
    t.add_column("LLM", justify="center")
    colors = {
        FieldImportance.REQUIRED: "red",
        FieldImportance.RECOMMENDED: "yellow",
        FieldImportance.OPTIONAL: "dim",
    }
    for importance, group in all_fields_metadata(profile).items():
        color = colors[importance]
        for meta in group:
            t.add_row(
                meta.name,
                f"[{color}]{importance.value}[/{color}]",
                meta.shape,
                "✓" if meta.google_rich_results else "—",
                "✓" if meta.llm_optimized else "—",
            )
    console.print(t)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


def _print_result(label: str, result: ValidationResult) -> None:
    status_str = "[bold green]VALID[/bold green]" if result.valid else "[bold red]INVALID[/bold red]"
    s = result.scores
    console.print(Panel(
        f"[bold]{label}[/bold] – {result.profile_type}\n"
        f"Status: {status_str}  |  Overall: {s.overall}/100 ({result.status})  |  "
        f"Required: {s.required}  Recommended: {s.recommended}  Optional: {s.optional}\n"
        f"Rich results: {result.search_coverage.percent}%  |  "
        f"LLM: {result.llm_coverage.percent}%",
        title="llm-profiles Validation",
        border_style="blue",
    ))
    for issue in result.issues:
        color = _SEVERITY_COLORS[issue.severity]
        console.print(
            f"  [{color}]{issue.severity.value}[/{color}] "
            + escape(f"[{issue.importance.value}] {issue.field}: {issue.reason}")
        )
    if not result.valid or result.warnings:
        console.print("\n[bold]Next steps:[/bold]")
        for step in result.next_steps():
            console.print(f"  • {step}")
    console.print()


@cli.command()
@click.argument("json_path", type=click.Path(exists=True, path_type=Path))
@click.option("--type", "profile_type", default=None, help="Profile type (default: the document's @type)")
@click.option("--strict", is_flag=True, help="Exit with code 1 if any warnings")
@click.option("--json-output", is_flag=True, help="Output results as JSON")
def validate(json_path: Path, profile_type: str | None, strict: bool, json_output: bool) -> None:
    """Validate one document, or a JSON array of documents."""
    data = _load_json(json_path)
    documents = data if isinstance(data, list) else [data]
    if not all(isinstance(d, dict) for d in documents):
        raise click.BadParameter(f"{json_path.name} must contain a JSON object or an array of objects")
    validator = ProfileValidator()

    try:
        batch = validator.validate_batch(documents, profile_type)
    except (ConfigurationError, ValueError) as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(2)

    if json_output:
        output: dict[str, Any] = {
            "file": str(json_path),
            "summary": batch.summary(),
            "results": [r.to_dict() for r in batch.results],
        }
        click.echo(json.dumps(output, indent=2))
    else:
        console.print()
        for i, result in enumerate(batch.results, 1):
            label = json_path.name if batch.total == 1 else f"{json_path.name} #{i}"
            _print_result(label, result)
        if batch.total > 1:
            console.print(f"[bold]Summary:[/bold] {batch}")

    exit_code = 0
    if batch.invalid:
        exit_code = 1
    elif strict and batch.with_warnings:
        exit_code = 1
    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# build
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("json_path", type=click.Path(exists=True, path_type=Path))
@click.option("--type", "profile_type", required=True, help="Profile type, e.g. Article")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in OutputMode]),
    default=None,
    help="Output mode (default: LLM_PROFILES_DEFAULT_MODE or strict-seo)",
)
@click.option("--no-sanitize", is_flag=True, help="Store values exactly as given")
@click.option("--no-validate", is_flag=True, help="Skip the required-field check")
@click.option("--warn-only", is_flag=True, help="Report missing required fields instead of failing")
@click.option("--strict-shapes", is_flag=True, help="Fail on values that match none of their field's shapes")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Output path (default: stdout)")
def build(
    json_path: Path,
    profile_type: str,
    mode: str | None,
    no_sanitize: bool,
    no_validate: bool,
    warn_only: bool,
    strict_shapes: bool,
    output: Path | None,
) -> None:
    """Build a document from a JSON object of field values."""
    fields = _load_json(json_path)
    if not isinstance(fields, dict):
        raise click.BadParameter(f"{json_path.name} must contain a JSON object")

    try:
        builder = ProfileBuilder(profile_type, mode=mode, sanitize=not no_sanitize)
        outcome = builder.update(fields).finalize_with_report(
            validate=not no_validate,
            throw_on_error=not warn_only,
            strict_shapes=strict_shapes,
        )
    except ConfigurationError as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(2)
    except (MissingRequiredFields, InvalidFieldShape) as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    text = json.dumps(outcome.output, indent=2, ensure_ascii=False)
    if output:
        output.write_text(text + "\n", encoding="utf-8")
        err_console.print(f"[green]✓[/green] {builder.profile.type} written to [bold]{output}[/bold]")
    else:
        click.echo(text)

    for issue in outcome.warnings:
        err_console.print(
            f"  [yellow]{issue.importance.value}[/yellow] " + escape(f"{issue.field}: {issue.reason}")
        )
    if builder.link_header:
        err_console.print(f"  Link: {builder.link_header}")


# ---------------------------------------------------------------------------
# version info
# ---------------------------------------------------------------------------


@cli.command("version")
def show_version() -> None:
    """Show version and configuration information."""
    settings = get_settings()
    registry = default_registry(settings.profiles_dir)
    console.print(Panel(
        f"[bold cyan]llm-profiles[/bold cyan] v{__version__}\n\n"
        "Profile-driven JSON-LD metadata for search engines and LLMs\n\n"
        f"Profiles:      {len(registry)} ({settings.profiles_dir or 'bundled'})\n"
        f"Default mode:  {settings.default_mode.value}\n"
        f"Sanitize:      {'on' if settings.sanitize_inputs else 'off'}\n"
        "Profile hub:   https://llmprofiles.org/profiles",
        title="llm-profiles",
        border_style="cyan",
    ))


if __name__ == "__main__":
    cli()
